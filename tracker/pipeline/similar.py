"""Flag near-duplicate gigs inside each week cell using fuzzy name matching."""
import re

from fuzzywuzzy import fuzz

from tracker import config


def normalize_gig_name(name):
    """Normalize a gig name for comparison."""
    normalized = (name or "").lower()
    for phrase in ("sold out:", "sold out", "cancelled:", "postponed:", "(free)", "free entry"):
        normalized = normalized.replace(phrase, " ")
    normalized = re.sub(r"[^a-z0-9\s]", " ", normalized)
    return " ".join(normalized.split())


def _gig_day(gig):
    return str(gig.get("date") or "")[:10]


def group_similar(gigs, threshold=None):
    """
    Group gigs on the same day whose names look alike.
    Returns lists of gig ids, only for groups of two or more.
    """
    threshold = config.SIMILARITY_THRESHOLD if threshold is None else threshold
    groups = []

    for gig in gigs:
        name = normalize_gig_name(gig.get("name"))
        for group in groups:
            lead = group[0]
            if _gig_day(lead) != _gig_day(gig):
                continue
            if fuzz.token_set_ratio(name, normalize_gig_name(lead.get("name"))) >= threshold:
                group.append(gig)
                break
        else:
            groups.append([gig])

    return [[g["id"] for g in group] for group in groups if len(group) > 1]


def annotate_similar(venues, threshold=None):
    """
    Add a "similar" list to every cell of the aggregated matrix.
    Counts and gig lists are left as they are.
    """
    flagged = 0
    for venue in venues.values():
        for cell in venue["weeks"].values():
            cell["similar"] = group_similar(cell["gigs"], threshold)
            flagged += sum(len(group) for group in cell["similar"])
    return flagged
