from tracker.utils.dates import parse_gig_date


def dedupe_gigs(gigs):
    """
    Drop repeated gig ids, keeping the first occurrence and the original order.
    Neighbouring week queries can return the same gig twice.
    Returns (unique_gigs, duplicate_count).
    """
    seen = set()
    unique = []
    for gig in gigs:
        gig_id = gig.get("id") if isinstance(gig, dict) else None
        if gig_id is not None:
            if gig_id in seen:
                continue
            seen.add(gig_id)
        unique.append(gig)
    return unique, len(gigs) - len(unique)


def empty_weeks(labels):
    return {label: {"count": 0, "gigs": []} for label in labels}


def aggregate(gigs, window):
    """
    Bucket gigs into a venue x week matrix.

    Returns (venues, dropped):
    - venues: {venue_id: {"name": str, "weeks": {label: {"count": int, "gigs": [...]}}}}
      with every row holding every label of the window, in window order.
    - dropped: gigs whose week falls outside the window.

    Gigs must already be validated (see pipeline.validate).
    """
    labels = window.labels()
    label_set = set(labels)
    venues = {}
    dropped = []

    for gig in gigs:
        venue = gig["venue"]
        venue_id = venue["id"]
        gig_date = parse_gig_date(gig["date"], window.tz)

        label = window.label_for(gig_date)
        if label not in label_set:
            dropped.append(gig)
            continue

        if venue_id not in venues:
            venues[venue_id] = {"name": venue["name"], "weeks": empty_weeks(labels)}

        cell = venues[venue_id]["weeks"][label]
        cell["count"] += 1
        cell["gigs"].append({
            "id": gig["id"],
            "name": gig.get("name") or "",
            "date": gig["date"],
            "genre_tags": list(gig.get("genre_tags") or []),
        })

    return venues, dropped


def venue_total(venue):
    return sum(cell["count"] for cell in venue["weeks"].values())
