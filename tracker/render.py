"""
Render the venue x week matrix as a static HTML page.
Only consumes the aggregated matrix, the week labels and the owner mapping.
"""

from datetime import datetime

from bs4 import BeautifulSoup

from tracker import config
from tracker.pipeline.owners import lookup_owner

PAGE_CSS = """
body { font-family: sans-serif; margin: 20px; }
h1 { text-align: center; }
table { border-collapse: collapse; width: 100%; }
th, td { border: 1px solid #ddd; padding: 4px 6px; text-align: center; }
td.venue-column, th.venue-column { text-align: left; white-space: nowrap; }
td.has-gigs { background-color: #c8faed; }
td.current-week, th.current-week { border-left: 2px solid #333; border-right: 2px solid #333; }
td.missing-genres { color: red; }
.no-gigs { color: red; }
"""


def has_missing_genres(cell):
    return any(not g.get("genre_tags") for g in cell["gigs"])


def tooltip_lines(cell):
    """One line per gig. Gigs without genre tags and look-alike gigs are marked."""
    similar_ids = {gig_id for group in cell.get("similar", []) for gig_id in group}
    lines = []
    for gig in cell["gigs"]:
        line = gig.get("name") or ""
        if not gig.get("genre_tags"):
            line += " [no genres]"
        if gig["id"] in similar_ids:
            line += " [possible duplicate]"
        lines.append(line)
    return lines


def sort_venue_ids(venues, owners):
    """Owner then venue name when owners are known, otherwise first-seen order."""
    if not owners:
        return list(venues)
    return sorted(
        venues,
        key=lambda vid: (lookup_owner(owners, vid).lower(), venues[vid]["name"].lower()),
    )


def build_table(soup, venues, labels, owners=None, filter_text=None):
    """Build the gig table tag. `filter_text` keeps venues whose name contains it (case-insensitive)."""
    table = soup.new_tag("table", id="gig-table")
    needle = (filter_text or "").strip().lower()

    thead = soup.new_tag("thead")
    header = soup.new_tag("tr")
    venue_th = soup.new_tag("th", attrs={"class": "venue-column"})
    venue_th.string = "Venue"
    header.append(venue_th)
    if owners:
        owner_th = soup.new_tag("th", attrs={"class": "owner-column"})
        owner_th.string = "Owner"
        header.append(owner_th)
    for label in labels:
        th = soup.new_tag("th")
        if label == config.CURRENT_WEEK_LABEL:
            th["class"] = "current-week"
            bold = soup.new_tag("b")
            bold.string = label
            th.append(bold)
        else:
            th.string = label
        header.append(th)
    thead.append(header)
    table.append(thead)

    tbody = soup.new_tag("tbody")
    for venue_id in sort_venue_ids(venues, owners):
        venue = venues[venue_id]
        if needle and needle not in venue["name"].lower():
            continue

        row = soup.new_tag("tr", attrs={"data-venue-id": str(venue_id)})
        name_td = soup.new_tag("td", attrs={"class": "venue-column"})
        name_td.string = venue["name"]
        row.append(name_td)
        if owners:
            owner_td = soup.new_tag("td", attrs={"class": "owner-column"})
            owner_td.string = lookup_owner(owners, venue_id)
            row.append(owner_td)

        for label in labels:
            cell = venue["weeks"][label]
            td = soup.new_tag("td")
            classes = []
            if label == config.CURRENT_WEEK_LABEL:
                classes.append("current-week")
            if cell["count"] > 0:
                classes.append("has-gigs")
                td.string = str(cell["count"])
                tooltip = "\n".join(tooltip_lines(cell))
                td["title"] = tooltip
                td["data-tooltip"] = tooltip
                if has_missing_genres(cell):
                    classes.append("missing-genres")
            if classes:
                td["class"] = " ".join(classes)
            row.append(td)

        tbody.append(row)
    table.append(tbody)
    return table


def render_table(venues, labels, owners=None, filter_text=None):
    soup = BeautifulSoup("", "html.parser")
    return str(build_table(soup, venues, labels, owners, filter_text))


def render_page(result, filter_text=None, generated_at=None):
    """Full HTML document for a refresh result, including the empty "no gigs" case."""
    generated_at = generated_at or datetime.now(result.window.tz)
    title = f"Gig Visualisation - {result.location.title()}"

    soup = BeautifulSoup("<!DOCTYPE html><html><head></head><body></body></html>", "html.parser")
    meta = soup.new_tag("meta", charset="utf-8")
    soup.head.append(meta)
    title_tag = soup.new_tag("title")
    title_tag.string = title
    soup.head.append(title_tag)
    style = soup.new_tag("style")
    style.string = PAGE_CSS
    soup.head.append(style)

    h1 = soup.new_tag("h1")
    h1.string = title
    soup.body.append(h1)

    info = soup.new_tag("p", attrs={"class": "generated"})
    info.string = f"Generated {generated_at:%Y-%m-%d %H:%M} ({len(result.gigs)} gigs)"
    soup.body.append(info)

    if filter_text:
        note = soup.new_tag("p", attrs={"class": "filter"})
        note.string = f"Venues matching: {filter_text}"
        soup.body.append(note)

    if not result.venues:
        empty = soup.new_tag("p", attrs={"class": "no-gigs"})
        empty.string = "No gigs found for the selected location."
        soup.body.append(empty)
    else:
        soup.body.append(build_table(soup, result.venues, result.labels, result.owners, filter_text))

    return str(soup)
