"""
Venue owner reference table: a CSV published as a static file, joined to the
gig matrix by venue id.
"""

import csv
import io

import requests

from tracker import config


def normalize_venue_id(venue_id):
    if venue_id is None:
        return ""
    return str(venue_id).strip().lower()


def _find_header(rows, id_column, owner_column):
    """
    The header is either the first or the second row (some exports carry a
    title line). Returns (row_index, id_index, owner_index) or None.
    """
    wanted_id = id_column.strip().lower()
    wanted_owner = owner_column.strip().lower()
    for row_index, row in enumerate(rows[:2]):
        names = [cell.strip().lower() for cell in row]
        if wanted_id in names and wanted_owner in names:
            return row_index, names.index(wanted_id), names.index(wanted_owner)
    return None


def parse_owner_table(text, id_column=None, owner_column=None, log_func=None):
    """
    Parse owner CSV text into {normalized venue id: owner name}.
    Quoted fields may contain commas and newlines. Column order does not matter.
    Returns an empty mapping if the required columns are missing.
    """
    log = log_func or print
    id_column = id_column or config.OWNERS_ID_COLUMN
    owner_column = owner_column or config.OWNERS_OWNER_COLUMN

    rows = list(csv.reader(io.StringIO(text or "")))
    header = _find_header(rows, id_column, owner_column)
    if header is None:
        log(f"  Warning: owner table has no '{id_column}'/'{owner_column}' header, ignoring it")
        return {}

    header_index, id_index, owner_index = header
    owners = {}
    for row in rows[header_index + 1:]:
        if len(row) <= max(id_index, owner_index):
            continue
        venue_id = normalize_venue_id(row[id_index])
        owner = row[owner_index].strip()
        if venue_id and owner:
            owners[venue_id] = owner
    return owners


def fetch_owner_table(url=None, session=None, log_func=None):
    """
    Download and parse the owner table. Any failure degrades to an empty
    mapping so gig rendering is never blocked.
    """
    log = log_func or print
    url = url or config.OWNERS_CSV_URL
    if not url:
        return {}

    http = session or requests
    try:
        resp = http.get(url, timeout=config.LML_TIMEOUT)
        resp.raise_for_status()
        text = resp.content.decode("utf-8-sig")
    except Exception as e:
        log(f"  Warning: Could not load owner table: {e}")
        return {}

    owners = parse_owner_table(text, log_func=log)
    log(f"  Loaded {len(owners)} venue owners")
    return owners


def lookup_owner(owners, venue_id):
    """Owner for a venue id, or the unknown marker. Never raises."""
    if not owners:
        return config.UNKNOWN_OWNER
    return owners.get(normalize_venue_id(venue_id), config.UNKNOWN_OWNER)
