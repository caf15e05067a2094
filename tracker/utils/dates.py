from datetime import datetime


def parse_gig_date(value, tz):
    """
    Parse a gig date into an aware datetime in the tracker's timezone.
    Handles: "2026-10-17", "2026-10-17T20:30:00", "2026-10-17T09:30:00Z",
    "2026-10-17T20:30:00+11:00". Date-only values are local midnight.
    Returns None for anything else.
    """
    if not value or not isinstance(value, str):
        return None

    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def to_query_date(instant):
    """Format an instant as the YYYY-MM-DD string the gig API expects."""
    return instant.strftime("%Y-%m-%d")
