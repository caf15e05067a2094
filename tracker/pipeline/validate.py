from tracker import config
from tracker.utils.dates import parse_gig_date


def validate_gig(gig, tz):
    """Check that a gig has the fields aggregation needs and a parseable date."""
    if not isinstance(gig, dict):
        return False
    for field in config.REQUIRED_FIELDS:
        if gig.get(field) in (None, ""):
            return False
    venue = gig["venue"]
    if not isinstance(venue, dict) or venue.get("id") in (None, "") or not venue.get("name"):
        return False
    return parse_gig_date(gig["date"], tz) is not None
