import time
from datetime import timedelta

import requests

from tracker import config
from tracker.pipeline.aggregate import dedupe_gigs
from tracker.pipeline.metrics import WeekMetrics
from tracker.utils.dates import parse_gig_date, to_query_date


class FetchCancelled(Exception):
    """Raised when a refresh is cancelled between two week requests."""


def week_query_params(location, start, end):
    """Query parameters for one week. `end` is exclusive, the API's date_to is inclusive."""
    return {
        "location": location,
        "date_from": to_query_date(start),
        "date_to": to_query_date(end - timedelta(microseconds=1)),
    }


def fetch_week(params, session=None):
    """
    Fetch the gigs of one week from the Live Music Locator API.
    Raises on transport errors, non-ok statuses, and non-list bodies.
    """
    http = session or requests
    resp = http.get(config.LML_API_URL, params=params, timeout=config.LML_TIMEOUT)
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, list):
        raise ValueError(f"expected a list of gigs, got {type(data).__name__}")
    return data


def clip_to_window(gigs, window):
    """
    Drop gigs dated outside [first week start, last week end). The date-only
    query bounds cover whole days, so the first and last queries spill over.
    Gigs without a parseable date are kept for validation to report.
    Returns (kept, clipped_count).
    """
    periods = window.periods()
    window_start, window_end = periods[0][1], periods[-1][2]
    kept = []
    for gig in gigs:
        gig_date = parse_gig_date(gig.get("date"), window.tz) if isinstance(gig, dict) else None
        if gig_date is not None and not (window_start <= gig_date < window_end):
            continue
        kept.append(gig)
    return kept, len(gigs) - len(kept)


def fetch_gigs(location, window, session=None, on_error=None, progress=None,
               cancel=None, metrics=None, log_func=None):
    """
    Fetch every week of `window` for `location`, one request at a time, oldest week first.

    on_error: "skip" (failed week counts as empty) or "abort" (stop and keep
              what was fetched). Defaults to config.ON_WEEK_ERROR.
    progress: optional callable receiving an int percentage after every week.
    cancel:   optional threading.Event; checked before each request.
    metrics:  optional list collecting a WeekMetrics per week.

    Returns gigs deduplicated by id and clipped to the window, in week order
    then API order.
    """
    log = log_func or print
    on_error = (on_error or config.ON_WEEK_ERROR).lower()
    if on_error not in config.ON_WEEK_ERROR_CHOICES:
        raise ValueError(f"on_error must be one of {config.ON_WEEK_ERROR_CHOICES}, got {on_error!r}")

    periods = window.periods()
    total = len(periods)
    gigs = []

    def report(done):
        if progress:
            progress(round(done / total * 100))

    for done, (label, start, end) in enumerate(periods, start=1):
        if cancel is not None and cancel.is_set():
            raise FetchCancelled(f"cancelled before week {label}")

        params = week_query_params(location, start, end)
        week = WeekMetrics(label=label, date_from=params["date_from"], date_to=params["date_to"])
        started = time.time()

        try:
            week_gigs = fetch_week(params, session=session)
            week.gig_count = len(week_gigs)
            gigs.extend(week_gigs)
        except Exception as e:
            week.errors = 1
            week.error_messages.append(str(e))
            log(f"    {label} ({week.date_from} to {week.date_to}): ERROR - {e}")

        week.duration_ms = (time.time() - started) * 1000
        if metrics is not None:
            metrics.append(week)

        if week.errors and on_error == "abort":
            log(f"    Stopping after {label}, keeping {len(gigs)} gigs fetched so far")
            report(total)
            break

        report(done)

    unique, duplicates = dedupe_gigs(gigs)
    if duplicates:
        log(f"    Removed {duplicates} duplicate gigs returned by overlapping weeks")

    in_window, clipped = clip_to_window(unique, window)
    if clipped:
        log(f"    Ignored {clipped} gigs dated outside the queried weeks")
    return in_window
