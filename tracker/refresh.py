"""
One refresh: build the week window, fetch, validate, aggregate, join owners,
flag similar gigs. Everything is rebuilt from scratch on each call.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional

from tracker import config
from tracker.lml import FetchCancelled, fetch_gigs
from tracker.pipeline.aggregate import aggregate
from tracker.pipeline.owners import fetch_owner_table
from tracker.pipeline.similar import annotate_similar
from tracker.pipeline.validate import validate_gig
from tracker.window import WeekWindow

STATUS_OK = "ok"
STATUS_NO_DATA = "no_data"
STATUS_CANCELLED = "cancelled"


class RefreshInProgress(Exception):
    """Raised when a refresh is requested while another one is still running."""


@dataclass
class RefreshResult:
    location: str
    window: WeekWindow
    status: str = STATUS_OK
    gigs: list = field(default_factory=list)
    venues: dict = field(default_factory=dict)
    dropped: list = field(default_factory=list)
    invalid_count: int = 0
    owners: dict = field(default_factory=dict)
    metrics: list = field(default_factory=list)

    @property
    def labels(self):
        return self.window.labels()


class Refresher:
    """
    Runs refreshes one at a time. A second refresh while one is active raises
    RefreshInProgress; cancel() stops the active one at its next week boundary.
    """

    def __init__(self, session=None, owners_url=None, on_error=None, log_func=None):
        self.session = session
        self.owners_url = owners_url if owners_url is not None else config.OWNERS_CSV_URL
        self.on_error = on_error
        self.log = log_func or print
        self._lock = threading.Lock()
        self._cancel: Optional[threading.Event] = None

    @property
    def running(self):
        return self._lock.locked()

    def cancel(self):
        """Cancel the active refresh, if any. Returns True if there was one."""
        token = self._cancel
        if token is None:
            return False
        token.set()
        return True

    def refresh(self, location, now=None, progress=None):
        if not self._lock.acquire(blocking=False):
            raise RefreshInProgress(f"a refresh is already running, not starting one for {location}")

        token = threading.Event()
        self._cancel = token
        try:
            return self._run(location, now, progress, token)
        finally:
            self._cancel = None
            self._lock.release()

    def _run(self, location, now, progress, token):
        log = self.log
        window = WeekWindow.build(now=now)
        result = RefreshResult(location=location, window=window)

        _, first_start, _ = window.periods()[0]
        _, _, last_end = window.periods()[-1]
        log(f"Fetching {window.period_count} weeks of gigs for {location} "
            f"({first_start:%Y-%m-%d} to {last_end:%Y-%m-%d})")

        try:
            gigs = fetch_gigs(
                location,
                window,
                session=self.session,
                on_error=self.on_error,
                progress=progress,
                cancel=token,
                metrics=result.metrics,
                log_func=log,
            )
        except FetchCancelled as e:
            log(f"  Refresh cancelled: {e}")
            result.status = STATUS_CANCELLED
            return result

        valid_gigs = [g for g in gigs if validate_gig(g, window.tz)]
        result.invalid_count = len(gigs) - len(valid_gigs)
        if result.invalid_count > 0:
            log(f"  Filtered out {result.invalid_count} invalid gigs")
        result.gigs = valid_gigs

        if not valid_gigs:
            log(f"  No gigs found for {location}")
            result.status = STATUS_NO_DATA
            return result

        result.venues, result.dropped = aggregate(valid_gigs, window)
        if result.dropped:
            log(f"  Dropped {len(result.dropped)} gigs outside the {window.period_count}-week window")
        log(f"  {len(valid_gigs) - len(result.dropped)} gigs across {len(result.venues)} venues")

        if self.owners_url:
            result.owners = fetch_owner_table(self.owners_url, session=self.session, log_func=log)

        flagged = annotate_similar(result.venues)
        if flagged:
            log(f"  {flagged} gigs look like duplicates of another gig on the same day")

        return result
