import threading
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from tracker.refresh import (
    STATUS_CANCELLED,
    STATUS_NO_DATA,
    STATUS_OK,
    Refresher,
    RefreshInProgress,
)

MELBOURNE = ZoneInfo("Australia/Melbourne")
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=MELBOURNE)
OWNERS_URL = "https://example.com/owners.csv"


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=""):
        self.payload = payload
        self.status_code = status_code
        self.content = text.encode("utf-8")

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")

    def json(self):
        return self.payload


class FakeSession:
    """Serves gigs by date_from and the owner CSV by URL."""

    def __init__(self, weeks=None, owners_csv=None):
        self.weeks = weeks or {}
        self.owners_csv = owners_csv
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        if url == OWNERS_URL:
            if self.owners_csv is None:
                return FakeResponse(status_code=404)
            return FakeResponse(text=self.owners_csv)
        return FakeResponse(payload=self.weeks.get(params["date_from"], []))


class BlockingSession(FakeSession):
    """Blocks inside the first request until released."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def get(self, url, params=None, timeout=None):
        if not self.entered.is_set():
            self.entered.set()
            self.release.wait(timeout=5)
        return super().get(url, params, timeout)


def gig(gig_id, date, venue_id="v1", venue_name="Hall", **extra):
    return {"id": gig_id, "name": f"Gig {gig_id}", "date": date,
            "venue": {"id": venue_id, "name": venue_name}, **extra}


def quiet(*_):
    pass


def test_refresh_builds_matrix():
    session = FakeSession(weeks={
        "2026-10-12": [gig(1, "2026-10-13", genre_tags=["rock"]), gig(2, "2026-10-13")],
        "2026-10-19": [gig(3, "2026-10-21", venue_id="v2", venue_name="Club")],
    })
    result = Refresher(session=session, owners_url="", log_func=quiet).refresh("melbourne", now=NOW)

    assert result.status == STATUS_OK
    assert len(session.calls) == 17
    assert result.labels[10] == "This week"
    assert result.venues["v1"]["weeks"]["This week"]["count"] == 2
    assert result.venues["v2"]["weeks"]["+1w"]["count"] == 1
    assert result.dropped == []
    assert len(result.metrics) == 17


def test_empty_api_gives_no_data_not_an_error():
    result = Refresher(session=FakeSession(), owners_url="", log_func=quiet).refresh("goldfields", now=NOW)
    assert result.status == STATUS_NO_DATA
    assert result.gigs == []
    assert result.venues == {}


def test_invalid_gigs_are_filtered_and_counted():
    session = FakeSession(weeks={
        "2026-10-12": [gig(1, "2026-10-13"), {"id": 2, "name": "No venue", "date": "2026-10-13"},
                       gig(3, "someday")],
    })
    messages = []
    result = Refresher(session=session, owners_url="", log_func=messages.append).refresh("melbourne", now=NOW)

    assert result.invalid_count == 2
    assert [g["id"] for g in result.gigs] == [1]
    assert any("Filtered out 2 invalid gigs" in m for m in messages)


def test_gigs_outside_queried_weeks_are_ignored_not_dropped():
    session = FakeSession(weeks={"2026-10-12": [gig(1, "2026-10-13"), gig(2, "2027-06-01")]})
    messages = []
    result = Refresher(session=session, owners_url="", log_func=messages.append).refresh("melbourne", now=NOW)

    assert [g["id"] for g in result.gigs] == [1]
    assert result.dropped == []
    assert any("Ignored 1 gigs dated outside the queried weeks" in m for m in messages)
    assert not any("Dropped" in m for m in messages)


def test_monday_evening_after_window_leaves_no_empty_row():
    # The last week's query ends on the inclusive date 2026-11-30
    session = FakeSession(weeks={
        "2026-10-12": [gig(1, "2026-10-13")],
        "2026-11-23": [gig(2, "2026-11-30T20:00:00", venue_id="vx", venue_name="Only Here")],
    })
    result = Refresher(session=session, owners_url="", log_func=quiet).refresh("melbourne", now=NOW)

    assert result.dropped == []
    assert "vx" not in result.venues
    assert list(result.venues) == ["v1"]


def test_gig_with_empty_name_is_counted():
    session = FakeSession(weeks={"2026-10-12": [{**gig(1, "2026-10-14"), "name": ""}]})
    result = Refresher(session=session, owners_url="", log_func=quiet).refresh("melbourne", now=NOW)

    assert result.status == STATUS_OK
    assert result.invalid_count == 0
    assert result.venues["v1"]["weeks"]["This week"]["count"] == 1


def test_owners_joined_when_configured():
    session = FakeSession(
        weeks={"2026-10-12": [gig(1, "2026-10-13", venue_id="V1")]},
        owners_csv="Owners\nID,Owner\n v1 ,Alice\n",
    )
    result = Refresher(session=session, owners_url=OWNERS_URL, log_func=quiet).refresh("melbourne", now=NOW)
    assert result.owners == {"v1": "Alice"}


def test_owner_table_failure_does_not_block_refresh():
    session = FakeSession(weeks={"2026-10-12": [gig(1, "2026-10-13")]})
    result = Refresher(session=session, owners_url=OWNERS_URL, log_func=quiet).refresh("melbourne", now=NOW)
    assert result.status == STATUS_OK
    assert result.owners == {}


def test_similar_gigs_are_annotated():
    session = FakeSession(weeks={"2026-10-12": [
        {**gig(1, "2026-10-14"), "name": "Open Mic Night"},
        {**gig(2, "2026-10-14"), "name": "Open Mic Night!"},
    ]})
    result = Refresher(session=session, owners_url="", log_func=quiet).refresh("melbourne", now=NOW)
    assert result.venues["v1"]["weeks"]["This week"]["similar"] == [[1, 2]]


def test_second_refresh_rejected_while_first_runs_and_cancel_stops_it():
    session = BlockingSession()
    refresher = Refresher(session=session, owners_url="", log_func=quiet)
    results = []

    worker = threading.Thread(target=lambda: results.append(refresher.refresh("melbourne", now=NOW)))
    worker.start()
    try:
        assert session.entered.wait(timeout=5)
        assert refresher.running

        with pytest.raises(RefreshInProgress):
            refresher.refresh("goldfields", now=NOW)

        assert refresher.cancel() is True
    finally:
        session.release.set()
        worker.join(timeout=5)

    assert results[0].status == STATUS_CANCELLED
    assert len(session.calls) == 1
    assert not refresher.running
    assert refresher.cancel() is False

    # The guard is released once the cancelled refresh returns
    follow_up = refresher.refresh("melbourne", now=NOW)
    assert follow_up.status == STATUS_NO_DATA
