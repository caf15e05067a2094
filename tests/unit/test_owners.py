import pytest

responses = pytest.importorskip("responses")

from tracker.pipeline.owners import (
    fetch_owner_table,
    lookup_owner,
    normalize_venue_id,
    parse_owner_table,
)

OWNERS_URL = "https://example.com/owners.csv"


def test_header_on_first_line():
    text = "id,name,owner\nv1,The Hall,Alice\nv2,Basement,Bob\n"
    owners = parse_owner_table(text)
    assert owners == {"v1": "Alice", "v2": "Bob"}


def test_header_on_second_line_and_any_column_order():
    text = "Venue owners export\nOwner,Notes,ID\nCarol,,V3\n"
    owners = parse_owner_table(text)
    assert owners == {"v3": "Carol"}


def test_quoted_fields_with_commas_and_newlines():
    text = 'id,owner,notes\n"v1","Smith, Jones & Co","line one\nline two"\nv2,Dana,\n'
    owners = parse_owner_table(text)
    assert owners["v1"] == "Smith, Jones & Co"
    assert owners["v2"] == "Dana"


def test_custom_column_names():
    text = "venue_id,managed_by\nv9,Eve\n"
    assert parse_owner_table(text, id_column="Venue_ID", owner_column="MANAGED_BY") == {"v9": "Eve"}


def test_missing_columns_gives_empty_mapping_and_logs():
    messages = []
    owners = parse_owner_table("venue,name\nv1,Hall\n", log_func=messages.append)
    assert owners == {}
    assert any("header" in m for m in messages)


def test_short_rows_are_skipped():
    owners = parse_owner_table("id,owner\nv1\nv2,Bob\n")
    assert owners == {"v2": "Bob"}


def test_lookup_is_case_and_whitespace_insensitive():
    owners = parse_owner_table("id,owner\n V1 ,Alice\n")
    assert lookup_owner(owners, "v1") == "Alice"
    assert lookup_owner(owners, " V1 ") == "Alice"
    assert normalize_venue_id(" V1 ") == normalize_venue_id("v1")


def test_lookup_unknown_never_fails():
    assert lookup_owner({"v1": "Alice"}, "v2") == "Unknown"
    assert lookup_owner({}, "v1") == "Unknown"
    assert lookup_owner({"v1": "Alice"}, None) == "Unknown"


def test_numeric_venue_ids_match_text_ids():
    owners = parse_owner_table("id,owner\n42,Frank\n")
    assert lookup_owner(owners, 42) == "Frank"


@responses.activate
def test_fetch_owner_table_success():
    responses.add(responses.GET, OWNERS_URL, body="id,owner\nv1,Alice\n", status=200)
    assert fetch_owner_table(OWNERS_URL, log_func=lambda *_: None) == {"v1": "Alice"}


@responses.activate
def test_fetch_owner_table_failure_degrades_to_empty():
    responses.add(responses.GET, OWNERS_URL, status=404)
    messages = []
    assert fetch_owner_table(OWNERS_URL, log_func=messages.append) == {}
    assert any("Could not load owner table" in m for m in messages)


def test_fetch_owner_table_without_url_does_nothing(monkeypatch):
    monkeypatch.setattr("tracker.config.OWNERS_CSV_URL", None)
    assert fetch_owner_table() == {}
