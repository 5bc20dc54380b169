"""Tests for discovery/models.py and discovery/log_entries.py."""

from __future__ import annotations

from datetime import UTC, datetime

from discovery.log_entries import (
    SessionEvent,
    SkippedLine,
    SummaryEvent,
    UserMessageEvent,
    decode_line,
    parse_timestamp,
)
from discovery.models import (
    DEFAULT_SUMMARY,
    EPOCH,
    ProjectConfigEntry,
    SessionPage,
    SessionRecord,
    to_json,
)

# --- ProjectConfigEntry ---


class TestProjectConfigEntry:
    def test_from_dict_keeps_unknown_keys(self):
        entry = ProjectConfigEntry.from_dict({"displayName": "A", "pinned": True})
        assert entry.display_name == "A"
        assert entry.manually_added is False
        assert entry.extra == {"pinned": True}

    def test_to_dict_omits_empty_fields(self):
        assert ProjectConfigEntry(display_name="A").to_dict() == {"displayName": "A"}

    def test_is_empty(self):
        assert ProjectConfigEntry().is_empty()
        assert not ProjectConfigEntry(manually_added=True).is_empty()


# --- SessionRecord.merge ---


class TestSessionRecordMerge:
    def test_first_real_summary_wins(self):
        a = SessionRecord(id="s", summary="First")
        a.merge(SessionRecord(id="s", summary="Second"))
        assert a.summary == "First"

    def test_default_summary_replaced(self):
        a = SessionRecord(id="s")
        a.merge(SessionRecord(id="s", summary="Real"))
        assert a.summary == "Real"

    def test_counts_add_and_latest_wins(self):
        early = datetime(2024, 1, 1, tzinfo=UTC)
        late = datetime(2024, 1, 2, tzinfo=UTC)
        a = SessionRecord(id="s", message_count=2, last_activity=late)
        a.merge(SessionRecord(id="s", message_count=3, last_activity=early, cwd="/w"))
        assert a.message_count == 5
        assert a.last_activity == late
        assert a.cwd == "/w"

    def test_defaults(self):
        record = SessionRecord(id="s")
        assert record.summary == DEFAULT_SUMMARY
        assert record.last_activity == EPOCH


# --- log line decoding ---


class TestDecodeLine:
    def test_summary(self):
        entry = decode_line('{"type": "summary", "summary": "Done", "sessionId": "s"}')
        assert isinstance(entry, SummaryEvent)
        assert entry.summary == "Done"

    def test_empty_summary_is_plain_event(self):
        assert isinstance(decode_line('{"type": "summary", "summary": ""}'), SessionEvent)

    def test_user_message(self):
        entry = decode_line('{"message": {"role": "user", "content": "<command-name>/x"}}')
        assert isinstance(entry, UserMessageEvent)
        assert entry.is_command

    def test_structured_user_content_is_plain_event(self):
        entry = decode_line('{"message": {"role": "user", "content": [{"type": "text"}]}}')
        assert isinstance(entry, SessionEvent)

    def test_not_json(self):
        assert isinstance(decode_line("{nope"), SkippedLine)

    def test_not_object(self):
        assert isinstance(decode_line('"just a string"'), SkippedLine)


class TestParseTimestamp:
    def test_iso_with_z(self):
        assert parse_timestamp("2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=UTC)

    def test_naive_iso_is_utc(self):
        assert parse_timestamp("2024-01-01T00:00:00") == datetime(2024, 1, 1, tzinfo=UTC)

    def test_milliseconds(self):
        assert parse_timestamp(1704067200000) == datetime(2024, 1, 1, tzinfo=UTC)

    def test_garbage(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(True) is None


# --- to_json ---


class TestToJson:
    def test_nested_dataclasses_and_datetimes(self):
        page = SessionPage(
            sessions=[SessionRecord(id="s", last_activity=datetime(2024, 1, 1, tzinfo=UTC))],
            total=1,
        )
        data = to_json(page)
        assert data["sessions"][0]["last_activity"] == "2024-01-01T00:00:00+00:00"
        assert data["total"] == 1
