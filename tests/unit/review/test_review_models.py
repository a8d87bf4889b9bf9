"""
Unit tests for review records.

Tests for:
- Parsing Gerrit responses (XSSI prefix, field aliases, timestamps)
- Optional collections (not requested vs. empty)
- Landed status
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from repomigrate.review.models import (
    ChangeStatus,
    ReviewRecord,
    parse_timestamp,
)

CHANGE_JSON = """)]}'
{
  "id": "copybara~master~I8473b95934b5732ac55d26311a706c9c2bde9940",
  "project": "copybara",
  "branch": "master",
  "topic": "migration",
  "change_id": "I8473b95934b5732ac55d26311a706c9c2bde9940",
  "subject": "Implementing Feature X",
  "status": "MERGED",
  "created": "2013-02-01 09:59:32.126000000",
  "updated": "2013-02-21 11:16:36.775000000",
  "submitted": "2013-02-21 11:16:36.615000000",
  "_number": 3965,
  "owner": {"_account_id": 1000096, "name": "John Doe", "email": "john.doe@example.com"},
  "labels": {
    "Code-Review": {
      "approved": {"_account_id": 1000097},
      "all": [{"_account_id": 1000097, "value": 2, "date": "2013-02-21 11:16:30.000000000"}]
    }
  },
  "messages": [],
  "current_revision": "27cc4558b5a3d3387dd11ee2df7a117e7e581822",
  "revisions": {
    "27cc4558b5a3d3387dd11ee2df7a117e7e581822": {
      "kind": "REWORK",
      "_number": 2,
      "ref": "refs/changes/65/3965/2"
    }
  },
  "unknown_field": true
}
"""


class TestParseTimestamp:
    def test_nanoseconds_truncated(self):
        parsed = parse_timestamp("2013-02-01 09:59:32.126456789")

        assert parsed == datetime(2013, 2, 1, 9, 59, 32, 126456, tzinfo=UTC)

    def test_without_fraction(self):
        assert parse_timestamp("2013-02-01 09:59:32") == datetime(
            2013, 2, 1, 9, 59, 32, tzinfo=UTC
        )

    def test_non_string_passes_through(self):
        value = datetime(2020, 1, 1, tzinfo=UTC)

        assert parse_timestamp(value) is value


class TestReviewRecordFromJson:
    """Tests for ReviewRecord.from_json."""

    def test_full_record(self):
        record = ReviewRecord.from_json(CHANGE_JSON)

        assert record.id == "copybara~master~I8473b95934b5732ac55d26311a706c9c2bde9940"
        assert record.status == ChangeStatus.MERGED
        assert record.number == 3965
        assert record.owner.account_id == 1000096
        assert record.created == datetime(2013, 2, 1, 9, 59, 32, 126000, tzinfo=UTC)
        assert record.labels["Code-Review"].approved.account_id == 1000097
        assert record.labels["Code-Review"].all[0].value == 2
        revision = record.revisions[record.current_revision]
        assert revision.number == 2
        assert revision.ref == "refs/changes/65/3965/2"

    def test_bytes_without_prefix(self):
        record = ReviewRecord.from_json(b'{"id": "p~b~I1", "status": "NEW"}')

        assert record.status == ChangeStatus.NEW

    def test_not_requested_collections_are_none(self):
        record = ReviewRecord.from_json('{"id": "p~b~I1", "status": "NEW"}')

        assert record.labels is None
        assert record.messages is None
        assert record.revisions is None
        assert record.reviewers is None

    def test_requested_but_empty_collection(self):
        record = ReviewRecord.from_json(CHANGE_JSON)

        assert record.messages == ()

    def test_more_changes_flag(self):
        record = ReviewRecord.from_json(
            '{"id": "p~b~I1", "status": "NEW", "_more_changes": true}'
        )

        assert record.more_changes is True

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            ReviewRecord.from_json('{"id": "p~b~I1", "status": "DRAFT"}')

    def test_records_are_immutable(self):
        record = ReviewRecord(id="p~b~I1", status=ChangeStatus.NEW)

        with pytest.raises(ValidationError):
            record.status = ChangeStatus.MERGED

    def test_python_field_names_accepted(self):
        record = ReviewRecord(id="p~b~I1", status=ChangeStatus.NEW, number=7)

        assert record.number == 7


class TestLanded:
    @pytest.mark.parametrize(
        "status,landed",
        [
            (ChangeStatus.NEW, False),
            (ChangeStatus.MERGED, True),
            (ChangeStatus.ABANDONED, True),
        ],
    )
    def test_is_landed(self, status, landed):
        assert status.is_landed is landed
        assert ReviewRecord(id="p~b~I1", status=status).is_landed is landed
