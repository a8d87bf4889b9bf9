"""
Records returned by a review system.

The models mirror Gerrit's REST entities (``ChangeInfo`` and friends) and
parse their JSON directly, including Gerrit's field names (``_number``,
``_more_changes``...) and its timestamp format.

Collection fields that Gerrit only returns on request (``labels``,
``messages``, ``revisions``, ``reviewers``) are ``None`` when they were not
requested, and an empty collection when they were requested but empty.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

XSSI_PREFIX = ")]}'"

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_timestamp(value: Any) -> Any:
    """
    Parse a Gerrit timestamp.

    Gerrit timestamps are UTC and formatted ``"yyyy-mm-dd hh:mm:ss.fffffffff"``
    with nanosecond precision, which is truncated to microseconds.

    Example:
        >>> parse_timestamp("2017-12-01 17:33:30.000000000")
        datetime.datetime(2017, 12, 1, 17, 33, 30, tzinfo=datetime.timezone.utc)
    """
    if not isinstance(value, str):
        return value
    seconds, _, fraction = value.partition(".")
    parsed = datetime.strptime(seconds, _TIMESTAMP_FORMAT)
    microseconds = int(fraction[:6].ljust(6, "0")) if fraction else 0
    return parsed.replace(microsecond=microseconds, tzinfo=UTC)


GerritTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]


class ChangeStatus(Enum):
    """Status of a change in the review system."""

    NEW = "NEW"
    MERGED = "MERGED"
    ABANDONED = "ABANDONED"

    @property
    def is_landed(self) -> bool:
        """True once the change can no longer be updated."""
        return self in (ChangeStatus.MERGED, ChangeStatus.ABANDONED)


class GerritModel(BaseModel):
    """Base for review records: immutable, accepts Gerrit and Python field names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class AccountInfo(GerritModel):
    account_id: int | None = Field(default=None, alias="_account_id")
    name: str | None = None
    email: str | None = None
    username: str | None = None


class ApprovalInfo(AccountInfo):
    """A vote on a label."""

    value: int | None = None
    date: GerritTimestamp | None = None


class LabelInfo(GerritModel):
    """State of one review label (e.g. ``Code-Review``)."""

    approved: AccountInfo | None = None
    rejected: AccountInfo | None = None
    recommended: AccountInfo | None = None
    disliked: AccountInfo | None = None
    blocking: bool | None = None
    value: int | None = None
    default_value: int | None = None
    all: tuple[ApprovalInfo, ...] | None = None


class RevisionInfo(GerritModel):
    """One patch set of a change."""

    kind: str | None = None
    number: int | None = Field(default=None, alias="_number")
    created: GerritTimestamp | None = None
    uploader: AccountInfo | None = None
    ref: str | None = None


class ChangeMessageInfo(GerritModel):
    """A message posted on a change."""

    id: str
    author: AccountInfo | None = None
    real_author: AccountInfo | None = None
    date: GerritTimestamp | None = None
    message: str | None = None
    tag: str | None = None
    revision_number: int | None = Field(default=None, alias="_revision_number")


class ReviewRecord(GerritModel):
    """
    Remote state of one change in a review system.

    Attributes:
        id: Review-system identifier (``project~branch~Change-Id``)
        project: Project the change belongs to
        branch: Target branch
        topic: Topic, if set
        change_id: ``Change-Id`` footer value
        subject: First line of the commit message
        status: NEW, MERGED or ABANDONED
        created: Creation time
        updated: Last update time
        submitted: Submission time, None unless merged
        number: Legacy numeric id
        owner: Change owner
        labels: Label name to LabelInfo, None if not requested
        messages: Change messages, None if not requested
        current_revision: Commit of the current patch set, None if not requested
        revisions: Commit to RevisionInfo, None if not requested
        reviewers: Reviewer state to accounts, None if not requested
        more_changes: Set on the last record of a truncated query result

    Example:
        >>> record = ReviewRecord.from_json(response_text)
        >>> record.status.is_landed
        True
    """

    id: str
    project: str | None = None
    branch: str | None = None
    topic: str | None = None
    change_id: str | None = None
    subject: str | None = None
    status: ChangeStatus
    created: GerritTimestamp | None = None
    updated: GerritTimestamp | None = None
    submitted: GerritTimestamp | None = None
    number: int = Field(default=0, alias="_number")
    owner: AccountInfo | None = None
    labels: dict[str, LabelInfo] | None = None
    messages: tuple[ChangeMessageInfo, ...] | None = None
    current_revision: str | None = None
    revisions: dict[str, RevisionInfo] | None = None
    reviewers: dict[str, tuple[AccountInfo, ...]] | None = None
    more_changes: bool = Field(default=False, alias="_more_changes")

    @property
    def is_landed(self) -> bool:
        return self.status.is_landed

    @classmethod
    def from_json(cls, text: str | bytes) -> ReviewRecord:
        """
        Parse a review system response body.

        Gerrit prefixes JSON responses with ``)]}'`` to prevent XSSI; the
        prefix is stripped when present.
        """
        if isinstance(text, bytes):
            text = text.decode()
        text = text.lstrip()
        if text.startswith(XSSI_PREFIX):
            text = text[len(XSSI_PREFIX) :]
        return cls.model_validate_json(text)


__all__ = [
    "AccountInfo",
    "ApprovalInfo",
    "ChangeMessageInfo",
    "ChangeStatus",
    "GerritTimestamp",
    "LabelInfo",
    "ReviewRecord",
    "RevisionInfo",
    "parse_timestamp",
]
