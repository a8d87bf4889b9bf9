"""
Review system records and the memoizing review state reader.

Example:
    >>> from repomigrate.review import ReviewRecord, ReviewStateReader
"""

from repomigrate.review.models import (
    AccountInfo,
    ApprovalInfo,
    ChangeMessageInfo,
    ChangeStatus,
    LabelInfo,
    ReviewRecord,
    RevisionInfo,
    parse_timestamp,
)
from repomigrate.review.reader import ReviewStateReader

__all__ = [
    "AccountInfo",
    "ApprovalInfo",
    "ChangeMessageInfo",
    "ChangeStatus",
    "LabelInfo",
    "ReviewRecord",
    "ReviewStateReader",
    "RevisionInfo",
    "parse_timestamp",
]
