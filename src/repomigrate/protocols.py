"""
Canonical protocol definitions for the workflow collaborators.

The engine only depends on these contracts. Concrete origins,
destinations, transformations and review clients are supplied by the
workflow definition.

Protocols:
- Origin: Lazily lists pending changes and checks out their content
- Transformation: Applies the transformation pipeline to a working tree
- Destination: Writes a transformed change and reports its effects
- ConsistencyCheck: Extra validation run before a change is written
- ReviewApi: Reads the remote state of a change in a review system

Example:
    >>> class UppercaseMessages:
    ...     async def apply(self, workdir: Path, change: Change) -> None:
    ...         ...
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from repomigrate.models import Change, DestinationEffect

if TYPE_CHECKING:
    from repomigrate.review.models import ReviewRecord


@runtime_checkable
class Origin(Protocol):
    """Source system changes are read from."""

    def changes(self, since: str | None, page_size: int) -> AsyncIterator[Change]:
        """
        Iterate pending changes, oldest first.

        The iteration is lazy and finite; the origin is queried in pages
        of ``page_size`` changes.

        Args:
            since: Bookmark (origin ref) of the last migrated change, or
                None to start from the origin's own resume state
            page_size: Maximum number of changes per origin query

        Returns:
            Async iterator of changes
        """
        ...

    async def checkout(self, change: Change, workdir: Path) -> None:
        """
        Write the content of ``change`` into ``workdir``.

        Raises:
            OriginError: If the content cannot be fetched
        """
        ...

    async def last_migrated(self) -> str | None:
        """Origin ref of the last migrated change, None if nothing was migrated."""
        ...


@runtime_checkable
class Transformation(Protocol):
    """Transformation pipeline applied to each change."""

    async def apply(self, workdir: Path, change: Change) -> None:
        """
        Transform the working tree in place.

        Raises:
            TransformError: Naming the failing step
        """
        ...


@runtime_checkable
class Destination(Protocol):
    """Target system changes are written to."""

    async def has_changes(self, workdir: Path, change: Change) -> bool:
        """Whether writing ``workdir`` would change the destination."""
        ...

    async def write(self, workdir: Path, change: Change) -> list[DestinationEffect]:
        """
        Write the transformed change.

        Returns:
            Ordered destination effects

        Raises:
            DestinationError: Classified transient or permanent
        """
        ...


@runtime_checkable
class ConsistencyCheck(Protocol):
    """A validation applied after transformation."""

    name: str

    async def check(self, workdir: Path, change: Change) -> None:
        """
        Raises:
            ValidationError: If the transformed change is inconsistent
        """
        ...


@runtime_checkable
class ReviewApi(Protocol):
    """Read-only access to a review system."""

    async def get_change(self, change_id: str) -> ReviewRecord:
        """
        Fetch the current state of a review.

        Raises:
            ReviewLookupError: If the review system cannot be queried
        """
        ...


__all__ = [
    "Origin",
    "Transformation",
    "Destination",
    "ConsistencyCheck",
    "ReviewApi",
]
