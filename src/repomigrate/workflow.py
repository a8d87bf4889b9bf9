"""Resolved workflow definition: the collaborators a run is built from."""

from __future__ import annotations

from dataclasses import dataclass

from repomigrate.protocols import (
    ConsistencyCheck,
    Destination,
    Origin,
    ReviewApi,
    Transformation,
)


@dataclass(frozen=True)
class Workflow:
    """
    The building blocks of a workflow, resolved once before any run.

    Attributes:
        origin: Where changes are read from
        transformation: Pipeline applied to every change
        destination: Where changes are written to
        checks: Extra consistency checks run after transformation
        review_api: Review system used to skip already landed changes
        origin_label: Name reported for the origin by the info operation

    Example:
        >>> workflow = Workflow(
        ...     origin=GitOrigin(...),
        ...     transformation=Pipeline([...]),
        ...     destination=GerritDestination(...),
        ... )
    """

    origin: Origin
    transformation: Transformation
    destination: Destination
    checks: tuple[ConsistencyCheck, ...] = ()
    review_api: ReviewApi | None = None
    origin_label: str = "origin"

    def __post_init__(self) -> None:
        object.__setattr__(self, "checks", tuple(self.checks))

        expected = (
            ("origin", self.origin, Origin),
            ("transformation", self.transformation, Transformation),
            ("destination", self.destination, Destination),
        )
        for field_name, value, protocol in expected:
            if not isinstance(value, protocol):
                raise TypeError(
                    f"{field_name} must implement {protocol.__name__}, "
                    f"got {type(value).__name__}"
                )

        for check in self.checks:
            if not isinstance(check, ConsistencyCheck):
                raise TypeError(
                    f"checks must implement ConsistencyCheck, got {type(check).__name__}"
                )

        if self.review_api is not None and not isinstance(self.review_api, ReviewApi):
            raise TypeError(
                f"review_api must implement ReviewApi, got {type(self.review_api).__name__}"
            )


__all__ = ["Workflow"]
