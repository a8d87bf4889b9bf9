"""Destination effect aggregator.

Collects, in commit order, the outcome of every change processed in a run.
"""

from collections import Counter
from collections.abc import Iterable

from repomigrate.models import DestinationEffect, EffectType


class DestinationEffectAggregator:
    """
    Append-only, commit-ordered list of destination effects.

    A run has exactly one aggregator and a single writer: the migrator
    processing the current change. Readers get immutable snapshots.

    Example:
        >>> aggregator = DestinationEffectAggregator()
        >>> aggregator.record([DestinationEffect.noop("already merged", "abc123")])
        >>> aggregator.count(EffectType.NOOP)
        1
    """

    def __init__(self) -> None:
        self._effects: list[DestinationEffect] = []

    def record(self, effects: Iterable[DestinationEffect]) -> tuple[DestinationEffect, ...]:
        """
        Append effects in the order they were produced.

        Args:
            effects: Effects of one change

        Returns:
            The effects that were appended
        """
        recorded = tuple(effects)
        for effect in recorded:
            if not isinstance(effect, DestinationEffect):
                raise TypeError(f"Expected DestinationEffect, got {type(effect).__name__}")
        self._effects.extend(recorded)
        return recorded

    @property
    def effects(self) -> tuple[DestinationEffect, ...]:
        """Read-only view of every recorded effect, in commit order."""
        return tuple(self._effects)

    def count(self, effect_type: EffectType) -> int:
        return sum(1 for effect in self._effects if effect.type == effect_type)

    @property
    def has_errors(self) -> bool:
        return any(effect.type == EffectType.ERROR for effect in self._effects)

    def summary(self) -> dict[str, int]:
        """Count of recorded effects per type, every type included."""
        counts = Counter(effect.type for effect in self._effects)
        return {effect_type.value: counts.get(effect_type, 0) for effect_type in EffectType}

    def __len__(self) -> int:
        return len(self._effects)

    def __iter__(self):
        return iter(tuple(self._effects))


__all__ = ["DestinationEffectAggregator"]
