"""Standards registry: maximum allowable concentration per metal.

The regulatory baseline every quality rating is measured against. Each
``set`` produces a new registry version; results record the version they
used, so edits only affect future calculations.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence

from hmpi.scoring.defaults import WHO_STANDARDS
from hmpi.scoring.errors import InvalidStandard, MetalNotConfigured
from hmpi.scoring.models import MetalStandard, StandardsSnapshot, canonical_metal
from hmpi.scoring.store import VersionedStore


def validate_standard(metal: str, max_allowable: float, unit: str | None) -> MetalStandard:
    """Check one standard and build it.

    Raises:
        InvalidStandard: If the limit is not a positive finite number or
            the unit is missing.
    """
    try:
        key = canonical_metal(metal)
    except ValueError as exc:
        raise InvalidStandard(str(exc), field=str(metal)) from None
    if not isinstance(max_allowable, (int, float)) or isinstance(max_allowable, bool):
        msg = f"Standard for {key} must be a number, got {max_allowable!r}."
        raise InvalidStandard(msg, field=key)
    if not math.isfinite(max_allowable) or max_allowable <= 0:
        msg = f"Standard for {key} must be a positive finite limit, got {max_allowable}."
        raise InvalidStandard(msg, field=key)
    if unit is None or not str(unit).strip():
        msg = f"Standard for {key} has no unit."
        raise InvalidStandard(msg, field=key)
    return MetalStandard(metal=key, max_allowable=float(max_allowable), unit=str(unit).strip())


class StandardsRegistry(VersionedStore[StandardsSnapshot]):
    """Versioned per-metal regulatory limits."""

    def __init__(
        self,
        standards: Mapping[str, tuple[float, str]] | None = None,
        *,
        history: Sequence[StandardsSnapshot] | None = None,
    ) -> None:
        if history is None:
            entries = validate_standards(
                (standards if standards is not None else WHO_STANDARDS).items()
            )
            history = [StandardsSnapshot(version=1, standards=tuple(entries.values()))]
        else:
            for snapshot in history:
                validate_standards(
                    (s.metal, (s.max_allowable, s.unit)) for s in snapshot.standards
                )
        super().__init__(history)

    @classmethod
    def empty(cls) -> StandardsRegistry:
        return cls({})

    def get(self, metal: str) -> MetalStandard:
        """Current standard for a metal.

        Raises:
            MetalNotConfigured: If no standard is registered for the metal.
        """
        standard = self.snapshot().get(metal)
        if standard is None:
            key = canonical_metal(metal)
            raise MetalNotConfigured(f"No standard configured for {key}.", field=key)
        return standard

    def set(self, metal: str, max_allowable: float, unit: str | None) -> StandardsSnapshot:
        """Add or replace one metal's standard as a new version."""
        standard = validate_standard(metal, max_allowable, unit)
        return self._commit(lambda current: _merge(current, [standard]))

    def set_many(self, standards: Mapping[str, tuple[float, str]]) -> StandardsSnapshot:
        """Add or replace several standards in one all-or-nothing version."""
        entries = validate_standards(standards.items())
        return self._commit(lambda current: _merge(current, entries.values()))

    def replace_all(self, standards: Mapping[str, tuple[float, str]]) -> StandardsSnapshot:
        """Supersede the whole registry with exactly these standards."""
        entries = validate_standards(standards.items())
        return self._commit(
            lambda current: StandardsSnapshot(
                version=current.version + 1,
                standards=tuple(entries.values()),
            )
        )


def validate_standards(
    items: Iterable[tuple[str, tuple[float, str]]],
) -> dict[str, MetalStandard]:
    entries: dict[str, MetalStandard] = {}
    for metal, entry in items:
        if isinstance(entry, (str, bytes)) or not isinstance(entry, Sequence) or len(entry) != 2:
            msg = f"Standard for {metal} must be a (max_allowable, unit) pair, got {entry!r}."
            raise InvalidStandard(msg, field=str(metal))
        max_allowable, unit = entry
        standard = validate_standard(metal, max_allowable, unit)
        if standard.metal in entries:
            msg = f"Standard for {standard.metal} given more than once."
            raise InvalidStandard(msg, field=standard.metal)
        entries[standard.metal] = standard
    return entries


def _merge(
    current: StandardsSnapshot, updates: Iterable[MetalStandard]
) -> StandardsSnapshot:
    merged = {s.metal: s for s in current.standards}
    for standard in updates:
        merged[standard.metal] = standard
    return StandardsSnapshot(version=current.version + 1, standards=tuple(merged.values()))
