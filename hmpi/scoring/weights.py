"""Weight profile: relative importance of each metal in the aggregate.

Weights are stored as entered. A profile is either declared normalized
(checked to sum to 1 within tolerance when set) or it is not; the flag is
recorded on the snapshot so downstream code never has to guess.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from hmpi.scoring.defaults import DEFAULT_WEIGHT_PRESET, WEIGHT_PRESETS
from hmpi.scoring.errors import DegenerateWeights, InvalidWeight
from hmpi.scoring.models import MetalWeight, WeightsSnapshot, canonical_metal
from hmpi.scoring.store import VersionedStore

DEFAULT_WEIGHT_SUM_TOLERANCE = 1e-6


def validate_weights(
    weights: Mapping[str, float],
    *,
    normalized: bool = False,
    tolerance: float = DEFAULT_WEIGHT_SUM_TOLERANCE,
) -> tuple[MetalWeight, ...]:
    """Check a full weight mapping and build its entries.

    Raises:
        InvalidWeight: If a weight is outside [0, 1], a metal repeats, or a
            profile declared normalized does not sum to 1.
    """
    entries: dict[str, MetalWeight] = {}
    for metal, weight in weights.items():
        try:
            key = canonical_metal(metal)
        except ValueError as exc:
            raise InvalidWeight(str(exc), field=str(metal)) from None
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            msg = f"Weight for {key} must be a number, got {weight!r}."
            raise InvalidWeight(msg, field=key)
        if not 0.0 <= weight <= 1.0:
            msg = f"Weight for {key} must lie in [0, 1], got {weight}."
            raise InvalidWeight(msg, field=key)
        if key in entries:
            msg = f"Weight for {key} given more than once."
            raise InvalidWeight(msg, field=key)
        entries[key] = MetalWeight(metal=key, weight=float(weight))

    if normalized:
        total = math.fsum(e.weight for e in entries.values())
        if abs(total - 1.0) > tolerance:
            msg = f"Weights declared normalized but sum to {total:.6f}."
            raise InvalidWeight(msg)
    return tuple(entries.values())


def normalize(snapshot: WeightsSnapshot) -> dict[str, float]:
    """Rescale a snapshot's weights to sum to 1.

    Raises:
        DegenerateWeights: If the weights sum to 0.
    """
    total = math.fsum(w.weight for w in snapshot.weights)
    if total <= 0.0:
        msg = "Weights sum to zero and cannot be normalized."
        raise DegenerateWeights(msg)
    return {w.metal: w.weight / total for w in snapshot.weights}


class WeightProfile(VersionedStore[WeightsSnapshot]):
    """Versioned per-metal weights."""

    def __init__(
        self,
        weights: Mapping[str, float] | None = None,
        *,
        normalized: bool | None = None,
        tolerance: float = DEFAULT_WEIGHT_SUM_TOLERANCE,
        history: Sequence[WeightsSnapshot] | None = None,
    ) -> None:
        self._tolerance = tolerance
        if history is None:
            if weights is None:
                weights = WEIGHT_PRESETS[DEFAULT_WEIGHT_PRESET]
                normalized = True if normalized is None else normalized
            entries = validate_weights(
                weights, normalized=bool(normalized), tolerance=tolerance
            )
            history = [
                WeightsSnapshot(version=1, weights=entries, normalized=bool(normalized))
            ]
        else:
            for snapshot in history:
                validate_weights(
                    {w.metal: w.weight for w in snapshot.weights},
                    normalized=snapshot.normalized,
                    tolerance=tolerance,
                )
        super().__init__(history)

    @classmethod
    def from_preset(
        cls, name: str, *, tolerance: float = DEFAULT_WEIGHT_SUM_TOLERANCE
    ) -> WeightProfile:
        """Build a profile from a named preset (presets sum to 1).

        Raises:
            InvalidWeight: If the preset name is unknown.
        """
        if name not in WEIGHT_PRESETS:
            msg = f"Unknown weight preset '{name}'. Known: {sorted(WEIGHT_PRESETS)}."
            raise InvalidWeight(msg)
        return cls(WEIGHT_PRESETS[name], normalized=True, tolerance=tolerance)

    @property
    def tolerance(self) -> float:
        return self._tolerance

    def get(self, metal: str) -> float:
        """Current weight for a metal; 0.0 if unset."""
        return self.snapshot().get(metal)

    def set_all(
        self, weights: Mapping[str, float], *, normalized: bool = False
    ) -> WeightsSnapshot:
        """Replace the whole profile as a new version."""
        entries = validate_weights(weights, normalized=normalized, tolerance=self._tolerance)
        return self._commit(
            lambda current: WeightsSnapshot(
                version=current.version + 1,
                weights=entries,
                normalized=normalized,
            )
        )

    def normalized(self) -> dict[str, float]:
        """Current weights rescaled to sum to 1."""
        return normalize(self.snapshot())
