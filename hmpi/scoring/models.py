"""Scoring enums, value objects, configuration snapshots and results.

Defines the normalization and aggregation strategy names, the per-metal
standard/weight/band records, the immutable store snapshots, and the
result models returned by the engine and the scoring service.

Deterministic -- no I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BeforeValidator, Field, field_validator

from hmpi.models.common import (
    HMPIBase,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)
from hmpi.scoring.errors import ErrorDetail

# ---------------------------------------------------------------------------
# Metal identifiers
# ---------------------------------------------------------------------------

# Chemical symbol -> canonical element name.
METAL_ALIASES: dict[str, str] = {
    "pb": "lead",
    "as": "arsenic",
    "cd": "cadmium",
    "hg": "mercury",
    "cr": "chromium",
    "ni": "nickel",
    "cu": "copper",
    "zn": "zinc",
    "fe": "iron",
    "mn": "manganese",
}


def canonical_metal(metal: Any) -> str:
    """Canonicalise a metal id: strip, lower-case, map symbols to names.

    ``"Pb"``, ``" pb "`` and ``"Lead"`` all become ``"lead"``.
    """
    if not isinstance(metal, str):
        msg = f"metal id must be a string, got {type(metal).__name__}"
        raise ValueError(msg)
    key = metal.strip().lower()
    if not key:
        msg = "metal id must not be blank"
        raise ValueError(msg)
    return METAL_ALIASES.get(key, key)


MetalId = Annotated[str, BeforeValidator(canonical_metal)]


# ---------------------------------------------------------------------------
# Enums (all StrEnum)
# ---------------------------------------------------------------------------


class NormalizationMethod(StrEnum):
    """How a concentration is scaled against its standard."""

    LINEAR = "linear"
    LOGARITHMIC = "logarithmic"
    EXPONENTIAL = "exponential"


class AggregationMethod(StrEnum):
    """How per-metal ratings combine into one index."""

    WEIGHTED_SUM = "weighted_sum"
    GEOMETRIC_MEAN = "geometric_mean"
    MAXIMUM = "maximum"


# ---------------------------------------------------------------------------
# Configuration records
# ---------------------------------------------------------------------------


class MetalStandard(HMPIBase, frozen=True):
    """Maximum allowable concentration for one metal."""

    metal: MetalId
    max_allowable: float = Field(gt=0.0, allow_inf_nan=False)
    unit: str = Field(min_length=1)


class MetalWeight(HMPIBase, frozen=True):
    """Relative importance of one metal in the aggregate index."""

    metal: MetalId
    weight: float = Field(ge=0.0, le=1.0)


class RiskBand(HMPIBase, frozen=True):
    """Named score range ``[lower_bound, upper_bound)``.

    The topmost band has ``upper_bound = +inf``. Ordering, contiguity and
    coverage are checked by ``RiskBandTable.set_bands``, not here.
    """

    name: str
    lower_bound: float
    upper_bound: float

    def contains(self, score: float) -> bool:
        return self.lower_bound <= score < self.upper_bound


# ---------------------------------------------------------------------------
# Immutable store snapshots
# ---------------------------------------------------------------------------


class _Snapshot(HMPIBase, frozen=True):
    """One immutable version of a configuration store."""

    version: int = Field(ge=1)
    version_id: UUIDv7 = Field(default_factory=new_uuid7)
    created_at: UTCTimestamp = Field(default_factory=utc_now)

    def snapshot(self) -> _Snapshot:
        """A snapshot is already a stable view of itself."""
        return self


class StandardsSnapshot(_Snapshot, frozen=True):
    """Standards registry contents at one version."""

    standards: tuple[MetalStandard, ...] = ()

    def get(self, metal: str) -> MetalStandard | None:
        key = canonical_metal(metal)
        for standard in self.standards:
            if standard.metal == key:
                return standard
        return None

    @property
    def metals(self) -> list[str]:
        return [s.metal for s in self.standards]


class WeightsSnapshot(_Snapshot, frozen=True):
    """Weight profile contents at one version.

    ``normalized`` records whether the weights were declared (and checked)
    to sum to 1 when they were set.
    """

    weights: tuple[MetalWeight, ...] = ()
    normalized: bool = False

    def get(self, metal: str) -> float:
        key = canonical_metal(metal)
        for entry in self.weights:
            if entry.metal == key:
                return entry.weight
        return 0.0

    def as_dict(self) -> dict[str, float]:
        return {w.metal: w.weight for w in self.weights}


class BandsSnapshot(_Snapshot, frozen=True):
    """Risk band table contents at one version, ordered by lower bound."""

    bands: tuple[RiskBand, ...] = ()

    @property
    def names(self) -> list[str]:
        return [b.name for b in self.bands]


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class SampleReading(HMPIBase, frozen=True):
    """Measured metal concentrations for one water sample.

    Metals absent from ``concentrations`` were not measured; they are
    excluded from scoring, never treated as zero.
    """

    sample_id: str = Field(min_length=1)
    concentrations: dict[
        str, Annotated[float, Field(ge=0.0, allow_inf_nan=False)]
    ] = Field(default_factory=dict)

    @field_validator("concentrations", mode="before")
    @classmethod
    def _canonical_metals(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return value
        canonical: dict[str, Any] = {}
        for raw_metal, concentration in value.items():
            metal = canonical_metal(raw_metal)
            if metal in canonical:
                msg = f"metal '{metal}' is measured more than once"
                raise ValueError(msg)
            canonical[metal] = concentration
        return canonical


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class QualityRating(HMPIBase, frozen=True):
    """Normalized per-metal score (Qi) with the inputs that produced it."""

    metal: MetalId
    rating: float = Field(ge=0.0)
    concentration: float = Field(ge=0.0)
    max_allowable: float
    unit: str
    exceeds_standard: bool = False


class ConfigVersion(HMPIBase, frozen=True):
    """Store versions and strategies a result was computed with.

    ``preview`` marks a result scored against uncommitted edits. Its
    version numbers are only the ones the edits would have received, so
    such a result cannot be replayed.
    """

    standards_version: int = Field(ge=1)
    weights_version: int = Field(ge=1)
    bands_version: int = Field(ge=1)
    normalization: NormalizationMethod
    aggregation: AggregationMethod
    preview: bool = False


class PollutionIndexResult(HMPIBase, frozen=True):
    """Immutable HMPI result for one sample.

    Holds no ids or timestamps, so scoring the same reading against the
    same snapshots always yields an equal result.
    """

    sample_id: str
    aggregate_index: float = Field(ge=0.0)
    per_metal_ratings: list[QualityRating] = Field(default_factory=list)
    category: str
    band: RiskBand
    config_version: ConfigVersion
    effective_weights: dict[str, float] = Field(default_factory=dict)
    exceedances: list[str] = Field(default_factory=list)
    unmeasured_metals: list[str] = Field(default_factory=list)

    @property
    def display_index(self) -> float:
        """Aggregate index rounded to 2 decimals for tables and badges."""
        return round(self.aggregate_index, 2)

    def rating_for(self, metal: str) -> QualityRating | None:
        key = canonical_metal(metal)
        return next((r for r in self.per_metal_ratings if r.metal == key), None)


class ScoringFailure(HMPIBase, frozen=True):
    """A sample that could not be scored, with the reason."""

    sample_id: str
    error: ErrorDetail


class BatchScoringResult(HMPIBase, frozen=True):
    """Outcome of scoring many samples against one configuration."""

    results: list[PollutionIndexResult] = Field(default_factory=list)
    failures: list[ScoringFailure] = Field(default_factory=list)
    category_counts: dict[str, int] = Field(default_factory=dict)

    @property
    def scored_count(self) -> int:
        return len(self.results)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


class ConfigurationState(HMPIBase, frozen=True):
    """Full version history of all three stores, for persistence."""

    standards: list[StandardsSnapshot]
    weights: list[WeightsSnapshot]
    bands: list[BandsSnapshot]
