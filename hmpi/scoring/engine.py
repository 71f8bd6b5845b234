"""HMPI engine facade.

Takes one snapshot of each configuration store, rates every measured
metal, aggregates the ratings, categorizes the index and returns an
immutable result stamped with the versions it used.

Stateless per call; safe to run on any thread. Deterministic -- no I/O.
"""

from __future__ import annotations

from typing import Protocol, TypeVar

import structlog

from hmpi.scoring.aggregation import Aggregator
from hmpi.scoring.bands import Categorizer
from hmpi.scoring.config import ScoringConfig
from hmpi.scoring.errors import MetalNotConfigured
from hmpi.scoring.models import (
    AggregationMethod,
    BandsSnapshot,
    ConfigVersion,
    PollutionIndexResult,
    QualityRating,
    SampleReading,
    StandardsSnapshot,
    WeightsSnapshot,
)
from hmpi.scoring.normalization import QualityRater

logger = structlog.get_logger(__name__)

_T_co = TypeVar("_T_co", covariant=True)


class SnapshotSource(Protocol[_T_co]):
    """A store or a snapshot: anything that can hand out a stable view."""

    def snapshot(self) -> _T_co: ...


class HMPIEngine:
    """Computes the Heavy Metal Pollution Index for one sample at a time."""

    def __init__(
        self,
        *,
        rater: QualityRater | None = None,
        aggregator: Aggregator | None = None,
        categorizer: Categorizer | None = None,
    ) -> None:
        self._rater = rater or QualityRater()
        self._aggregator = aggregator or Aggregator()
        self._categorizer = categorizer or Categorizer()

    def compute(
        self,
        reading: SampleReading,
        standards: SnapshotSource[StandardsSnapshot],
        weights: SnapshotSource[WeightsSnapshot],
        bands: SnapshotSource[BandsSnapshot],
        config: ScoringConfig | None = None,
    ) -> PollutionIndexResult:
        """Score one reading.

        Steps:
        1. Snapshot standards, weights and bands (stable for the whole call).
        2. Look up the standard of every measured metal; a measured metal
           with no standard is an error, never silently skipped.
        3. Rate each metal with the configured normalization.
        4. Aggregate with the configured method.
        5. Categorize the aggregate through the band table.

        Raises:
            MetalNotConfigured: A measured metal has no standard.
            EmptyReading: The reading measures no metals.
            DegenerateWeights: Every measured metal has zero weight
                (weighted methods only).
            NoBandMatches: The band table does not cover the score.
        """
        config = config or ScoringConfig()
        standards_snap = standards.snapshot()
        weights_snap = weights.snapshot()
        bands_snap = bands.snapshot()

        ratings: list[QualityRating] = []
        for metal, concentration in reading.concentrations.items():
            standard = standards_snap.get(metal)
            if standard is None:
                logger.warning(
                    "hmpi.metal_not_configured",
                    sample_id=reading.sample_id,
                    metal=metal,
                    standards_version=standards_snap.version,
                )
                msg = f"Sample {reading.sample_id} measures {metal}, which has no standard."
                raise MetalNotConfigured(msg, field=metal)
            ratings.append(self._rater.rate(concentration, standard, config.normalization))

        index = self._aggregator.aggregate(ratings, weights_snap, config.aggregation)
        band = self._categorizer.categorize(index, bands_snap)

        if config.aggregation == AggregationMethod.MAXIMUM:
            effective = {}
        else:
            effective = self._aggregator.effective_weights(ratings, weights_snap)

        measured = set(reading.concentrations)
        result = PollutionIndexResult(
            sample_id=reading.sample_id,
            aggregate_index=index,
            per_metal_ratings=ratings,
            category=band.name,
            band=band,
            config_version=ConfigVersion(
                standards_version=standards_snap.version,
                weights_version=weights_snap.version,
                bands_version=bands_snap.version,
                normalization=config.normalization,
                aggregation=config.aggregation,
            ),
            effective_weights=effective,
            exceedances=[r.metal for r in ratings if r.exceeds_standard],
            unmeasured_metals=[
                w.metal
                for w in weights_snap.weights
                if w.weight > 0.0 and w.metal not in measured
            ],
        )

        logger.debug(
            "hmpi.computed",
            sample_id=reading.sample_id,
            aggregate_index=index,
            category=band.name,
            metals=len(ratings),
        )
        return result
