"""Scoring strategy configuration.

Selects the normalization and aggregation strategies for one computation.
Defaults follow the admin formula screen (linear + weighted sum) and can be
overridden per call or from settings.

Deterministic -- no I/O.
"""

from __future__ import annotations

from hmpi.config.settings import Settings
from hmpi.models.common import HMPIBase
from hmpi.scoring.models import AggregationMethod, NormalizationMethod


class ScoringConfig(HMPIBase, frozen=True):
    """Strategy selection for the HMPI engine."""

    normalization: NormalizationMethod = NormalizationMethod.LINEAR
    aggregation: AggregationMethod = AggregationMethod.WEIGHTED_SUM

    @classmethod
    def from_settings(cls, settings: Settings) -> ScoringConfig:
        return cls(
            normalization=settings.DEFAULT_NORMALIZATION,
            aggregation=settings.DEFAULT_AGGREGATION,
        )
