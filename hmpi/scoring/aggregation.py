"""Aggregation of per-metal ratings into the HMPI.

Weights are renormalized over the metals actually rated, so a sample
missing a metal is neither penalised nor rewarded for it:

    weighted_sum    HMPI = sum(Wi' * Qi)
    geometric_mean  HMPI = prod(Qi ** Wi')
    maximum         HMPI = max(Qi)          (weights ignored)

Deterministic -- no I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

import numpy as np

from hmpi.scoring.errors import DegenerateWeights, EmptyReading
from hmpi.scoring.models import (
    AggregationMethod,
    QualityRating,
    WeightsSnapshot,
)

logger = logging.getLogger(__name__)


def _weighted_sum(q: np.ndarray, w: np.ndarray) -> float:
    return float(np.dot(w, q))


def _geometric_mean(q: np.ndarray, w: np.ndarray) -> float:
    if np.any(q == 0.0):
        return 0.0
    return float(np.prod(np.power(q, w)))


def _check_ratings(ratings: Sequence[QualityRating]) -> None:
    if not ratings:
        raise EmptyReading("No metals were measured; the sample cannot be scored.")
    seen: set[str] = set()
    for r in ratings:
        if r.metal in seen:
            msg = f"Metal {r.metal} is rated more than once; pass one rating per metal."
            raise ValueError(msg)
        seen.add(r.metal)


_WEIGHTED: dict[AggregationMethod, Callable[[np.ndarray, np.ndarray], float]] = {
    AggregationMethod.WEIGHTED_SUM: _weighted_sum,
    AggregationMethod.GEOMETRIC_MEAN: _geometric_mean,
}


class Aggregator:
    """Combines quality ratings into a single index."""

    def effective_weights(
        self,
        ratings: Sequence[QualityRating],
        weights: WeightsSnapshot,
    ) -> dict[str, float]:
        """Weights renormalized over the rated metals (Wi').

        Raises:
            EmptyReading: If there are no ratings.
            DegenerateWeights: If every rated metal has weight 0.
            ValueError: If a metal is rated more than once.
        """
        _check_ratings(ratings)
        raw = {r.metal: weights.get(r.metal) for r in ratings}
        total = float(np.sum(np.fromiter(raw.values(), dtype=np.float64)))
        if total <= 0.0:
            metals = ", ".join(sorted(raw))
            msg = f"All measured metals ({metals}) have zero weight."
            raise DegenerateWeights(msg)
        if not weights.normalized or len(raw) != len(weights.weights):
            logger.debug("Renormalizing weights over %d rated metals", len(raw))
        return {metal: weight / total for metal, weight in raw.items()}

    def aggregate(
        self,
        ratings: Sequence[QualityRating],
        weights: WeightsSnapshot,
        method: AggregationMethod = AggregationMethod.WEIGHTED_SUM,
    ) -> float:
        """Aggregate ratings with the chosen method.

        Raises:
            EmptyReading: If there are no ratings.
            DegenerateWeights: For weighted methods when every rated metal
                has weight 0.
            ValueError: If a metal is rated more than once.
        """
        _check_ratings(ratings)

        method = AggregationMethod(method)
        if method == AggregationMethod.MAXIMUM:
            return float(np.max(np.array([r.rating for r in ratings], dtype=np.float64)))

        shares = self.effective_weights(ratings, weights)
        # Zero-share metals take no part, so 0 * inf never appears.
        present = [(r.rating, shares[r.metal]) for r in ratings if shares[r.metal] > 0.0]
        q = np.array([rating for rating, _ in present], dtype=np.float64)
        w = np.array([share for _, share in present], dtype=np.float64)
        return _WEIGHTED[method](q, w)
