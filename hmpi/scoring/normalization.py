"""Per-metal quality rating (Qi) under a selectable normalization.

Every strategy maps ``C = 0`` to 0, is non-decreasing in ``C``, and maps
``C = S`` to exactly 100, so an at-standard concentration scores the same
whichever method is chosen:

    linear       Qi = 100 * C/S
    logarithmic  Qi = 100 * log2(1 + C/S)
    exponential  Qi = 100 * (e^(C/S) - 1) / (e - 1)

Deterministic -- no I/O.
"""

from __future__ import annotations

import math
from collections.abc import Callable

from hmpi.scoring.errors import InvalidStandard
from hmpi.scoring.models import MetalStandard, NormalizationMethod, QualityRating

# e - 1, computed the same way as the numerator so C = S gives exactly 100.
_E_MINUS_ONE = math.expm1(1.0)


def _linear(ratio: float) -> float:
    return 100.0 * ratio


def _logarithmic(ratio: float) -> float:
    return 100.0 * math.log2(1.0 + ratio)


def _exponential(ratio: float) -> float:
    try:
        return 100.0 * (math.expm1(ratio) / _E_MINUS_ONE)
    except OverflowError:
        return math.inf


_NORMALIZERS: dict[NormalizationMethod, Callable[[float], float]] = {
    NormalizationMethod.LINEAR: _linear,
    NormalizationMethod.LOGARITHMIC: _logarithmic,
    NormalizationMethod.EXPONENTIAL: _exponential,
}


class QualityRater:
    """Rates one metal's concentration against its standard."""

    def rate(
        self,
        concentration: float,
        standard: MetalStandard,
        method: NormalizationMethod = NormalizationMethod.LINEAR,
    ) -> QualityRating:
        """Compute Qi for one metal.

        Raises:
            InvalidStandard: If the standard's limit is not positive. Stores
                never publish such a standard; this guards a corrupt snapshot.
            ValueError: If the concentration is negative or NaN.
        """
        max_allowable = standard.max_allowable
        if not max_allowable > 0:
            msg = f"Standard for {standard.metal} must be positive, got {max_allowable}."
            raise InvalidStandard(msg, field=standard.metal)
        if not concentration >= 0:
            msg = f"Concentration for {standard.metal} must be >= 0, got {concentration}."
            raise ValueError(msg)

        normalizer = _NORMALIZERS[NormalizationMethod(method)]
        rating = normalizer(concentration / max_allowable)

        return QualityRating(
            metal=standard.metal,
            rating=rating,
            concentration=concentration,
            max_allowable=max_allowable,
            unit=standard.unit,
            exceeds_standard=concentration > max_allowable,
        )
