"""Risk band table and categorizer.

Bands are ordered, contiguous half-open ranges covering ``[0, +inf)``, so
every non-negative score falls in exactly one band. The table is checked
when it is set; classification is a binary search over lower bounds.
"""

from __future__ import annotations

import bisect
import math
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from hmpi.scoring.defaults import BAND_PRESETS, DEFAULT_BAND_PRESET
from hmpi.scoring.errors import InvalidBandTable, NoBandMatches
from hmpi.scoring.models import BandsSnapshot, RiskBand
from hmpi.scoring.store import VersionedStore


def validate_bands(bands: Sequence[RiskBand | dict[str, Any]]) -> tuple[RiskBand, ...]:
    """Check that bands tile ``[0, +inf)`` with no gaps or overlaps.

    Raises:
        InvalidBandTable: On an empty table, bad bounds, blank or repeated
            names, gaps, overlaps, or a closed top band.
    """
    if not bands:
        raise InvalidBandTable("Band table must contain at least one band.")

    parsed: list[RiskBand] = []
    for position, band in enumerate(bands):
        try:
            parsed.append(RiskBand.model_validate(band))
        except ValidationError as exc:
            msg = f"Band {position} is malformed: {exc.errors()[0]['msg']}"
            raise InvalidBandTable(msg, field=f"bands[{position}]") from None

    seen: set[str] = set()
    expected_lower = 0.0
    for position, band in enumerate(parsed):
        field = band.name or f"bands[{position}]"
        if not band.name.strip():
            raise InvalidBandTable(f"Band {position} has no name.", field=field)
        if band.name in seen:
            raise InvalidBandTable(f"Band name '{band.name}' is repeated.", field=field)
        seen.add(band.name)
        if math.isnan(band.lower_bound) or math.isnan(band.upper_bound):
            raise InvalidBandTable(f"Band '{band.name}' has a NaN bound.", field=field)
        if not band.lower_bound < band.upper_bound:
            msg = (
                f"Band '{band.name}' lower bound {band.lower_bound} must be "
                f"below upper bound {band.upper_bound}."
            )
            raise InvalidBandTable(msg, field=field)
        if band.lower_bound < expected_lower:
            msg = f"Band '{band.name}' overlaps the previous band or is out of order."
            raise InvalidBandTable(msg, field=field)
        if band.lower_bound > expected_lower:
            msg = (
                f"Gap before band '{band.name}': scores in "
                f"[{expected_lower}, {band.lower_bound}) have no band."
            )
            raise InvalidBandTable(msg, field=field)
        expected_lower = band.upper_bound

    if parsed[-1].upper_bound != math.inf:
        msg = f"Top band '{parsed[-1].name}' must be open-ended (upper bound +inf)."
        raise InvalidBandTable(msg, field=parsed[-1].name)
    return tuple(parsed)


def classify(score: float, snapshot: BandsSnapshot) -> RiskBand:
    """Return the band containing ``score``; ``+inf`` lands in the top band.

    Raises:
        NoBandMatches: For negative or NaN scores, or a table that does not
            start at 0 (only possible with an unvalidated snapshot).
    """
    bands = snapshot.bands
    if not bands or math.isnan(score):
        raise NoBandMatches(f"No risk band matches score {score}.")
    lowers = [b.lower_bound for b in bands]
    index = bisect.bisect_right(lowers, score) - 1
    if index < 0:
        raise NoBandMatches(f"No risk band matches score {score}.")
    band = bands[index]
    if band.contains(score) or (score == math.inf and band.upper_bound == math.inf):
        return band
    raise NoBandMatches(f"No risk band matches score {score}.")


class RiskBandTable(VersionedStore[BandsSnapshot]):
    """Versioned risk band table."""

    def __init__(
        self,
        bands: Sequence[RiskBand | dict[str, Any]] | None = None,
        *,
        history: Sequence[BandsSnapshot] | None = None,
    ) -> None:
        if history is None:
            parsed = validate_bands(
                bands if bands is not None else BAND_PRESETS[DEFAULT_BAND_PRESET]
            )
            history = [BandsSnapshot(version=1, bands=parsed)]
        else:
            for snapshot in history:
                validate_bands(snapshot.bands)
        super().__init__(history)

    @classmethod
    def from_preset(cls, name: str) -> RiskBandTable:
        return cls(preset_bands(name))

    def classify(self, score: float) -> RiskBand:
        return classify(score, self.snapshot())

    def set_bands(self, bands: Sequence[RiskBand | dict[str, Any]]) -> BandsSnapshot:
        """Replace the whole table as a new version."""
        parsed = validate_bands(bands)
        return self._commit(
            lambda current: BandsSnapshot(version=current.version + 1, bands=parsed)
        )

    def use_preset(self, name: str) -> BandsSnapshot:
        """Replace the table with a named preset as a new version."""
        return self.set_bands(preset_bands(name))


class Categorizer:
    """Maps an aggregate index to its risk band.

    Kept separate from the table so the policy can be swapped without
    touching the engine.
    """

    def categorize(self, score: float, bands: BandsSnapshot | RiskBandTable) -> RiskBand:
        return classify(score, bands.snapshot())


def preset_bands(name: str) -> tuple[RiskBand, ...]:
    if name not in BAND_PRESETS:
        msg = f"Unknown risk band preset '{name}'. Known: {sorted(BAND_PRESETS)}."
        raise InvalidBandTable(msg)
    return BAND_PRESETS[name]
