"""Typed failures raised by the scoring engine and its configuration stores.

Every failure carries a stable ``code`` and, where it concerns one input,
the ``field`` (usually a metal id) so a settings form can show the error
next to the offending row.
"""

from __future__ import annotations

from hmpi.models.common import HMPIBase


class ErrorDetail(HMPIBase, frozen=True):
    """Serialisable description of an :class:`HMPIError`."""

    code: str
    message: str
    field: str | None = None


class HMPIError(Exception):
    """Base class for all recoverable scoring and configuration failures."""

    code = "HMPI_ERROR"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_detail(self) -> ErrorDetail:
        return ErrorDetail(code=self.code, message=self.message, field=self.field)


class MetalNotConfigured(HMPIError):
    """A metal has no standard in the registry."""

    code = "METAL_NOT_CONFIGURED"


class InvalidStandard(HMPIError):
    """A standard is non-positive, non-finite or has no unit."""

    code = "INVALID_STANDARD"


class InvalidWeight(HMPIError):
    """A weight lies outside [0, 1] or a normalized profile does not sum to 1."""

    code = "INVALID_WEIGHT"


class DegenerateWeights(HMPIError):
    """Weights sum to zero, so they cannot be renormalized."""

    code = "DEGENERATE_WEIGHTS"


class InvalidBandTable(HMPIError):
    """Risk bands are unsorted, overlapping, gapped or not open-ended."""

    code = "INVALID_BAND_TABLE"


class NoBandMatches(HMPIError):
    """No risk band contains the score."""

    code = "NO_BAND_MATCHES"


class EmptyReading(HMPIError):
    """A reading has no measured metals to aggregate."""

    code = "EMPTY_READING"
