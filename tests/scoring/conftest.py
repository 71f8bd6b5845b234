"""Shared fixtures for the HMPI scoring tests."""

from __future__ import annotations

import pytest

from hmpi.scoring.bands import RiskBandTable
from hmpi.scoring.engine import HMPIEngine
from hmpi.scoring.models import SampleReading
from hmpi.scoring.standards import StandardsRegistry
from hmpi.scoring.weights import WeightProfile


@pytest.fixture
def engine() -> HMPIEngine:
    return HMPIEngine()


@pytest.fixture
def standards() -> StandardsRegistry:
    """WHO defaults for all ten metals."""
    return StandardsRegistry()


@pytest.fixture
def weights() -> WeightProfile:
    """Four-metal calculator weights (Pb 0.25, As 0.30, Cd 0.25, Hg 0.20)."""
    return WeightProfile.from_preset("calculator")


@pytest.fixture
def bands() -> RiskBandTable:
    """Default Safe [0,50) / Moderate [50,100) / High [100,inf)."""
    return RiskBandTable()


@pytest.fixture
def calculator_sample() -> SampleReading:
    """Pb 50, As 80, Cd 66.67, Hg 50 under linear WHO ratings."""
    return SampleReading(
        sample_id="GW-001",
        concentrations={"pb": 0.005, "as": 0.008, "cd": 0.002, "hg": 0.003},
    )
