"""Startup defaults: WHO standards, weight presets and risk band presets.

The formula screen, the calculator and the risk map use different risk
thresholds. Each table is kept as its own named preset; ``formula_settings``
is the default because it is edited alongside the weights and strategies.
"""

from __future__ import annotations

import math

from hmpi.scoring.models import RiskBand

# WHO drinking-water guideline limits.
WHO_STANDARDS: dict[str, tuple[float, str]] = {
    "lead": (0.01, "mg/L"),
    "cadmium": (0.003, "mg/L"),
    "chromium": (0.05, "mg/L"),
    "arsenic": (0.01, "mg/L"),
    "mercury": (0.006, "mg/L"),
    "nickel": (0.07, "mg/L"),
    "copper": (2.0, "mg/L"),
    "zinc": (3.0, "mg/L"),
    "iron": (0.3, "mg/L"),
    "manganese": (0.1, "mg/L"),
}

WEIGHT_PRESETS: dict[str, dict[str, float]] = {
    # Admin formula screen, all ten metals.
    "formula_settings": {
        "lead": 0.2,
        "cadmium": 0.2,
        "chromium": 0.2,
        "arsenic": 0.1,
        "mercury": 0.1,
        "nickel": 0.05,
        "copper": 0.05,
        "zinc": 0.05,
        "iron": 0.025,
        "manganese": 0.025,
    },
    # Four-metal calculator; arsenic weighted highest for toxicity.
    "calculator": {
        "lead": 0.25,
        "arsenic": 0.30,
        "cadmium": 0.25,
        "mercury": 0.20,
    },
}

# The calculator thresholds are inclusive (<= 30, <= 100); nextafter turns
# them into the equivalent half-open bounds without moving the boundary.
_CALC_SAFE_MAX = math.nextafter(30.0, math.inf)
_CALC_MODERATE_MAX = math.nextafter(100.0, math.inf)

BAND_PRESETS: dict[str, tuple[RiskBand, ...]] = {
    "formula_settings": (
        RiskBand(name="Safe", lower_bound=0.0, upper_bound=50.0),
        RiskBand(name="Moderate", lower_bound=50.0, upper_bound=100.0),
        RiskBand(name="High", lower_bound=100.0, upper_bound=math.inf),
    ),
    "calculator": (
        RiskBand(name="Safe", lower_bound=0.0, upper_bound=_CALC_SAFE_MAX),
        RiskBand(name="Moderate", lower_bound=_CALC_SAFE_MAX, upper_bound=_CALC_MODERATE_MAX),
        RiskBand(name="High", lower_bound=_CALC_MODERATE_MAX, upper_bound=math.inf),
    ),
    "risk_map": (
        RiskBand(name="Safe", lower_bound=0.0, upper_bound=100.0),
        RiskBand(name="Moderate", lower_bound=100.0, upper_bound=200.0),
        RiskBand(name="High", lower_bound=200.0, upper_bound=math.inf),
    ),
}

DEFAULT_WEIGHT_PRESET = "formula_settings"
DEFAULT_BAND_PRESET = "formula_settings"
