"""Scoring service: process-wide configuration owner and batch scorer.

Holds the standards registry, weight profile and risk band table for the
lifetime of the process, exposes the admin write path (validated setters,
reset to defaults) and the read path used by the dashboards (single and
batch scoring, replay of historical results, previews of unsaved edits).

Deterministic -- no I/O.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping

import structlog

from hmpi.config.settings import Settings, get_settings
from hmpi.scoring.bands import RiskBandTable, preset_bands
from hmpi.scoring.config import ScoringConfig
from hmpi.scoring.defaults import WEIGHT_PRESETS, WHO_STANDARDS
from hmpi.scoring.engine import HMPIEngine
from hmpi.scoring.errors import HMPIError
from hmpi.scoring.models import (
    BandsSnapshot,
    BatchScoringResult,
    ConfigurationState,
    ConfigVersion,
    PollutionIndexResult,
    SampleReading,
    ScoringFailure,
    StandardsSnapshot,
    WeightsSnapshot,
)
from hmpi.scoring.standards import StandardsRegistry, validate_standards
from hmpi.scoring.weights import (
    DEFAULT_WEIGHT_SUM_TOLERANCE,
    WeightProfile,
    validate_weights,
)

logger = structlog.get_logger(__name__)


class ScoringService:
    """Owns the versioned configuration stores and scores samples against them."""

    def __init__(
        self,
        *,
        standards: StandardsRegistry | None = None,
        weights: WeightProfile | None = None,
        bands: RiskBandTable | None = None,
        config: ScoringConfig | None = None,
        engine: HMPIEngine | None = None,
        weight_preset: str = "formula_settings",
        band_preset: str = "formula_settings",
    ) -> None:
        self._standards = standards or StandardsRegistry()
        self._weights = weights or WeightProfile.from_preset(weight_preset)
        self._bands = bands or RiskBandTable.from_preset(band_preset)
        self._config = config or ScoringConfig()
        self._engine = engine or HMPIEngine()
        self._weight_preset = weight_preset
        self._band_preset = band_preset

    # -- Factory -------------------------------------------------------------

    @classmethod
    def with_defaults(cls, settings: Settings | None = None) -> ScoringService:
        """Create a service seeded from the presets named in settings."""
        settings = settings or get_settings()
        return cls(
            weights=WeightProfile.from_preset(
                settings.WEIGHT_PRESET, tolerance=settings.WEIGHT_SUM_TOLERANCE
            ),
            config=ScoringConfig.from_settings(settings),
            weight_preset=settings.WEIGHT_PRESET,
            band_preset=settings.RISK_BAND_PRESET,
        )

    @classmethod
    def from_state(
        cls,
        state: ConfigurationState,
        *,
        config: ScoringConfig | None = None,
        tolerance: float = DEFAULT_WEIGHT_SUM_TOLERANCE,
    ) -> ScoringService:
        """Restore a service from persisted version histories."""
        return cls(
            standards=StandardsRegistry(history=state.standards),
            weights=WeightProfile(history=state.weights, tolerance=tolerance),
            bands=RiskBandTable(history=state.bands),
            config=config,
        )

    # -- Stores --------------------------------------------------------------

    @property
    def standards(self) -> StandardsRegistry:
        return self._standards

    @property
    def weights(self) -> WeightProfile:
        return self._weights

    @property
    def bands(self) -> RiskBandTable:
        return self._bands

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def set_config(self, config: ScoringConfig) -> None:
        """Change the default strategies used when a call passes none."""
        self._config = config
        logger.info(
            "hmpi.strategies_changed",
            normalization=config.normalization.value,
            aggregation=config.aggregation.value,
        )

    def reset_to_defaults(self) -> ConfigVersion:
        """Supersede every store with its startup defaults.

        Old versions stay in history, so earlier results remain replayable.
        """
        standards = self._standards.replace_all(WHO_STANDARDS)
        weights = self._weights.set_all(WEIGHT_PRESETS[self._weight_preset], normalized=True)
        bands = self._bands.use_preset(self._band_preset)
        logger.info(
            "hmpi.reset_to_defaults",
            standards_version=standards.version,
            weights_version=weights.version,
            bands_version=bands.version,
        )
        return ConfigVersion(
            standards_version=standards.version,
            weights_version=weights.version,
            bands_version=bands.version,
            normalization=self._config.normalization,
            aggregation=self._config.aggregation,
        )

    # -- Scoring -------------------------------------------------------------

    def score(
        self, reading: SampleReading, config: ScoringConfig | None = None
    ) -> PollutionIndexResult:
        """Score one reading against the current configuration."""
        return self._engine.compute(
            reading,
            self._standards,
            self._weights,
            self._bands,
            config or self._config,
        )

    def score_batch(
        self,
        readings: Iterable[SampleReading],
        config: ScoringConfig | None = None,
    ) -> BatchScoringResult:
        """Score many readings against one consistent configuration.

        Snapshots are taken once up front, so an admin edit landing mid-batch
        never splits the batch across two configurations. Samples that cannot
        be scored are reported as failures rather than given a score.
        """
        config = config or self._config
        standards = self._standards.snapshot()
        weights = self._weights.snapshot()
        bands = self._bands.snapshot()

        results: list[PollutionIndexResult] = []
        failures: list[ScoringFailure] = []
        for reading in readings:
            try:
                result = self._engine.compute(reading, standards, weights, bands, config)
            except HMPIError as exc:
                failures.append(
                    ScoringFailure(sample_id=reading.sample_id, error=exc.to_detail())
                )
                continue
            results.append(result)

        counts = Counter(r.category for r in results)
        category_counts = {name: counts.get(name, 0) for name in bands.names}

        logger.info(
            "hmpi.batch_scored",
            scored=len(results),
            failed=len(failures),
            standards_version=standards.version,
            weights_version=weights.version,
            bands_version=bands.version,
        )
        return BatchScoringResult(
            results=results,
            failures=failures,
            category_counts=category_counts,
        )

    def rescore(
        self, reading: SampleReading, config_version: ConfigVersion
    ) -> PollutionIndexResult:
        """Reproduce a result with the exact store versions it recorded.

        Raises:
            KeyError: If a recorded version is not in this service's history,
                or the result came from a preview and was never committed.
        """
        if config_version.preview:
            msg = "Preview results were scored against uncommitted edits and cannot be replayed."
            raise KeyError(msg)
        return self._engine.compute(
            reading,
            self._standards.get_version(config_version.standards_version),
            self._weights.get_version(config_version.weights_version),
            self._bands.get_version(config_version.bands_version),
            ScoringConfig(
                normalization=config_version.normalization,
                aggregation=config_version.aggregation,
            ),
        )

    def preview(
        self,
        reading: SampleReading,
        *,
        standards: Mapping[str, tuple[float, str]] | None = None,
        weights: Mapping[str, float] | None = None,
        normalized: bool = False,
        band_preset: str | None = None,
        config: ScoringConfig | None = None,
    ) -> PollutionIndexResult:
        """Score against candidate edits without committing them.

        Candidate standards are merged over the current ones; candidate
        weights replace the current profile. The returned result carries the
        current version numbers plus one for each overridden store, i.e. the
        versions the edits would become if saved now, and is marked
        ``preview`` so it is never mistaken for a replayable result.

        Raises:
            InvalidStandard / InvalidWeight / InvalidBandTable: If a
                candidate edit would be rejected by the store.
        """
        standards_snap = self._standards.snapshot()
        if standards is not None:
            merged = {s.metal: s for s in standards_snap.standards}
            merged.update(validate_standards(standards.items()))
            standards_snap = StandardsSnapshot(
                version=standards_snap.version + 1,
                standards=tuple(merged.values()),
            )

        weights_snap = self._weights.snapshot()
        if weights is not None:
            weights_snap = WeightsSnapshot(
                version=weights_snap.version + 1,
                weights=validate_weights(
                    weights, normalized=normalized, tolerance=self._weights.tolerance
                ),
                normalized=normalized,
            )

        bands_snap = self._bands.snapshot()
        if band_preset is not None:
            bands_snap = BandsSnapshot(
                version=bands_snap.version + 1,
                bands=preset_bands(band_preset),
            )

        result = self._engine.compute(
            reading, standards_snap, weights_snap, bands_snap, config or self._config
        )
        return result.model_copy(
            update={"config_version": result.config_version.model_copy(update={"preview": True})}
        )

    # -- Persistence boundary --------------------------------------------------

    def export_state(self) -> ConfigurationState:
        """Full version history of every store, ready to persist."""
        return ConfigurationState(
            standards=self._standards.history(),
            weights=self._weights.history(),
            bands=self._bands.history(),
        )


