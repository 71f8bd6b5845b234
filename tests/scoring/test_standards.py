"""Tests for StandardsRegistry: lookups, validated updates and versioning."""

from __future__ import annotations

import math
import threading

import pytest

from hmpi.scoring.defaults import WHO_STANDARDS
from hmpi.scoring.errors import InvalidStandard, MetalNotConfigured
from hmpi.scoring.models import MetalStandard, StandardsSnapshot
from hmpi.scoring.standards import StandardsRegistry


class TestDefaults:
    def test_who_metals_loaded(self) -> None:
        reg = StandardsRegistry()
        assert set(reg.snapshot().metals) == set(WHO_STANDARDS)
        assert reg.version == 1

    def test_who_lead_limit(self) -> None:
        lead = StandardsRegistry().get("Pb")
        assert lead.max_allowable == 0.01
        assert lead.unit == "mg/L"

    def test_empty_registry(self) -> None:
        reg = StandardsRegistry.empty()
        assert reg.snapshot().standards == ()


class TestGet:
    def test_unknown_metal(self) -> None:
        with pytest.raises(MetalNotConfigured) as exc_info:
            StandardsRegistry().get("U")
        assert exc_info.value.field == "u"

    def test_lookup_by_symbol_or_name(self) -> None:
        reg = StandardsRegistry()
        assert reg.get("Cd") == reg.get("cadmium")


class TestSet:
    def test_set_creates_new_version(self) -> None:
        reg = StandardsRegistry()
        snap = reg.set("lead", 0.015, "mg/L")
        assert snap.version == 2
        assert reg.get("lead").max_allowable == 0.015
        assert reg.get_version(1).get("lead").max_allowable == 0.01

    def test_set_adds_new_metal(self) -> None:
        reg = StandardsRegistry()
        reg.set("uranium", 0.03, "mg/L")
        assert reg.get("uranium").max_allowable == 0.03
        assert len(reg.snapshot().standards) == len(WHO_STANDARDS) + 1

    def test_unit_is_stripped(self) -> None:
        reg = StandardsRegistry()
        reg.set("lead", 10.0, " µg/L ")
        assert reg.get("lead").unit == "µg/L"

    @pytest.mark.parametrize(
        ("limit", "unit"),
        [
            (0.0, "mg/L"),
            (-0.01, "mg/L"),
            (math.nan, "mg/L"),
            (math.inf, "mg/L"),
            ("0.01", "mg/L"),
            (True, "mg/L"),
            (0.01, None),
            (0.01, ""),
            (0.01, "   "),
        ],
    )
    def test_invalid_rejected_without_mutation(self, limit: object, unit: object) -> None:
        reg = StandardsRegistry()
        before = reg.snapshot()
        with pytest.raises(InvalidStandard) as exc_info:
            reg.set("lead", limit, unit)  # type: ignore[arg-type]
        assert exc_info.value.field == "lead"
        assert reg.snapshot() is before
        assert len(reg.history()) == 1

    def test_blank_metal_rejected(self) -> None:
        with pytest.raises(InvalidStandard):
            StandardsRegistry().set(" ", 0.01, "mg/L")


class TestSetMany:
    """Bulk edits land as one version or not at all."""

    def test_all_applied_in_one_version(self) -> None:
        reg = StandardsRegistry()
        snap = reg.set_many({"lead": (0.02, "mg/L"), "Cd": (0.005, "mg/L")})
        assert snap.version == 2
        assert reg.get("lead").max_allowable == 0.02
        assert reg.get("cadmium").max_allowable == 0.005

    def test_all_or_nothing(self) -> None:
        reg = StandardsRegistry()
        with pytest.raises(InvalidStandard) as exc_info:
            reg.set_many({"lead": (0.02, "mg/L"), "cadmium": (-1.0, "mg/L")})
        assert exc_info.value.field == "cadmium"
        assert reg.version == 1
        assert reg.get("lead").max_allowable == 0.01

    def test_duplicate_after_canonicalisation(self) -> None:
        with pytest.raises(InvalidStandard, match="more than once"):
            StandardsRegistry().set_many({"Pb": (0.02, "mg/L"), "lead": (0.03, "mg/L")})

    def test_replace_all_drops_other_metals(self) -> None:
        reg = StandardsRegistry()
        reg.replace_all({"lead": (0.01, "mg/L")})
        assert reg.snapshot().metals == ["lead"]
        with pytest.raises(MetalNotConfigured):
            reg.get("zinc")
        assert "zinc" in reg.get_version(1).metals


class TestVersioning:
    """Every edit appends a version; held snapshots never change."""

    def test_snapshot_is_stable_after_update(self) -> None:
        reg = StandardsRegistry()
        held = reg.snapshot()
        reg.set("lead", 0.5, "mg/L")
        assert held.get("lead").max_allowable == 0.01
        assert held.version == 1

    def test_history_oldest_first(self) -> None:
        reg = StandardsRegistry()
        reg.set("lead", 0.02, "mg/L")
        reg.set("lead", 0.03, "mg/L")
        assert [s.version for s in reg.history()] == [1, 2, 3]

    def test_unknown_version(self) -> None:
        with pytest.raises(KeyError):
            StandardsRegistry().get_version(5)
        with pytest.raises(KeyError):
            StandardsRegistry().get_version(0)

    def test_version_ids_unique(self) -> None:
        reg = StandardsRegistry()
        reg.set("lead", 0.02, "mg/L")
        ids = {s.version_id for s in reg.history()}
        assert len(ids) == 2

    def test_restore_from_history(self) -> None:
        reg = StandardsRegistry()
        reg.set("lead", 0.02, "mg/L")
        restored = StandardsRegistry(history=reg.history())
        assert restored.version == 2
        assert restored.get("lead").max_allowable == 0.02

    def test_restore_rejects_gapped_history(self) -> None:
        reg = StandardsRegistry()
        reg.set("lead", 0.02, "mg/L")
        reg.set("lead", 0.03, "mg/L")
        history = reg.history()
        with pytest.raises(ValueError, match="without gaps"):
            StandardsRegistry(history=[history[0], history[2]])

    def test_concurrent_writers_serialised(self) -> None:
        reg = StandardsRegistry()
        writers = 16
        barrier = threading.Barrier(writers)

        def write(i: int) -> None:
            barrier.wait()
            reg.set("lead", 0.01 + i * 0.001, "mg/L")

        threads = [threading.Thread(target=write, args=(i,)) for i in range(writers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert reg.version == writers + 1
        assert [s.version for s in reg.history()] == list(range(1, writers + 2))


class TestMalformedEntries:
    """Bulk writes reject entries that are not (limit, unit) pairs."""

    @pytest.mark.parametrize("entry", [0.02, "0.02 mg/L", (0.02,), (0.02, "mg/L", "WHO"), None])
    def test_set_many_rejects_non_pair(self, entry: object) -> None:
        reg = StandardsRegistry()
        with pytest.raises(InvalidStandard) as exc_info:
            reg.set_many({"lead": entry})  # type: ignore[dict-item]
        assert exc_info.value.field == "lead"
        assert reg.version == 1

    def test_replace_all_rejects_non_pair(self) -> None:
        reg = StandardsRegistry()
        with pytest.raises(InvalidStandard):
            reg.replace_all({"lead": (0.01, "mg/L"), "cadmium": 0.003})  # type: ignore[dict-item]
        assert reg.version == 1

    def test_list_pair_accepted(self) -> None:
        reg = StandardsRegistry()
        reg.set_many({"lead": [0.02, "mg/L"]})  # type: ignore[dict-item]
        assert reg.get("lead").max_allowable == 0.02


class TestRestoreValidation:
    def test_duplicate_metal_in_history_rejected(self) -> None:
        snapshot = StandardsSnapshot(
            version=1,
            standards=(
                MetalStandard(metal="lead", max_allowable=0.01, unit="mg/L"),
                MetalStandard(metal="Pb", max_allowable=0.02, unit="mg/L"),
            ),
        )
        with pytest.raises(InvalidStandard, match="more than once"):
            StandardsRegistry(history=[snapshot])

    def test_blank_unit_in_history_rejected(self) -> None:
        snapshot = StandardsSnapshot(
            version=1,
            standards=(MetalStandard(metal="lead", max_allowable=0.01, unit="   "),),
        )
        with pytest.raises(InvalidStandard):
            StandardsRegistry(history=[snapshot])
