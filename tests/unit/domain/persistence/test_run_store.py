"""Tests for run record persistence."""

import json
from pathlib import Path

import pytest

from deploygate.domain.models import MarkerKind
from deploygate.domain.models.run_markers import approved_by, deploying
from deploygate.domain.persistence import RunRecord, RunStore


class TestRunStore:
    def test_save_and_load(self, runs_root: Path) -> None:
        store = RunStore(runs_root=runs_root)
        record = RunRecord(run_id="r1", gate_ids=["A", "B"], markers=[approved_by("alice")])
        path = store.save(record)

        assert path == runs_root / "r1" / "run.json"
        assert not path.with_suffix(".json.tmp").exists()

        loaded = store.load("r1")
        assert loaded.gate_ids == ["A", "B"]
        assert loaded.markers[0].kind == MarkerKind.APPROVED_BY
        assert loaded.markers[0].user_id == "alice"

    def test_load_missing(self, runs_root: Path) -> None:
        with pytest.raises(FileNotFoundError):
            RunStore(runs_root=runs_root).load("nope")

    def test_load_invalid(self, runs_root: Path) -> None:
        run_dir = runs_root / "bad"
        run_dir.mkdir(parents=True)
        (run_dir / "run.json").write_text(json.dumps({"gate_ids": []}), encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid run data"):
            RunStore(runs_root=runs_root).load("bad")

    def test_update_creates_and_mutates(self, runs_root: Path) -> None:
        store = RunStore(runs_root=runs_root)
        store.update("r2", lambda r: r.gate_ids.append("X"))
        store.update("r2", lambda r: r.markers.append(deploying("X")))

        record = store.load("r2")
        assert record.gate_ids == ["X"]
        assert [m.kind for m in record.markers] == [MarkerKind.DEPLOYING]

    def test_list_and_delete(self, runs_root: Path) -> None:
        store = RunStore(runs_root=runs_root)
        store.save(RunRecord(run_id="b"))
        store.save(RunRecord(run_id="a"))
        (runs_root / "stray").mkdir()

        assert store.list_runs() == ["a", "b"]
        store.delete("a")
        assert store.list_runs() == ["b"]
        with pytest.raises(FileNotFoundError):
            store.delete("a")

    def test_legacy_gate_entries_are_migrated(self, runs_root: Path) -> None:
        run_dir = runs_root / "old"
        run_dir.mkdir(parents=True)
        legacy = {"run_id": "old", "gates": [{"id": "A", "message": "m"}, {"id": "B"}]}
        (run_dir / "run.json").write_text(json.dumps(legacy), encoding="utf-8")

        record = RunStore(runs_root=runs_root).load("old")
        assert record.gate_ids == ["A", "B"]


class TestRunMarkers:
    def test_display_names(self) -> None:
        assert approved_by("alice").display_name == "Approved by alice"
        assert deploying("A", message="Ship?").display_name == "Deploying: Ship?"
