from pathlib import Path
from datetime import datetime, timezone
import json
import shutil
import threading
from typing import Any, Callable

from pydantic import BaseModel, Field, model_validator

from deploygate.domain.models.run_markers import RunMarker
from deploygate.domain.constants import (
    DEFAULT_RUNS_ROOT,
    RUN_FILENAME,
    RUN_TEMP_SUFFIX,
)


class RunRecord(BaseModel):
    """Durable per-run state: pending gate ids and marker records.

    Only ids are stored; live gates are matched back to them after a restart.
    """

    run_id: str
    gate_ids: list[str] = Field(default_factory=list)
    markers: list[RunMarker] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="before")
    @classmethod
    def _migrate_gate_entries(cls, data: Any) -> Any:
        # Older records stored whole gate entries under "gates"; keep their ids only.
        if isinstance(data, dict) and "gates" in data:
            data = dict(data)
            gates = data.pop("gates") or []
            if "gate_ids" not in data:
                data["gate_ids"] = [g["id"] for g in gates if isinstance(g, dict) and "id" in g]
        return data


class RunStore:
    """Handles persistence of run records"""

    def __init__(self, runs_root: Path | None = None):
        """
        Initialize the run store.

        Args:
            runs_root: Root directory for all runs (default: .deploygate/runs)
        """
        self.runs_root = runs_root or DEFAULT_RUNS_ROOT
        self.runs_root.mkdir(parents=True, exist_ok=True)
        # Registry and marker writers update the same record from different threads
        self._lock = threading.RLock()

    def save(self, record: RunRecord) -> Path:
        """
        Save a run record to run.json

        Args:
            record: The run record to persist

        Returns:
            Path to the saved run.json file
        """
        with self._lock:
            run_dir = self.runs_root / record.run_id
            run_dir.mkdir(parents=True, exist_ok=True)

            run_file = run_dir / RUN_FILENAME
            temp_file = run_file.with_suffix(RUN_TEMP_SUFFIX)

            record.updated_at = datetime.now(timezone.utc)
            data = record.model_dump(mode="json")

            # Write atomically - write to temp, then rename
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            temp_file.replace(run_file)

            return run_file

    def load(self, run_id: str) -> RunRecord:
        """
        Load a run record from run.json

        Raises:
            FileNotFoundError: If the run has no record
            ValueError: If run.json is invalid
        """
        run_file = self.runs_root / run_id / RUN_FILENAME

        if not run_file.exists():
            raise FileNotFoundError(f"Run '{run_id}' not found at {run_file}")

        with open(run_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        try:
            return RunRecord(**data)
        except Exception as e:
            raise ValueError(f"Invalid run data: {e}") from e

    def load_or_create(self, run_id: str) -> RunRecord:
        if self.exists(run_id):
            return self.load(run_id)
        return RunRecord(run_id=run_id)

    def update(self, run_id: str, mutate: Callable[[RunRecord], None]) -> RunRecord:
        """Load (or create), mutate and save a record as one step."""
        with self._lock:
            record = self.load_or_create(run_id)
            mutate(record)
            self.save(record)
            return record

    def exists(self, run_id: str) -> bool:
        return (self.runs_root / run_id / RUN_FILENAME).exists()

    def list_runs(self) -> list[str]:
        """
        List all run ids that have a record.
        """
        if not self.runs_root.exists():
            return []

        runs = []
        for run_dir in self.runs_root.iterdir():
            if run_dir.is_dir() and (run_dir / RUN_FILENAME).exists():
                runs.append(run_dir.name)

        return sorted(runs)

    def delete(self, run_id: str) -> None:
        """
        Delete a run record directory.

        Raises:
            FileNotFoundError: If the run doesn't exist
        """
        run_dir = self.runs_root / run_id

        if not run_dir.exists():
            raise FileNotFoundError(f"Run '{run_id}' not found")

        with self._lock:
            shutil.rmtree(run_dir)
