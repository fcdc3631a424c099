"""Per-run registry of pending deploy gates."""

import logging
import threading
from concurrent.futures import TimeoutError as FuturesTimeoutError
from enum import Enum
from typing import TYPE_CHECKING

from deploygate.domain.constants import LOAD_EXECUTIONS_TIMEOUT
from deploygate.domain.engine.ports import FlowExecutionLookup
from deploygate.domain.errors import GateStateUnavailableError
from deploygate.domain.persistence import RunRecord, RunStore

if TYPE_CHECKING:
    from deploygate.application.step_gate import StepGate

logger = logging.getLogger(__name__)


class RegistryLoadState(str, Enum):
    UNLOADED = "unloaded"              # Ids known, live gates not yet matched
    LOADING = "loading"
    LOADED = "loaded"
    LOADED_PARTIAL = "loaded_partial"  # Some persisted ids had no live gate


class GateRegistry:
    """Ordered gate ids of one run plus the resident gate objects.

    Only ids are persisted. After a restart the registry is restored in the
    UNLOADED state and matches its ids against the engine's live gates on
    first access, blocking up to `timeout` seconds for the engine.
    """

    def __init__(
        self,
        run_id: str,
        store: RunStore,
        lookup: FlowExecutionLookup | None = None,
        timeout: float = LOAD_EXECUTIONS_TIMEOUT,
    ) -> None:
        self._run_id = run_id
        self._store = store
        self._lookup = lookup
        self._timeout = timeout
        self._lock = threading.RLock()
        self._ids: list[str] = []
        self._gates: dict[str, "StepGate"] = {}
        self._state = RegistryLoadState.LOADED

    @classmethod
    def restore(
        cls,
        run_id: str,
        store: RunStore,
        lookup: FlowExecutionLookup,
        timeout: float = LOAD_EXECUTIONS_TIMEOUT,
    ) -> "GateRegistry":
        """Registry for a run whose gates must be matched from persisted ids."""
        registry = cls(run_id, store, lookup, timeout)
        registry._ids = list(store.load_or_create(run_id).gate_ids)
        registry._state = RegistryLoadState.UNLOADED
        return registry

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def state(self) -> RegistryLoadState:
        return self._state

    @property
    def gate_ids(self) -> list[str]:
        with self._lock:
            return list(self._ids)

    def ensure_loaded(self) -> bool:
        """Match persisted ids against live gates if not done yet.

        Returns:
            True when the registry is usable, False when the engine lookup
            failed (the failure is logged and retried on next access)

        Raises:
            GateStateUnavailableError: If the engine did not answer in time
        """
        with self._lock:
            if self._state in (RegistryLoadState.LOADED, RegistryLoadState.LOADED_PARTIAL):
                return True
            if self._lookup is None:
                raise GateStateUnavailableError(
                    f"cannot load state of run '{self._run_id}': no engine lookup"
                )

            self._state = RegistryLoadState.LOADING
            try:
                execution = self._lookup.find_execution(self._run_id)
                if execution is None:
                    raise LookupError(f"no live execution for run '{self._run_id}'")
                live = execution.current_gates().result(timeout=self._timeout)
            except FuturesTimeoutError as e:
                self._state = RegistryLoadState.UNLOADED
                raise GateStateUnavailableError(
                    f"cannot load state of run '{self._run_id}': "
                    f"timed out after {self._timeout}s"
                ) from e
            except Exception as e:
                self._state = RegistryLoadState.UNLOADED
                logger.warning(f"Failed to load gates of run '{self._run_id}': {e}")
                return False

            by_id = {gate.gate_id: gate for gate in live}
            self._gates = {i: by_id[i] for i in self._ids if i in by_id}
            for gate in self._gates.values():
                gate.bind_registry(self)
            if len(self._gates) < len(self._ids):
                missing = [i for i in self._ids if i not in self._gates]
                logger.warning(
                    f"Run '{self._run_id}': some deploy gates were not restored: {missing}"
                )
                self._state = RegistryLoadState.LOADED_PARTIAL
            else:
                self._state = RegistryLoadState.LOADED
            return True

    def add(self, gate: "StepGate") -> None:
        """Register a newly opened gate and persist the id list.

        Raises:
            ValueError: If a gate with the same id is already registered
            GateStateUnavailableError: If the registry cannot be loaded
        """
        with self._lock:
            self._require_loaded()
            if gate.gate_id in self._ids:
                raise ValueError(
                    f"Duplicate deploy gate id '{gate.gate_id}' in run '{self._run_id}'"
                )
            self._ids.append(gate.gate_id)
            self._gates[gate.gate_id] = gate
            self._persist()

    def remove(self, gate: "StepGate") -> None:
        """Unregister a settled gate. Removing an unknown gate is a no-op."""
        with self._lock:
            self._require_loaded()
            if gate.gate_id not in self._ids and gate.gate_id not in self._gates:
                return
            if gate.gate_id in self._ids:
                self._ids.remove(gate.gate_id)
            self._gates.pop(gate.gate_id, None)
            self._persist()

    def find(self, gate_id: str) -> "StepGate | None":
        with self._lock:
            if not self.ensure_loaded():
                return None
            return self._gates.get(gate_id)

    def list_gates(self) -> list["StepGate"]:
        """Resident gates in registration order."""
        with self._lock:
            if not self.ensure_loaded():
                return []
            return [self._gates[i] for i in self._ids if i in self._gates]

    def _require_loaded(self) -> None:
        if not self.ensure_loaded():
            raise GateStateUnavailableError(f"cannot load state of run '{self._run_id}'")

    def _persist(self) -> None:
        ids = list(self._ids)

        def _set_ids(record: RunRecord) -> None:
            record.gate_ids = ids

        self._store.update(self._run_id, _set_ids)
