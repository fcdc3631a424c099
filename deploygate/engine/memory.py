"""In-memory workflow engine adapter.

Implements the engine ports with plain objects so gates can run without a
real workflow host: the demo server and the test suite both drive gates
through MemoryFlowEngine.
"""

import logging
import threading
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any

from deploygate.application.gate_registry import GateRegistry
from deploygate.application.gate_services import GateServices
from deploygate.application.step_gate import StepGate
from deploygate.domain.constants import LOAD_EXECUTIONS_TIMEOUT
from deploygate.domain.models import GateStep, MarkerKind, RunMarker
from deploygate.domain.persistence import RunRecord, RunStore

logger = logging.getLogger(__name__)


class MemoryStepContext:
    """Records how the suspended step was resumed; refuses a second resume."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._resumed = threading.Event()
        self.value: Any = None
        self.failure: BaseException | None = None
        self.resume_count = 0

    def on_success(self, value: Any) -> None:
        with self._lock:
            self._claim()
            self.value = value
        self._resumed.set()

    def on_failure(self, cause: BaseException) -> None:
        with self._lock:
            self._claim()
            self.failure = cause
        self._resumed.set()

    def _claim(self) -> None:
        if self.resume_count:
            raise RuntimeError("step already resumed")
        self.resume_count += 1

    @property
    def is_resumed(self) -> bool:
        return self._resumed.is_set()

    @property
    def succeeded(self) -> bool:
        return self.is_resumed and self.failure is None

    def wait(self, timeout: float | None = None) -> bool:
        return self._resumed.wait(timeout)


class MemoryFlowNode:
    def __init__(self, node_id: str) -> None:
        self._node_id = node_id
        self.markers: list[RunMarker] = []
        self.pause_label: str | None = None
        self.pause_started_at: datetime | None = None
        self.pause_ended_at: datetime | None = None

    @property
    def node_id(self) -> str:
        return self._node_id

    @property
    def is_paused(self) -> bool:
        return self.pause_started_at is not None and self.pause_ended_at is None

    def add_marker(self, marker: RunMarker) -> None:
        self.markers.append(marker)

    def start_pause(self, label: str) -> None:
        self.pause_label = label
        self.pause_started_at = datetime.now(timezone.utc)
        self.pause_ended_at = None

    def end_pause(self) -> None:
        if self.is_paused:
            self.pause_ended_at = datetime.now(timezone.utc)


class MemoryRun:
    """A pipeline run whose markers are kept in the run store."""

    def __init__(
        self,
        run_id: str,
        number: int,
        pipeline_full_name: str,
        store: RunStore,
    ) -> None:
        self._run_id = run_id
        self._number = number
        self._pipeline_full_name = pipeline_full_name
        self._store = store
        self.console: list[str] = []
        self._console_lock = threading.Lock()

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def number(self) -> int:
        return self._number

    @property
    def pipeline_name(self) -> str:
        return self._pipeline_full_name.rsplit("/", 1)[-1]

    @property
    def pipeline_full_name(self) -> str:
        return self._pipeline_full_name

    @property
    def devops_id(self) -> str:
        if "/" not in self._pipeline_full_name:
            return ""
        return self._pipeline_full_name.rsplit("/", 1)[0]

    @property
    def url(self) -> str:
        return f"runs/{self._run_id}/"

    @property
    def markers(self) -> list[RunMarker]:
        return list(self._store.load_or_create(self._run_id).markers)

    def log(self, message: str) -> None:
        with self._console_lock:
            self.console.extend(message.splitlines() or [""])
        logger.debug(f"[{self._run_id}] {message}")

    def add_marker(self, marker: RunMarker) -> None:
        def _append(record: RunRecord) -> None:
            record.markers.append(marker)

        self._store.update(self._run_id, _append)

    def remove_markers(self, kind: MarkerKind, gate_id: str | None = None) -> None:
        def _filter(record: RunRecord) -> None:
            record.markers = [
                m
                for m in record.markers
                if not (m.kind == kind and (gate_id is None or m.gate_id == gate_id))
            ]

        self._store.update(self._run_id, _filter)


class MemoryFlowExecution:
    """Live execution of one run; tracks the gates suspended in it."""

    def __init__(self, run: MemoryRun) -> None:
        self.run = run
        self._lock = threading.Lock()
        self._gates: list[tuple[StepGate, MemoryStepContext]] = []
        self._loaded = True
        self._waiting: list[Future] = []

    def attach(self, gate: StepGate, context: MemoryStepContext) -> None:
        with self._lock:
            self._gates.append((gate, context))

    def context_for(self, gate_id: str) -> MemoryStepContext | None:
        with self._lock:
            for gate, context in self._gates:
                if gate.gate_id == gate_id:
                    return context
        return None

    def suspended_gates(self) -> list[StepGate]:
        with self._lock:
            return [gate for gate, context in self._gates if not context.is_resumed]

    def current_gates(self) -> "Future[list[StepGate]]":
        future: Future = Future()
        with self._lock:
            if not self._loaded:
                self._waiting.append(future)
                return future
        future.set_result(self.suspended_gates())
        return future

    def unload(self) -> None:
        """Simulate a restart in progress: gate queries wait for mark_loaded()."""
        with self._lock:
            self._loaded = False

    def mark_loaded(self) -> None:
        with self._lock:
            self._loaded = True
            waiting, self._waiting = self._waiting, []
        gates = self.suspended_gates()
        for future in waiting:
            future.set_result(gates)


class MemoryFlowEngine:
    """Runs, executions and gate registries of a single process."""

    def __init__(
        self,
        services: GateServices,
        store: RunStore,
        load_timeout: float = LOAD_EXECUTIONS_TIMEOUT,
    ) -> None:
        self._services = services
        self._store = store
        self._load_timeout = load_timeout
        self._lock = threading.RLock()
        self._runs: dict[str, MemoryRun] = {}
        self._executions: dict[str, MemoryFlowExecution] = {}
        self._registries: dict[str, GateRegistry] = {}
        self._numbers: dict[str, int] = {}
        self._node_seq = 0

    @property
    def services(self) -> GateServices:
        return self._services

    @property
    def store(self) -> RunStore:
        return self._store

    def start_run(self, pipeline_full_name: str, run_id: str | None = None) -> MemoryRun:
        with self._lock:
            number = self._numbers.get(pipeline_full_name, 0) + 1
            self._numbers[pipeline_full_name] = number
            if run_id is None:
                run_id = f"{pipeline_full_name.replace('/', '-')}-{number}"
            if run_id in self._runs:
                raise ValueError(f"Run '{run_id}' already exists")

            run = MemoryRun(run_id, number, pipeline_full_name, self._store)
            self._runs[run_id] = run
            self._executions[run_id] = MemoryFlowExecution(run)
            self._registries[run_id] = GateRegistry(
                run_id, self._store, self, self._load_timeout
            )
            self._store.update(run_id, lambda record: None)
            logger.info(f"Started run '{run_id}' of {pipeline_full_name}")
            return run

    def open_gate(self, run_id: str, step: GateStep, node_id: str | None = None) -> StepGate:
        """Suspend a new flow node of the run on a deploy gate."""
        with self._lock:
            run = self._runs[run_id]
            execution = self._executions[run_id]
            registry = self._registries[run_id]
            if node_id is None:
                self._node_seq += 1
                node_id = str(self._node_seq)

        context = MemoryStepContext()
        gate = StepGate(step, run, MemoryFlowNode(node_id), context, registry, self._services)
        gate.open()
        execution.attach(gate, context)
        return gate

    def get_run(self, run_id: str) -> MemoryRun | None:
        return self._runs.get(run_id)

    def context_for(self, run_id: str, gate_id: str) -> MemoryStepContext | None:
        execution = self._executions.get(run_id)
        return execution.context_for(gate_id) if execution is not None else None

    def find_execution(self, run_id: str) -> MemoryFlowExecution | None:
        return self._executions.get(run_id)

    def registry_for(self, run_id: str) -> GateRegistry | None:
        return self._registries.get(run_id)

    def stop_run(self, run_id: str, cause: BaseException | None = None) -> list[Future]:
        """Stop every gate still suspended in the run."""
        execution = self._executions.get(run_id)
        if execution is None:
            return []
        return [gate.stop(cause) for gate in execution.suspended_gates()]

    def restart(self, *, loaded: bool = True) -> None:
        """Drop resident registries and restore them from the run store.

        With loaded=False the executions keep restoring until mark_loaded()
        is called on them, so registry access blocks (and may time out).
        """
        with self._lock:
            for run_id, execution in self._executions.items():
                if not loaded:
                    execution.unload()
                self._registries[run_id] = GateRegistry.restore(
                    run_id, self._store, self, self._load_timeout
                )
        logger.info(f"Restored gate registries of {len(self._registries)} run(s)")
