"""Narrow interfaces the gate core needs from the host workflow engine.

The engine owns run lifecycle and thread scheduling; the gate only pauses a
flow node, resumes it exactly once, and attaches marker records to the run.
"""

from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, Protocol

from deploygate.domain.models.run_markers import MarkerKind, RunMarker

if TYPE_CHECKING:
    from deploygate.application.gate_registry import GateRegistry
    from deploygate.application.step_gate import StepGate


class StepContext(Protocol):
    """Resumes the suspended step. Exactly one of the two calls, exactly once."""

    def on_success(self, value: Any) -> None:
        ...

    def on_failure(self, cause: BaseException) -> None:
        ...


class RunAnnotator(Protocol):
    """Attaches lightweight marker records to the owning run."""

    def add_marker(self, marker: RunMarker) -> None:
        ...

    def remove_markers(self, kind: MarkerKind, gate_id: str | None = None) -> None:
        """Remove markers of a kind (optionally only those of one gate)."""
        ...


class PipelineRun(RunAnnotator, Protocol):
    """The run a gate belongs to."""

    @property
    def run_id(self) -> str:
        ...

    @property
    def number(self) -> int:
        ...

    @property
    def pipeline_name(self) -> str:
        ...

    @property
    def pipeline_full_name(self) -> str:
        ...

    @property
    def devops_id(self) -> str:
        """Full name of the pipeline's parent folder ("" for top-level pipelines)."""
        ...

    @property
    def url(self) -> str:
        """Run URL relative to the server root, ending in "/"."""
        ...

    def log(self, message: str) -> None:
        """Append a line to the run's console."""
        ...


class FlowNode(Protocol):
    """The flow node suspended by a gate."""

    @property
    def node_id(self) -> str:
        ...

    def add_marker(self, marker: RunMarker) -> None:
        ...

    def start_pause(self, label: str) -> None:
        ...

    def end_pause(self) -> None:
        ...


class FlowExecution(Protocol):
    """A live run execution as seen by the engine."""

    def current_gates(self) -> "Future[list[StepGate]]":
        """Gates currently suspended in this execution.

        The future completes once the engine has finished restoring state,
        which can take a while right after a restart.
        """
        ...


class FlowExecutionLookup(Protocol):
    def find_execution(self, run_id: str) -> FlowExecution | None:
        ...


class RegistryProvider(Protocol):
    """Resolves the gate registry of a run for inbound requests."""

    def registry_for(self, run_id: str) -> "GateRegistry | None":
        ...
