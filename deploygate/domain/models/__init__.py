"""Domain models for the deploy gate."""

from .gate_step import GateStep
from .interruption import (
    GateInterruptedError,
    InterruptionCause,
    ParamErrorRejection,
    Rejection,
)
from .outcome import GateState, Outcome
from .parameters import ParameterDefinition, ParameterType, parse_form_parameters
from .run_markers import MarkerKind, RunMarker


__all__ = [
    "GateStep",
    "GateInterruptedError",
    "InterruptionCause",
    "ParamErrorRejection",
    "Rejection",
    "GateState",
    "Outcome",
    "ParameterDefinition",
    "ParameterType",
    "parse_form_parameters",
    "MarkerKind",
    "RunMarker",
]
