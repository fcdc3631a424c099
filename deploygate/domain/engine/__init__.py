"""Host workflow engine ports."""

from .ports import (
    FlowExecution,
    FlowExecutionLookup,
    FlowNode,
    PipelineRun,
    RegistryProvider,
    RunAnnotator,
    StepContext,
)

__all__ = [
    "FlowExecution",
    "FlowExecutionLookup",
    "FlowNode",
    "PipelineRun",
    "RegistryProvider",
    "RunAnnotator",
    "StepContext",
]
