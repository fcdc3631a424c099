"""Workflow engine adapters."""

from .memory import (
    MemoryFlowEngine,
    MemoryFlowExecution,
    MemoryFlowNode,
    MemoryRun,
    MemoryStepContext,
)

__all__ = [
    "MemoryFlowEngine",
    "MemoryFlowExecution",
    "MemoryFlowNode",
    "MemoryRun",
    "MemoryStepContext",
]
