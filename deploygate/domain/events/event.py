"""Gate event payload model."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from deploygate.domain.events.event_types import GateEventType


class GateEvent(BaseModel):
    """Immutable event payload for gate notifications."""

    model_config = {"frozen": True}

    event_type: GateEventType
    run_id: str
    gate_id: str
    timestamp: datetime
    node_id: str | None = None
    user_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
