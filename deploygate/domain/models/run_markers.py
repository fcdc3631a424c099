"""Lightweight marker records attached to runs and flow nodes."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MarkerKind(str, Enum):
    APPROVED_BY = "approved_by"            # Run: who approved the deploy
    DEPLOYING = "deploying"                # Run: deploy accepted, awaiting completion
    DEPLOY_RESOLVED = "deploy_resolved"    # Run: deploying -> resolved
    DEPLOY_SUBMITTED = "deploy_submitted"  # Node: approver and submitted parameters


class RunMarker(BaseModel):
    """A marker record; which optional fields are set depends on the kind."""

    model_config = ConfigDict(frozen=True)

    kind: MarkerKind
    gate_id: str | None = None
    user_id: str | None = None
    message: str | None = None
    parameters: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def display_name(self) -> str:
        if self.kind == MarkerKind.DEPLOYING:
            return "Deploying" + (f": {self.message}" if self.message else "")
        if self.kind == MarkerKind.APPROVED_BY:
            return f"Approved by {self.user_id}"
        return self.kind.value.replace("_", " ").capitalize()


def approved_by(user_id: str, gate_id: str | None = None) -> RunMarker:
    return RunMarker(kind=MarkerKind.APPROVED_BY, user_id=user_id, gate_id=gate_id)


def deploying(gate_id: str, message: str | None = None) -> RunMarker:
    return RunMarker(kind=MarkerKind.DEPLOYING, gate_id=gate_id, message=message)


def deploy_resolved(gate_id: str) -> RunMarker:
    return RunMarker(kind=MarkerKind.DEPLOY_RESOLVED, gate_id=gate_id, message="resolved")


def deploy_submitted(
    gate_id: str, user_id: str | None, parameters: dict[str, Any] | None
) -> RunMarker:
    return RunMarker(
        kind=MarkerKind.DEPLOY_SUBMITTED,
        gate_id=gate_id,
        user_id=user_id,
        parameters=parameters,
    )
