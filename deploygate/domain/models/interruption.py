"""Interruption causes delivered to the engine when a gate is aborted."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class InterruptionCause(BaseModel):
    """Why a suspended run was interrupted."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def short_description(self) -> str:
        return "Rejected"


class Rejection(InterruptionCause):
    """The gate was aborted by a principal (a user, or SYSTEM when the run is stopped)."""

    user_id: str | None = None

    def short_description(self) -> str:
        if self.user_id:
            return f"Rejected by {self.user_id}"
        return "Rejected"


class ParamErrorRejection(InterruptionCause):
    """The gate was aborted because a deploy submission failed validation."""

    error: str | None = None

    def short_description(self) -> str:
        if self.error:
            return f"Rejected: {self.error}"
        return "Rejected"


class GateInterruptedError(Exception):
    """Failure handed to the engine when a gate ends in ABORTED.

    Mirrors an "aborted" build result together with the causes of the
    interruption.
    """

    result = "ABORTED"

    def __init__(self, *causes: InterruptionCause):
        self.causes: tuple[InterruptionCause, ...] = causes
        summary = "; ".join(c.short_description() for c in causes) or "Rejected"
        super().__init__(summary)

    @property
    def cause(self) -> InterruptionCause | None:
        return self.causes[0] if self.causes else None
