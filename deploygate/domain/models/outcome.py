"""Gate outcome value type.

The outcome is a tagged variant: the `state` tag says how far the two-phase
deploy protocol got, and the legacy tri-state flags (deployed / submitted /
aborted) are derived from it instead of being stored independently.
A gate that is still PENDING has no outcome at all.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class GateState(str, Enum):
    """Where a gate is in its lifecycle.

    PENDING --submit--> SUBMITTING --accepted--> SUBMITTED --confirm--> DEPLOYED
    PENDING | SUBMITTING | SUBMITTED --abort--> ABORTED
    """

    PENDING = "pending"          # Opened, nothing submitted yet (no outcome)
    SUBMITTING = "submitting"    # Deploy request being sent (re-entrancy guard)
    SUBMITTED = "submitted"      # External system accepted the deploy request
    DEPLOYED = "deployed"        # External system confirmed completion
    ABORTED = "aborted"          # Aborted by a user, the system, or a failed request


TERMINAL_STATES = frozenset({GateState.DEPLOYED, GateState.ABORTED})
IN_FLIGHT_STATES = frozenset({GateState.SUBMITTING, GateState.SUBMITTED})


class Outcome(BaseModel):
    """Immutable record of how far a gate got and what it hands back."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    state: GateState
    value: Any = None
    failure: BaseException | None = None
    # Only meaningful for ABORTED: the deploy request had been accepted before the abort
    was_submitted: bool = False

    @model_validator(mode="after")
    def _validate_variant(self) -> "Outcome":
        if self.value is not None and self.failure is not None:
            raise ValueError("value and failure are mutually exclusive")
        if self.state == GateState.PENDING:
            raise ValueError("a pending gate has no outcome")
        if self.state == GateState.ABORTED and self.failure is None:
            raise ValueError("aborted outcome requires a failure")
        if self.state != GateState.ABORTED and self.failure is not None:
            raise ValueError(f"{self.state.value} outcome cannot carry a failure")
        if self.was_submitted and self.state != GateState.ABORTED:
            raise ValueError("was_submitted only applies to aborted outcomes")
        return self

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def for_submitting(cls) -> "Outcome":
        return cls(state=GateState.SUBMITTING)

    @classmethod
    def for_submitted(cls, value: Any) -> "Outcome":
        return cls(state=GateState.SUBMITTED, value=value)

    @classmethod
    def for_deployed(cls, value: Any) -> "Outcome":
        return cls(state=GateState.DEPLOYED, value=value)

    @classmethod
    def for_aborted(
        cls, failure: BaseException, previous: "Outcome | None" = None
    ) -> "Outcome":
        """Build an ABORTED outcome, keeping any submission already recorded."""
        was_submitted = previous is not None and previous.submitted is True
        return cls(state=GateState.ABORTED, failure=failure, was_submitted=was_submitted)

    # ------------------------------------------------------------------
    # Tri-state flags (None = not yet known / not applicable)
    # ------------------------------------------------------------------

    @property
    def deployed(self) -> bool | None:
        if self.state == GateState.DEPLOYED:
            return True
        if self.state == GateState.SUBMITTED or self.was_submitted:
            return False
        return None

    @property
    def submitted(self) -> bool | None:
        if self.state in (GateState.SUBMITTED, GateState.DEPLOYED) or self.was_submitted:
            return True
        return None

    @property
    def aborted(self) -> bool | None:
        return True if self.state == GateState.ABORTED else None

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    @property
    def is_deployed(self) -> bool:
        return self.deployed is True

    @property
    def is_submitted(self) -> bool:
        return self.submitted is True

    @property
    def is_aborted(self) -> bool:
        return self.aborted is True

    @property
    def is_success(self) -> bool:
        return self.failure is None

    @property
    def is_failure(self) -> bool:
        return self.failure is not None

    @property
    def is_settled(self) -> bool:
        return self.state in TERMINAL_STATES

    def replay(self) -> Any:
        """Return the value, or raise the failure for an aborted outcome."""
        if self.failure is not None:
            raise self.failure
        return self.value

    def __str__(self) -> str:
        flags = f"deployed[{self.deployed}],submitted[{self.submitted}],aborted[{self.aborted}]"
        if self.failure is not None:
            return f"abnormal[{self.failure}],{flags}"
        return f"normal[{self.value}],{flags}"
