"""Request/response models for the gate REST surface."""

from typing import Any

from pydantic import BaseModel, Field

from deploygate.application.step_gate import StepGate
from deploygate.domain.models import GateState, Outcome


class OutcomeResponse(BaseModel):
    """Result of an inbound decision."""

    run_id: str
    gate_id: str
    state: GateState
    deployed: bool | None = None
    submitted: bool | None = None
    aborted: bool | None = None
    value: Any = None
    failure: str | None = None

    @classmethod
    def from_outcome(cls, run_id: str, gate_id: str, outcome: Outcome) -> "OutcomeResponse":
        return cls(
            run_id=run_id,
            gate_id=gate_id,
            state=outcome.state,
            deployed=outcome.deployed,
            submitted=outcome.submitted,
            aborted=outcome.aborted,
            value=outcome.value,
            failure=str(outcome.failure) if outcome.failure is not None else None,
        )


class ParameterSummary(BaseModel):
    name: str
    type: str
    description: str | None = None
    choices: list[str] = Field(default_factory=list)


class GateSummary(BaseModel):
    """A pending gate as listed for its run."""

    id: str
    message: str
    display_name: str
    ok: str
    submitter: str | None = None
    state: GateState
    url: str
    parameters: list[ParameterSummary] = Field(default_factory=list)

    @classmethod
    def from_gate(cls, gate: StepGate) -> "GateSummary":
        step = gate.step
        return cls(
            id=gate.gate_id,
            message=step.message,
            display_name=step.display_name,
            ok=step.ok_caption,
            submitter=step.submitter,
            state=gate.state,
            url=gate.url,
            parameters=[
                ParameterSummary(
                    name=p.name,
                    type=p.type.value,
                    description=p.description,
                    choices=list(p.choices),
                )
                for p in step.parameters
            ],
        )


class GateListResponse(BaseModel):
    run_id: str
    gates: list[GateSummary] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    error_code: str
    message: str


class ErrorResponse(BaseModel):
    detail: ErrorDetail
