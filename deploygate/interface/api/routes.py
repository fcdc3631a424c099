"""Gate endpoints under /runs/{run_id}/deploy."""

from typing import Any

from fastapi import APIRouter, Body, Depends

from deploygate.application.gate_operations import GateOperations
from deploygate.domain.constants import GATE_URL_NAME
from deploygate.domain.security import Principal
from deploygate.interface.api.dependencies import get_operations, get_principal
from deploygate.interface.api.schemas import (
    ErrorResponse,
    GateListResponse,
    GateSummary,
    OutcomeResponse,
)


router = APIRouter(prefix=f"/runs/{{run_id}}/{GATE_URL_NAME}", tags=["deploy"])

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    423: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.get("", response_model=GateListResponse)
def list_gates(
    run_id: str,
    operations: GateOperations = Depends(get_operations),
) -> GateListResponse:
    """Pending deploy gates of a run."""
    gates = operations.list_gates(run_id)
    return GateListResponse(run_id=run_id, gates=[GateSummary.from_gate(g) for g in gates])


@router.post("/{gate_id}/proceed", response_model=OutcomeResponse, responses=ERROR_RESPONSES)
def proceed(
    run_id: str,
    gate_id: str,
    form: dict[str, Any] | None = Body(default=None),
    principal: Principal = Depends(get_principal),
    operations: GateOperations = Depends(get_operations),
) -> OutcomeResponse:
    """Submit for deploy when `deploy` is set, otherwise report deploy success."""
    outcome = operations.proceed(run_id, gate_id, form, principal)
    return OutcomeResponse.from_outcome(run_id, gate_id, outcome)


@router.post("/{gate_id}/proceedEmpty", response_model=OutcomeResponse, responses=ERROR_RESPONSES)
def proceed_empty(
    run_id: str,
    gate_id: str,
    principal: Principal = Depends(get_principal),
    operations: GateOperations = Depends(get_operations),
) -> OutcomeResponse:
    outcome = operations.proceed_empty(run_id, gate_id, principal)
    return OutcomeResponse.from_outcome(run_id, gate_id, outcome)


@router.post("/{gate_id}/abort", response_model=OutcomeResponse, responses=ERROR_RESPONSES)
def abort(
    run_id: str,
    gate_id: str,
    form: dict[str, Any] | None = Body(default=None),
    principal: Principal = Depends(get_principal),
    operations: GateOperations = Depends(get_operations),
) -> OutcomeResponse:
    outcome = operations.abort(run_id, gate_id, principal, form)
    return OutcomeResponse.from_outcome(run_id, gate_id, outcome)


@router.post("/{gate_id}/submit", response_model=OutcomeResponse, responses=ERROR_RESPONSES)
def submit(
    run_id: str,
    gate_id: str,
    form: dict[str, Any] | None = Body(default=None),
    principal: Principal = Depends(get_principal),
    operations: GateOperations = Depends(get_operations),
) -> OutcomeResponse:
    """Combined form action keyed on the `proceed` field."""
    outcome = operations.submit(run_id, gate_id, form, principal)
    return OutcomeResponse.from_outcome(run_id, gate_id, outcome)
