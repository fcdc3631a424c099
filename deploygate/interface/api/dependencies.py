"""FastAPI dependencies: the operations service and the acting principal."""

from fastapi import Header, HTTPException, Request, status

from deploygate.application.gate_operations import GateOperations
from deploygate.domain.security import Principal


def get_operations(request: Request) -> GateOperations:
    return request.app.state.operations


def get_principal(
    x_remote_user: str | None = Header(default=None),
    x_remote_groups: str | None = Header(default=None),
) -> Principal:
    """Principal authenticated by the fronting proxy.

    Groups arrive as a comma-separated list.
    """
    if not x_remote_user or not x_remote_user.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    groups = tuple(g.strip() for g in (x_remote_groups or "").split(",") if g.strip())
    return Principal(name=x_remote_user.strip(), authorities=groups)
