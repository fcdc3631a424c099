"""FastAPI application factory."""

from fastapi import FastAPI

from deploygate.application.gate_operations import GateOperations
from deploygate.interface.api.error_handlers import register_error_handlers
from deploygate.interface.api.routes import router


def create_app(operations: GateOperations) -> FastAPI:
    app = FastAPI(title="deploygate", description="Deploy approval gates for pipeline runs")
    app.state.operations = operations
    app.include_router(router)
    register_error_handlers(app)
    return app
