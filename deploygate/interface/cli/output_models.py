from typing import Any, Literal
from pydantic import BaseModel, Field


class BaseOutput(BaseModel):
    schema_version: int = 1
    command: Literal["config", "notify", "runs", "serve"]
    exit_code: int
    error: str | None = None


class ConfigOutput(BaseOutput):
    command: Literal["config"] = "config"
    config: dict[str, Any] | None = None


class NotifyOutput(BaseOutput):
    command: Literal["notify"] = "notify"
    url: str | None = None
    type: str | None = None
    delivered: bool = False


class RunSummary(BaseModel):
    """Summary of a single run record for list output."""
    run_id: str
    gate_ids: list[str] = Field(default_factory=list)
    markers: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str


class RunsOutput(BaseOutput):
    command: Literal["runs"] = "runs"
    runs: list[RunSummary] = Field(default_factory=list)
    total: int = 0


class ServeOutput(BaseOutput):
    command: Literal["serve"] = "serve"
    host: str | None = None
    port: int | None = None
