"""Gate step definition: the prompt, who may settle it, and its inputs."""

import hashlib

from pydantic import BaseModel, Field, field_validator, model_validator

from deploygate.domain.constants import (
    DEFAULT_MESSAGE,
    DEFAULT_OK_CAPTION,
    DISPLAY_NAME_MAX_LENGTH,
)
from deploygate.domain.models.parameters import ParameterDefinition


def fix_empty(value: str | None) -> str | None:
    """Map "" to None."""
    if value is None or value == "":
        return None
    return value


def fix_empty_and_trim(value: str | None) -> str | None:
    """Trim whitespace, then map "" to None."""
    if value is None:
        return None
    return fix_empty(value.strip())


def digest_of(text: str) -> str:
    """Hex MD5 digest used to derive a stable gate id from its message."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def capitalize_id(gate_id: str | None) -> str | None:
    """Upper-case a leading ASCII letter so ids never clash with lower-case URL names."""
    if gate_id is None:
        return None
    if not gate_id:
        raise ValueError("gate id must be non-empty")
    first = gate_id[0]
    if "a" <= first <= "z":
        return first.upper() + gate_id[1:]
    return gate_id


class GateStep(BaseModel):
    """Configuration of one deploy gate in a pipeline.

    Attributes:
        message: Prompt shown while the run is paused
        id: Unique id within the run; derived from the message when omitted
        submitter: Comma-separated user/group names allowed to settle the gate
            (None = anyone with build permission on the job)
        submitter_parameter: Parameter that receives the submitting user id
        parameters: Inputs collected at submission time
        ok: Caption of the proceed button
    """

    message: str = DEFAULT_MESSAGE
    id: str | None = None
    submitter: str | None = None
    submitter_parameter: str | None = None
    parameters: list[ParameterDefinition] = Field(default_factory=list)
    ok: str | None = None

    @field_validator("message", mode="before")
    @classmethod
    def _default_message(cls, v: str | None) -> str:
        return DEFAULT_MESSAGE if v is None else v

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, v: str | None) -> str | None:
        return capitalize_id(fix_empty_and_trim(v))

    @field_validator("submitter", "submitter_parameter", "ok")
    @classmethod
    def _trim(cls, v: str | None) -> str | None:
        return fix_empty_and_trim(v)

    @model_validator(mode="after")
    def _derive_id(self) -> "GateStep":
        if self.id is None:
            self.id = capitalize_id(digest_of(self.message))
        return self

    @field_validator("parameters")
    @classmethod
    def _unique_parameter_names(
        cls, v: list[ParameterDefinition]
    ) -> list[ParameterDefinition]:
        names = [p.name for p in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate parameter names: {duplicates}")
        return v

    @property
    def gate_id(self) -> str:
        # Always set by _derive_id
        assert self.id is not None
        return self.id

    @property
    def ok_caption(self) -> str:
        return self.ok or DEFAULT_OK_CAPTION

    @property
    def display_name(self) -> str:
        if len(self.message) < DISPLAY_NAME_MAX_LENGTH:
            return self.message
        return self.message[:DISPLAY_NAME_MAX_LENGTH] + "..."

    @property
    def has_direct_action(self) -> bool:
        """True when the step can be settled from a plain link (no form needed)."""
        return not self.parameters and self.submitter_parameter is None
