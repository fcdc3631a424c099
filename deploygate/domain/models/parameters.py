"""Declared input parameters of a gate step and form parsing."""

import json
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from deploygate.domain.errors import InvalidParameterValueError, UnknownParameterError


_TRUE_STRINGS = {"true", "on", "yes", "1"}
_FALSE_STRINGS = {"false", "off", "no", "0", ""}


class ParameterType(str, Enum):
    STRING = "string"
    TEXT = "text"
    BOOLEAN = "boolean"
    CHOICE = "choice"
    PASSWORD = "password"


class ParameterDefinition(BaseModel):
    """One input field collected when the gate is submitted."""

    model_config = ConfigDict(extra="forbid")

    name: str
    type: ParameterType = ParameterType.STRING
    default: Any = None
    choices: list[str] = Field(default_factory=list)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("parameter name must be non-empty")
        return v2

    @model_validator(mode="after")
    def _validate_choices(self) -> "ParameterDefinition":
        if self.type == ParameterType.CHOICE:
            if not self.choices:
                raise ValueError(f"choice parameter '{self.name}' needs at least one choice")
            if self.default is not None and self.default not in self.choices:
                raise ValueError(
                    f"default '{self.default}' is not a choice of '{self.name}'"
                )
        elif self.choices:
            raise ValueError(f"only choice parameters take choices ('{self.name}')")
        return self

    def create_value(self, submitted: dict[str, Any]) -> Any:
        """Convert one submitted entry ({"name": ..., "value": ...}) to a value.

        Returns None when nothing was submitted and there is no default;
        callers skip such parameters.
        """
        raw = submitted.get("value", self.default)

        if self.type == ParameterType.BOOLEAN:
            return _to_bool(self.name, raw if raw is not None else False)

        if self.type == ParameterType.CHOICE:
            if raw is None:
                raw = self.choices[0]
            raw = str(raw)
            if raw not in self.choices:
                raise InvalidParameterValueError(
                    f"Illegal choice for parameter {self.name}: {raw}"
                )
            return raw

        if raw is None:
            return None
        return str(raw)


def _to_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise InvalidParameterValueError(f"Parameter {name} expects a boolean, got: {raw}")


def _submitted_entries(raw: Any) -> list[dict[str, Any]]:
    """Normalize the form's "parameter" field into a list of entries.

    Browsers send a single object when only one parameter exists, a list
    otherwise; API clients sometimes send the JSON text itself.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise InvalidParameterValueError(f"Malformed parameter data: {e}") from e
    if isinstance(raw, dict):
        return [raw]
    if isinstance(raw, list) and all(isinstance(entry, dict) for entry in raw):
        return raw
    raise InvalidParameterValueError(
        f"Parameter data must be an object or a list of objects, got {type(raw).__name__}"
    )


def parse_form_parameters(
    definitions: Iterable[ParameterDefinition],
    form: dict[str, Any] | None,
    *,
    submitter_parameter: str | None = None,
    user_id: str | None = None,
) -> dict[str, Any] | None:
    """Parse submitted form data against the declared parameter definitions.

    Args:
        definitions: Parameters declared by the gate step
        form: Submitted form data; parameters live under its "parameter" key
        submitter_parameter: Optional parameter name that receives the submitter
        user_id: Id of the submitting principal

    Returns:
        Mapping of parameter name to value, or None if nothing was submitted

    Raises:
        UnknownParameterError: If an entry names an undeclared parameter
        InvalidParameterValueError: If an entry cannot be converted
    """
    by_name = {d.name: d for d in definitions}
    values: dict[str, Any] = {}

    for entry in _submitted_entries((form or {}).get("parameter")):
        name = entry.get("name")
        definition = by_name.get(name) if isinstance(name, str) else None
        if definition is None:
            raise UnknownParameterError(str(name))
        value = definition.create_value(entry)
        if value is None:
            continue
        values[name] = value

    if submitter_parameter:
        values[submitter_parameter] = user_id

    return values or None
