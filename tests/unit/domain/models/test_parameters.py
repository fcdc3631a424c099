"""Tests for parameter definitions and form parsing."""

import json

import pytest
from pydantic import ValidationError

from deploygate.domain.errors import InvalidParameterValueError, UnknownParameterError
from deploygate.domain.models import ParameterDefinition, ParameterType, parse_form_parameters


@pytest.fixture
def definitions() -> list[ParameterDefinition]:
    return [
        ParameterDefinition(name="version"),
        ParameterDefinition(name="dry_run", type=ParameterType.BOOLEAN),
        ParameterDefinition(name="target", type=ParameterType.CHOICE, choices=["dev", "prod"]),
    ]


class TestParseFormParameters:
    def test_list_of_entries(self, definitions) -> None:
        form = {
            "parameter": [
                {"name": "version", "value": "1.2"},
                {"name": "dry_run", "value": "on"},
                {"name": "target", "value": "prod"},
            ]
        }
        assert parse_form_parameters(definitions, form) == {
            "version": "1.2",
            "dry_run": True,
            "target": "prod",
        }

    def test_single_entry_object(self, definitions) -> None:
        form = {"parameter": {"name": "version", "value": "2"}}
        assert parse_form_parameters(definitions, form) == {"version": "2"}

    def test_json_text(self, definitions) -> None:
        form = {"parameter": json.dumps([{"name": "version", "value": "3"}])}
        assert parse_form_parameters(definitions, form) == {"version": "3"}

    def test_unknown_parameter(self, definitions) -> None:
        with pytest.raises(UnknownParameterError) as exc_info:
            parse_form_parameters(definitions, {"parameter": [{"name": "nope", "value": 1}]})
        assert str(exc_info.value) == "No such parameter definition: nope"

    def test_illegal_choice(self, definitions) -> None:
        with pytest.raises(InvalidParameterValueError):
            parse_form_parameters(definitions, {"parameter": [{"name": "target", "value": "qa"}]})

    def test_bad_boolean(self, definitions) -> None:
        with pytest.raises(InvalidParameterValueError):
            parse_form_parameters(definitions, {"parameter": [{"name": "dry_run", "value": "maybe"}]})

    def test_malformed_json(self, definitions) -> None:
        with pytest.raises(InvalidParameterValueError):
            parse_form_parameters(definitions, {"parameter": "[{"})

    def test_nothing_submitted_is_none(self, definitions) -> None:
        assert parse_form_parameters(definitions, None) is None
        assert parse_form_parameters(definitions, {}) is None

    def test_string_without_value_is_skipped(self, definitions) -> None:
        assert parse_form_parameters(definitions, {"parameter": [{"name": "version"}]}) is None

    def test_choice_without_value_takes_first_choice(self, definitions) -> None:
        assert parse_form_parameters(definitions, {"parameter": [{"name": "target"}]}) == {
            "target": "dev"
        }

    def test_submitter_parameter_injected(self) -> None:
        values = parse_form_parameters([], {}, submitter_parameter="approver", user_id="alice")
        assert values == {"approver": "alice"}


class TestParameterDefinition:
    def test_choice_requires_choices(self) -> None:
        with pytest.raises(ValidationError):
            ParameterDefinition(name="t", type=ParameterType.CHOICE)

    def test_choices_only_for_choice(self) -> None:
        with pytest.raises(ValidationError):
            ParameterDefinition(name="t", choices=["a"])

    def test_default_must_be_a_choice(self) -> None:
        with pytest.raises(ValidationError):
            ParameterDefinition(name="t", type=ParameterType.CHOICE, choices=["a"], default="b")

    def test_default_used_when_value_missing(self) -> None:
        d = ParameterDefinition(name="v", default="latest")
        assert d.create_value({"name": "v"}) == "latest"

    def test_password_is_string(self) -> None:
        d = ParameterDefinition(name="secret", type=ParameterType.PASSWORD)
        assert d.create_value({"name": "secret", "value": 123}) == "123"
