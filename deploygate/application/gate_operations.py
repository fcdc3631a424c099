"""Inbound gate operations, routed by run id and gate id.

Shared by the REST surface and the CLI. Each operation resolves the gate
through the run's registry and delegates to the StepGate state machine.
"""

import logging
from typing import Any, Mapping

from deploygate.application.step_gate import StepGate
from deploygate.domain.constants import DEPLOY_SWITCH_FIELD, REQUIRED_DEPLOY_FIELDS
from deploygate.domain.engine.ports import RegistryProvider
from deploygate.domain.errors import GateNotFoundError
from deploygate.domain.models import Outcome, parse_form_parameters
from deploygate.domain.security import Principal

logger = logging.getLogger(__name__)

# Top-level form fields that belong to the deploy protocol, not to declared parameters
PROTOCOL_FIELDS = (*REQUIRED_DEPLOY_FIELDS, DEPLOY_SWITCH_FIELD)

_TRUE_STRINGS = {"true", "on", "yes", "1"}


def is_set(value: Any) -> bool:
    """Whether a form switch is on (non-blank, not an explicit false)."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip()
    return bool(text) and text.lower() not in {"false", "off", "no", "0"}


def is_true(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return value is not None and str(value).strip().lower() in _TRUE_STRINGS


def as_parameter_map(value: Any) -> dict[str, Any] | None:
    """Normalize a programmatic proceed value: non-dicts become {"parameter": value}."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return dict(value)
    return {"parameter": value}


def is_deploy_submission(params: Mapping[str, Any] | None) -> bool:
    return params is not None and is_set(params.get(DEPLOY_SWITCH_FIELD))


class GateOperations:
    """Resolves gates by id and applies inbound decisions to them."""

    def __init__(self, registries: RegistryProvider) -> None:
        self._registries = registries

    def get_gate(self, run_id: str, gate_id: str) -> StepGate:
        """
        Raises:
            GateNotFoundError: If the run or gate is unknown (or already settled)
            GateStateUnavailableError: If the run's gates cannot be restored in time
        """
        registry = self._registries.registry_for(run_id)
        if registry is None:
            raise GateNotFoundError(gate_id, run_id)
        gate = registry.find(gate_id)
        if gate is None:
            raise GateNotFoundError(gate_id, run_id)
        return gate

    def list_gates(self, run_id: str) -> list[StepGate]:
        registry = self._registries.registry_for(run_id)
        if registry is None:
            return []
        return registry.list_gates()

    def parse_params(
        self, gate: StepGate, form: Mapping[str, Any] | None, principal: Principal
    ) -> dict[str, Any] | None:
        """Parse declared parameters strictly and merge deploy protocol fields.

        Raises:
            UnknownParameterError: If the form names an undeclared parameter
            InvalidParameterValueError: If a declared parameter value is invalid
        """
        form = dict(form or {})
        params = parse_form_parameters(
            gate.step.parameters,
            form,
            submitter_parameter=gate.step.submitter_parameter,
            user_id=principal.user_id or principal.name,
        )
        protocol = {k: form[k] for k in PROTOCOL_FIELDS if form.get(k) is not None}
        if not protocol:
            return params
        return {**(params or {}), **protocol}

    def proceed(
        self,
        run_id: str,
        gate_id: str,
        form: Mapping[str, Any] | None,
        principal: Principal,
    ) -> Outcome:
        """Phase 1 when the deploy switch is set, otherwise phase 2."""
        gate = self.get_gate(run_id, gate_id)
        params = self.parse_params(gate, form, principal)
        return self._proceed(gate, params, principal)

    def proceed_value(
        self, run_id: str, gate_id: str, value: Any, principal: Principal
    ) -> Outcome:
        """Proceed with an already-parsed value instead of form data."""
        gate = self.get_gate(run_id, gate_id)
        return self._proceed(gate, as_parameter_map(value), principal)

    def proceed_empty(self, run_id: str, gate_id: str, principal: Principal) -> Outcome:
        gate = self.get_gate(run_id, gate_id)
        return gate.confirm_success(None, principal)

    def abort(
        self,
        run_id: str,
        gate_id: str,
        principal: Principal,
        form: Mapping[str, Any] | None = None,
        user_cancel: bool | None = None,
    ) -> Outcome:
        """Abort a gate; `userCancel` in the form marks an interactive cancel."""
        gate = self.get_gate(run_id, gate_id)
        form = dict(form or {})
        if user_cancel is None:
            user_cancel = is_true(form.pop("userCancel", False))
        return gate.abort(principal, form or None, user_cancel=user_cancel)

    def submit(
        self,
        run_id: str,
        gate_id: str,
        form: Mapping[str, Any] | None,
        principal: Principal,
    ) -> Outcome:
        """Combined form action: proceed when a `proceed` field is present, else cancel."""
        form = dict(form or {})
        if "proceed" in form:
            form.pop("proceed")
            return self.proceed(run_id, gate_id, form, principal)
        return self.abort(run_id, gate_id, principal, user_cancel=True)

    def _proceed(
        self, gate: StepGate, params: dict[str, Any] | None, principal: Principal
    ) -> Outcome:
        if is_deploy_submission(params):
            logger.info(f"Deploy gate '{gate.gate_id}': deploy submission by {principal.name}")
            return gate.submit_for_deploy(params, principal)
        return gate.confirm_success(params, principal)
