"""Tests for inbound routing of gate decisions."""

import pytest

from deploygate.application.gate_operations import (
    GateOperations,
    as_parameter_map,
    is_deploy_submission,
)
from deploygate.domain.errors import (
    GateInFlightError,
    GateNotFoundError,
    GateNotSubmittedError,
    UnknownParameterError,
)
from deploygate.domain.models import GateState, GateStep, ParameterDefinition, ParameterType


@pytest.fixture
def operations(engine) -> GateOperations:
    return GateOperations(engine)


@pytest.fixture
def run(engine):
    return engine.start_run("team/app")


class TestLookup:
    def test_unknown_run(self, operations) -> None:
        with pytest.raises(GateNotFoundError):
            operations.get_gate("nope", "A")
        assert operations.list_gates("nope") == []

    def test_unknown_gate(self, operations, run) -> None:
        with pytest.raises(GateNotFoundError, match="No pending deploy gate 'A'"):
            operations.get_gate(run.run_id, "A")

    def test_list_gates_in_order(self, engine, operations, run) -> None:
        first = engine.open_gate(run.run_id, GateStep(id="first"))
        second = engine.open_gate(run.run_id, GateStep(id="second"))
        assert operations.list_gates(run.run_id) == [first, second]


class TestProceed:
    def test_deploy_switch_selects_phase_one(self, engine, operations, run, alice, deploy_params) -> None:
        gate = engine.open_gate(run.run_id, GateStep(id="g"))

        outcome = operations.proceed(run.run_id, "G", deploy_params, alice)

        assert outcome.state == GateState.SUBMITTED
        assert gate.state == GateState.SUBMITTED

    def test_without_switch_confirms(self, engine, operations, run, alice, deploy_params) -> None:
        engine.open_gate(run.run_id, GateStep(id="g"))
        operations.proceed(run.run_id, "G", deploy_params, alice)

        outcome = operations.proceed(run.run_id, "G", {}, alice)

        assert outcome.state == GateState.DEPLOYED
        context = engine.context_for(run.run_id, "G")
        assert context.value["tenantId"] == "t1"

    def test_declared_parameters_merged(self, engine, operations, run, alice, deploy_params) -> None:
        engine.open_gate(
            run.run_id,
            GateStep(
                id="g",
                parameters=[ParameterDefinition(name="dry_run", type=ParameterType.BOOLEAN)],
                submitter_parameter="approver",
            ),
        )
        form = dict(deploy_params, parameter=[{"name": "dry_run", "value": "true"}])

        outcome = operations.proceed(run.run_id, "G", form, alice)

        assert outcome.value["dry_run"] is True
        assert outcome.value["approver"] == "alice"
        assert outcome.value["env"] == "dev"

    def test_unknown_parameter(self, engine, operations, run, alice) -> None:
        gate = engine.open_gate(run.run_id, GateStep(id="g"))
        with pytest.raises(UnknownParameterError):
            operations.proceed(run.run_id, "G", {"parameter": [{"name": "x", "value": 1}]}, alice)
        assert gate.outcome is None

    def test_proceed_empty_on_fresh_gate(self, engine, operations, run, alice) -> None:
        engine.open_gate(run.run_id, GateStep(id="g"))
        with pytest.raises(GateNotSubmittedError):
            operations.proceed_empty(run.run_id, "G", alice)

    def test_proceed_value_wraps_scalars(self, engine, operations, run, alice, deploy_params) -> None:
        gate = engine.open_gate(run.run_id, GateStep(id="g"))
        operations.proceed_value(run.run_id, "G", deploy_params, alice)

        outcome = operations.proceed_value(run.run_id, "G", "done", alice)

        assert outcome.is_deployed
        assert gate.node.markers[0].parameters == {"parameter": "done"}


class TestAbortAndSubmit:
    def test_abort(self, engine, operations, run, alice) -> None:
        engine.open_gate(run.run_id, GateStep(id="g"))
        assert operations.abort(run.run_id, "G", alice).is_aborted
        with pytest.raises(GateNotFoundError):
            operations.get_gate(run.run_id, "G")

    def test_abort_user_cancel_field(self, engine, operations, run, alice, deploy_params) -> None:
        engine.open_gate(run.run_id, GateStep(id="g"))
        operations.proceed(run.run_id, "G", deploy_params, alice)

        with pytest.raises(GateInFlightError):
            operations.abort(run.run_id, "G", alice, {"userCancel": "true"})
        assert operations.abort(run.run_id, "G", alice, {}).is_aborted

    def test_submit_with_proceed_field(self, engine, operations, run, alice, deploy_params) -> None:
        engine.open_gate(run.run_id, GateStep(id="g"))
        outcome = operations.submit(run.run_id, "G", dict(deploy_params, proceed="Proceed"), alice)
        assert outcome.state == GateState.SUBMITTED

    def test_submit_without_proceed_is_interactive_cancel(
        self, engine, operations, run, alice, deploy_params
    ) -> None:
        engine.open_gate(run.run_id, GateStep(id="g"))
        operations.proceed(run.run_id, "G", deploy_params, alice)

        with pytest.raises(GateInFlightError):
            operations.submit(run.run_id, "G", {}, alice)


class TestHelpers:
    def test_as_parameter_map(self) -> None:
        assert as_parameter_map(None) is None
        assert as_parameter_map({"a": 1}) == {"a": 1}
        assert as_parameter_map("v") == {"parameter": "v"}

    @pytest.mark.parametrize(
        "params, expected",
        [
            (None, False),
            ({}, False),
            ({"deploy": ""}, False),
            ({"deploy": "false"}, False),
            ({"deploy": "true"}, True),
            ({"deploy": "1"}, True),
            ({"deploy": True}, True),
        ],
    )
    def test_is_deploy_submission(self, params, expected: bool) -> None:
        assert is_deploy_submission(params) is expected
