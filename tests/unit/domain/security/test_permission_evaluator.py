"""Tests for who may settle or cancel a gate."""

import pytest

from deploygate.domain.errors import GatePermissionError
from deploygate.domain.security import (
    CASE_SENSITIVE,
    Permission,
    PermissionEvaluator,
    Principal,
    StaticAuthorizationPolicy,
)
from deploygate.domain.security.permission_evaluator import split_submitters


def _evaluator(**kwargs) -> PermissionEvaluator:
    grants = kwargs.pop(
        "grants",
        {
            "alice": {Permission.BUILD},
            "ops": {Permission.CANCEL},
            "admin": {Permission.ADMINISTER},
        },
    )
    return PermissionEvaluator(StaticAuthorizationPolicy(grants=grants, **kwargs))


class TestCanSettle:
    """Truth table of can_settle."""

    @pytest.mark.parametrize(
        "name, submitter, expected",
        [
            ("alice", None, True),          # BUILD permission, open gate
            ("bob", None, False),           # no permission
            ("bob", "alice, bob", True),    # listed submitter needs no permission
            ("BOB", "alice,bob", True),     # case-insensitive user ids by default
            ("carol", "alice,bob", False),
            ("admin", "alice", True),       # ADMINISTER overrides the list
        ],
    )
    def test_truth_table(self, name: str, submitter: str | None, expected: bool) -> None:
        assert _evaluator().can_settle(Principal(name=name), submitter) is expected

    def test_security_disabled_allows_everyone(self) -> None:
        evaluator = _evaluator(use_security=False)
        assert evaluator.can_settle(Principal(name="bob"), "alice") is True
        assert evaluator.can_cancel(Principal(name="bob")) is True

    def test_system_identity_always_allowed(self) -> None:
        assert _evaluator().can_settle(Principal.system(), "alice") is True

    def test_case_sensitive_user_strategy(self) -> None:
        evaluator = _evaluator(user_id_strategy=CASE_SENSITIVE)
        assert evaluator.can_settle(Principal(name="Bob"), "bob") is False
        assert evaluator.can_settle(Principal(name="bob"), "bob") is True

    def test_group_membership_uses_group_strategy(self) -> None:
        carol = Principal(name="carol", authorities=("Release-Managers",))
        assert _evaluator().can_settle(carol, "release-managers") is True
        strict = _evaluator(group_id_strategy=CASE_SENSITIVE)
        assert strict.can_settle(carol, "release-managers") is False


class TestCanCancel:
    def test_cancel_permission(self) -> None:
        evaluator = _evaluator()
        assert evaluator.can_cancel(Principal(name="ops")) is True
        assert evaluator.can_cancel(Principal(name="alice")) is False

    def test_abort_allowed_by_cancel_or_settle(self) -> None:
        evaluator = _evaluator()
        assert evaluator.can_abort(Principal(name="ops"), "alice") is True
        assert evaluator.can_abort(Principal(name="alice"), None) is True
        assert evaluator.can_abort(Principal(name="bob"), None) is False


class TestChecks:
    def test_check_submit_names_submitter(self) -> None:
        with pytest.raises(GatePermissionError, match="You need to be alice to submit this."):
            _evaluator().check_submit(Principal(name="bob"), "alice")

    def test_check_submit_names_permission(self) -> None:
        with pytest.raises(GatePermissionError, match="Job/Build permissions"):
            _evaluator().check_submit(Principal(name="bob"), None)

    def test_check_abort_names_submitter(self) -> None:
        with pytest.raises(GatePermissionError) as exc_info:
            _evaluator().check_abort(Principal(name="bob"), "alice")
        assert str(exc_info.value) == (
            "You need to be 'alice' (or have Job/Cancel permissions) to cancel this."
        )

    def test_check_abort_names_permission(self) -> None:
        with pytest.raises(GatePermissionError) as exc_info:
            _evaluator().check_abort(Principal(name="bob"), None)
        assert str(exc_info.value) == "You need to have Job/Cancel permissions to cancel this."

    def test_check_passes_silently(self) -> None:
        _evaluator().check_submit(Principal(name="alice"), None)
        _evaluator().check_abort(Principal(name="ops"), "alice")


def test_split_submitters() -> None:
    assert split_submitters(" a, ,b ,a") == {"a", "b"}
