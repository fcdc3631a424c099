"""Who may settle (submit) or cancel a gate."""

from typing import Iterable

from deploygate.domain.errors import GatePermissionError
from deploygate.domain.security.authorization import AuthorizationPolicy, Permission
from deploygate.domain.security.id_strategy import IdStrategy
from deploygate.domain.security.principal import Principal


def split_submitters(submitter: str) -> set[str]:
    """Split a comma-separated submitter list into trimmed, non-blank names."""
    return {s.strip() for s in submitter.split(",") if s.strip()}


def is_member_of(id_: str, submitters: Iterable[str], strategy: IdStrategy) -> bool:
    """Whether id_ matches any submitter under the realm's comparison strategy."""
    return any(strategy.equals(id_, s) for s in submitters)


class PermissionEvaluator:
    """Evaluates gate permissions against the installation's authorization policy."""

    def __init__(self, policy: AuthorizationPolicy) -> None:
        self._policy = policy

    @property
    def policy(self) -> AuthorizationPolicy:
        return self._policy

    def can_settle(self, principal: Principal, submitter: str | None) -> bool:
        """Whether the principal may submit (or decide) the gate.

        An empty submitter list means anyone with BUILD permission on the job.
        Otherwise the principal's name, or one of its groups, must be listed;
        names and groups are compared with their own strategies.
        """
        if self._is_override(principal):
            return True
        if not submitter or not submitter.strip():
            return self._policy.has_permission(principal, Permission.BUILD)

        submitters = split_submitters(submitter)
        if is_member_of(principal.name, submitters, self._policy.user_id_strategy):
            return True
        return any(
            is_member_of(authority, submitters, self._policy.group_id_strategy)
            for authority in principal.authorities
        )

    def can_cancel(self, principal: Principal) -> bool:
        if not self._policy.use_security or principal.is_system:
            return True
        return self._policy.has_permission(principal, Permission.CANCEL)

    def can_abort(self, principal: Principal, submitter: str | None) -> bool:
        return self.can_cancel(principal) or self.can_settle(principal, submitter)

    def check_submit(self, principal: Principal, submitter: str | None) -> None:
        """Raise GatePermissionError unless the principal may submit."""
        if self.can_settle(principal, submitter):
            return
        if submitter:
            raise GatePermissionError(f"You need to be {submitter} to submit this.")
        raise GatePermissionError("You need to have Job/Build permissions to submit this.")

    def check_abort(self, principal: Principal, submitter: str | None) -> None:
        """Raise GatePermissionError unless the principal may cancel."""
        if self.can_abort(principal, submitter):
            return
        if submitter:
            raise GatePermissionError(
                f"You need to be '{submitter}' (or have Job/Cancel permissions) to cancel this."
            )
        raise GatePermissionError("You need to have Job/Cancel permissions to cancel this.")

    def _is_override(self, principal: Principal) -> bool:
        return (
            not self._policy.use_security
            or principal.is_system
            or self._policy.has_permission(principal, Permission.ADMINISTER)
        )
