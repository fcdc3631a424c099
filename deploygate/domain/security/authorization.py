"""Authorization policy port and a static, configuration-driven implementation."""

from enum import Enum
from typing import Protocol

from deploygate.domain.security.id_strategy import CASE_INSENSITIVE, IdStrategy
from deploygate.domain.security.principal import Principal


class Permission(str, Enum):
    BUILD = "Job/Build"
    CANCEL = "Job/Cancel"
    ADMINISTER = "Overall/Administer"


class AuthorizationPolicy(Protocol):
    """Identity system consulted by the permission evaluator."""

    @property
    def use_security(self) -> bool:
        ...

    @property
    def user_id_strategy(self) -> IdStrategy:
        ...

    @property
    def group_id_strategy(self) -> IdStrategy:
        ...

    def has_permission(self, principal: Principal, permission: Permission) -> bool:
        """Whether the principal holds the permission on the owning job."""
        ...


class StaticAuthorizationPolicy:
    """Grants permissions from a fixed table of user and group names.

    Grant keys are matched against the principal name with the user id
    strategy and against each authority with the group id strategy.
    ADMINISTER implies every other permission.
    """

    def __init__(
        self,
        *,
        use_security: bool = True,
        grants: dict[str, set[Permission]] | None = None,
        user_id_strategy: IdStrategy = CASE_INSENSITIVE,
        group_id_strategy: IdStrategy = CASE_INSENSITIVE,
    ) -> None:
        self._use_security = use_security
        self._grants = {k: set(v) for k, v in (grants or {}).items()}
        self._user_id_strategy = user_id_strategy
        self._group_id_strategy = group_id_strategy

    @property
    def use_security(self) -> bool:
        return self._use_security

    @property
    def user_id_strategy(self) -> IdStrategy:
        return self._user_id_strategy

    @property
    def group_id_strategy(self) -> IdStrategy:
        return self._group_id_strategy

    def has_permission(self, principal: Principal, permission: Permission) -> bool:
        if not self._use_security or principal.is_system:
            return True
        granted = self._granted(principal)
        return Permission.ADMINISTER in granted or permission in granted

    def _granted(self, principal: Principal) -> set[Permission]:
        granted: set[Permission] = set()
        for key, permissions in self._grants.items():
            if self._user_id_strategy.equals(principal.name, key) or any(
                self._group_id_strategy.equals(authority, key)
                for authority in principal.authorities
            ):
                granted |= permissions
        return granted
