"""Identity and permission evaluation for deploy gates."""

from .authorization import AuthorizationPolicy, Permission, StaticAuthorizationPolicy
from .id_strategy import (
    CASE_INSENSITIVE,
    CASE_SENSITIVE,
    CASE_SENSITIVE_EMAIL,
    IdStrategy,
    id_strategy_for,
)
from .permission_evaluator import PermissionEvaluator
from .principal import Principal

__all__ = [
    "AuthorizationPolicy",
    "Permission",
    "StaticAuthorizationPolicy",
    "CASE_INSENSITIVE",
    "CASE_SENSITIVE",
    "CASE_SENSITIVE_EMAIL",
    "IdStrategy",
    "id_strategy_for",
    "PermissionEvaluator",
    "Principal",
]
