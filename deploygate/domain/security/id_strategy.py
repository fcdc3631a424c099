"""Comparison strategies for user and group ids."""

from abc import ABC, abstractmethod


class IdStrategy(ABC):
    """How an identity realm compares ids (user names, group names)."""

    name: str = ""

    @abstractmethod
    def key_for(self, id_: str) -> str:
        """Canonical form of an id under this strategy."""
        ...

    def equals(self, id1: str, id2: str) -> bool:
        return self.key_for(id1) == self.key_for(id2)


class CaseInsensitiveIdStrategy(IdStrategy):
    """Default realm behavior: "Alice" and "alice" are the same principal."""

    name = "case-insensitive"

    def key_for(self, id_: str) -> str:
        return id_.lower()


class CaseSensitiveIdStrategy(IdStrategy):
    name = "case-sensitive"

    def key_for(self, id_: str) -> str:
        return id_


class CaseSensitiveEmailIdStrategy(IdStrategy):
    """Local part is case sensitive, domain part is not (per RFC 5321)."""

    name = "case-sensitive-email"

    def key_for(self, id_: str) -> str:
        local, sep, domain = id_.rpartition("@")
        if not sep:
            return id_
        return f"{local}@{domain.lower()}"


CASE_INSENSITIVE = CaseInsensitiveIdStrategy()
CASE_SENSITIVE = CaseSensitiveIdStrategy()
CASE_SENSITIVE_EMAIL = CaseSensitiveEmailIdStrategy()

_STRATEGIES: dict[str, IdStrategy] = {
    s.name: s for s in (CASE_INSENSITIVE, CASE_SENSITIVE, CASE_SENSITIVE_EMAIL)
}


def id_strategy_for(name: str) -> IdStrategy:
    """Look up a strategy by its configuration name.

    Raises:
        KeyError: If the name is not a known strategy
    """
    try:
        return _STRATEGIES[name]
    except KeyError:
        raise KeyError(
            f"Unknown id strategy '{name}'. Known: {sorted(_STRATEGIES)}"
        ) from None
