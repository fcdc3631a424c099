"""Authenticated identity acting on a gate."""

from pydantic import BaseModel, ConfigDict, Field


SYSTEM_NAME = "SYSTEM"
ANONYMOUS_NAME = "anonymous"


class Principal(BaseModel):
    """A user (or the system identity) plus the groups it belongs to."""

    model_config = ConfigDict(frozen=True)

    name: str
    authorities: tuple[str, ...] = Field(default_factory=tuple)
    is_system: bool = False

    @classmethod
    def system(cls) -> "Principal":
        """Identity used for engine-initiated work; bypasses permission checks."""
        return cls(name=SYSTEM_NAME, is_system=True)

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(name=ANONYMOUS_NAME)

    @property
    def is_anonymous(self) -> bool:
        return not self.is_system and self.name == ANONYMOUS_NAME

    @property
    def user_id(self) -> str | None:
        """Id recorded as approver; None for system and anonymous identities."""
        if self.is_system or self.is_anonymous:
            return None
        return self.name
