"""Gate observer protocol."""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from deploygate.domain.events.event import GateEvent


class GateObserver(Protocol):
    """Protocol for gate event observers."""

    def on_event(self, event: "GateEvent") -> None:
        """Handle a gate event. Must not throw or block."""
        ...
