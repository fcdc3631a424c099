"""Gate event system for observer pattern notifications."""

from deploygate.domain.events.event_types import GateEventType
from deploygate.domain.events.event import GateEvent
from deploygate.domain.events.observer import GateObserver
from deploygate.domain.events.emitter import GateEventEmitter
from deploygate.domain.events.console_observer import ConsoleEventObserver

__all__ = [
    "GateEventType",
    "GateEvent",
    "GateObserver",
    "GateEventEmitter",
    "ConsoleEventObserver",
]
