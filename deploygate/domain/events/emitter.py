"""Gate event emitter for dispatching events to observers."""

import logging
import threading
from collections import defaultdict

from deploygate.domain.events.event import GateEvent
from deploygate.domain.events.event_types import GateEventType
from deploygate.domain.events.observer import GateObserver

logger = logging.getLogger(__name__)


class GateEventEmitter:
    """Central event dispatcher for gate events.

    Gates emit from request threads and background workers, so the observer
    lists are copied under a lock before dispatch.
    """

    def __init__(self) -> None:
        self._observers: dict[GateEventType, list[GateObserver]] = defaultdict(list)
        self._global_observers: list[GateObserver] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        observer: GateObserver,
        event_types: list[GateEventType] | None = None,
    ) -> None:
        """Subscribe to specific event types, or all events if None."""
        with self._lock:
            if event_types is None:
                self._global_observers.append(observer)
            else:
                for event_type in event_types:
                    self._observers[event_type].append(observer)

    def unsubscribe(self, observer: GateObserver) -> None:
        """Remove observer from all subscriptions."""
        with self._lock:
            if observer in self._global_observers:
                self._global_observers.remove(observer)
            for observers in self._observers.values():
                if observer in observers:
                    observers.remove(observer)

    def emit(self, event: GateEvent) -> None:
        """Dispatch event to all relevant observers."""
        with self._lock:
            targets = list(self._global_observers)
            targets.extend(self._observers.get(event.event_type, []))
        for observer in targets:
            self._safe_notify(observer, event)

    def _safe_notify(self, observer: GateObserver, event: GateEvent) -> None:
        """Notify observer, catching and logging any exceptions."""
        try:
            observer.on_event(event)
        except Exception as e:
            logger.warning(f"Observer {observer} failed on {event.event_type}: {e}")
