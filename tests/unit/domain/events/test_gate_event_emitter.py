"""Tests for GateEventEmitter and the console observer."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from deploygate.domain.events import (
    ConsoleEventObserver,
    GateEvent,
    GateEventEmitter,
    GateEventType,
)


def _make_event(event_type: GateEventType, **kwargs) -> GateEvent:
    return GateEvent(
        event_type=event_type,
        run_id="run-1",
        gate_id="A",
        timestamp=datetime.now(timezone.utc),
        **kwargs,
    )


class TestGateEventEmitter:
    def test_global_subscriber_receives_all(self) -> None:
        emitter = GateEventEmitter()
        observer = MagicMock()
        emitter.subscribe(observer)

        events = [_make_event(t) for t in GateEventType]
        for event in events:
            emitter.emit(event)

        assert [c.args[0] for c in observer.on_event.call_args_list] == events

    def test_specific_subscriber(self) -> None:
        emitter = GateEventEmitter()
        observer = MagicMock()
        emitter.subscribe(observer, event_types=[GateEventType.ABORT])

        emitter.emit(_make_event(GateEventType.READY))
        emitter.emit(_make_event(GateEventType.ABORT))

        assert observer.on_event.call_count == 1

    def test_unsubscribe(self) -> None:
        emitter = GateEventEmitter()
        observer = MagicMock()
        emitter.subscribe(observer)
        emitter.subscribe(observer, event_types=[GateEventType.READY])
        emitter.unsubscribe(observer)

        emitter.emit(_make_event(GateEventType.READY))
        observer.on_event.assert_not_called()

    def test_failing_observer_does_not_break_others(self) -> None:
        emitter = GateEventEmitter()
        failing = MagicMock()
        failing.on_event.side_effect = RuntimeError("boom")
        healthy = MagicMock()
        emitter.subscribe(failing)
        emitter.subscribe(healthy)

        emitter.emit(_make_event(GateEventType.SUCCESS))
        healthy.on_event.assert_called_once()

    def test_event_is_frozen(self) -> None:
        event = _make_event(GateEventType.READY)
        with pytest.raises(Exception):
            event.gate_id = "B"  # type: ignore[misc]


def test_console_observer_writes_to_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    ConsoleEventObserver().on_event(
        _make_event(GateEventType.SUBMITTED, node_id="7", user_id="alice")
    )
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "[EVENT] submitted run=run-1 gate=A node=7 user=alice" in captured.err
