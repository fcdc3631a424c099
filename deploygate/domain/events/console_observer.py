"""Console event observer for CLI integration."""

import click

from deploygate.domain.events.event import GateEvent


class ConsoleEventObserver:
    """Emits events as structured lines to stderr."""

    def on_event(self, event: GateEvent) -> None:
        """Emit event as structured line to stderr."""
        parts = [f"[EVENT] {event.event_type.value}", f"run={event.run_id}", f"gate={event.gate_id}"]
        if event.node_id:
            parts.append(f"node={event.node_id}")
        if event.user_id:
            parts.append(f"user={event.user_id}")
        click.echo(" ".join(parts), err=True)
