"""Collaborators shared by every gate in the process."""

from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field

import httpx

from deploygate.application.config_models import GateConfig
from deploygate.application.notification import ConnectionManager, NotificationDispatcher
from deploygate.domain.events import GateEventEmitter
from deploygate.domain.security import AuthorizationPolicy, PermissionEvaluator


NOTIFY_THREAD_PREFIX = "deploygate-notify"


@dataclass
class GateServices:
    """Bundles what a gate needs beyond its own step and engine handles.

    Lets gates be tested in isolation with an inline executor and a mock
    HTTP transport.
    """

    config: GateConfig
    permissions: PermissionEvaluator
    dispatcher: NotificationDispatcher
    # Runs notices and deferred aborts off the caller's thread
    executor: Executor
    emitter: GateEventEmitter = field(default_factory=GateEventEmitter)
    connections: ConnectionManager | None = None

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
        if self.connections is not None:
            self.connections.close()


def create_background_executor(max_workers: int) -> ThreadPoolExecutor:
    return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=NOTIFY_THREAD_PREFIX)


def create_gate_services(
    config: GateConfig,
    policy: AuthorizationPolicy | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
    executor: Executor | None = None,
    emitter: GateEventEmitter | None = None,
) -> GateServices:
    """Wire gate services from configuration.

    The authorization policy defaults to the one described by the config's
    security section.
    """
    connections = ConnectionManager(config.http, transport=transport)
    return GateServices(
        config=config,
        permissions=PermissionEvaluator(policy or config.security.build_policy()),
        dispatcher=NotificationDispatcher(connections),
        executor=executor or create_background_executor(config.notify_workers),
        emitter=emitter or GateEventEmitter(),
        connections=connections,
    )
