import json
from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from deploygate.application.config_models import GateConfig
from deploygate.application.gate_services import GateServices, create_gate_services
from deploygate.domain.persistence import RunStore
from deploygate.domain.security import Permission, Principal, StaticAuthorizationPolicy
from deploygate.engine import MemoryFlowEngine


DEPLOY_BASE_URL = "http://deploy.test"
NOTICE_URL = "http://notice.test/api/notice"


class InlineExecutor(Executor):
    """Runs submitted work on the calling thread so tests are deterministic."""

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs) -> Future:
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future


class RecordingTransport:
    """httpx.MockTransport handler that records requests.

    Replies with HTTP 200 and a success return code unless a responder is given.
    """

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response] | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.responder = responder or (lambda request: httpx.Response(200, json={"rtnCode": "000000"}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    @property
    def notices(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.to("notice.test")]

    @property
    def notice_types(self) -> list[str]:
        return [n["type"] for n in self.notices]

    @property
    def deploys(self) -> list[httpx.Request]:
        return self.to("deploy.test")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent tests from picking up developer machine configuration."""
    for var in (
        "DEPLOYGATE_DEPLOY_CALLBACK",
        "DEPLOYGATE_NOTICE_CALLBACK",
        "DEPLOYGATE_LOAD_EXECUTIONS_TIMEOUT",
        "DEPLOYGATE_RUNS_ROOT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def runs_root(tmp_path: Path) -> Path:
    """Isolated run record root; tests never write into .deploygate/runs."""
    return tmp_path / "runs"


@pytest.fixture
def gate_config(runs_root: Path) -> GateConfig:
    return GateConfig(
        deploy_callback=DEPLOY_BASE_URL,
        notice_callback=NOTICE_URL,
        runs_root=runs_root,
    )


@pytest.fixture
def recorder() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def policy() -> StaticAuthorizationPolicy:
    return StaticAuthorizationPolicy(
        use_security=True,
        grants={
            "alice": {Permission.BUILD},
            "ops": {Permission.CANCEL},
            "admin": {Permission.ADMINISTER},
        },
    )


@pytest.fixture
def inline_executor() -> InlineExecutor:
    return InlineExecutor()


@pytest.fixture
def services(
    gate_config: GateConfig,
    policy: StaticAuthorizationPolicy,
    recorder: RecordingTransport,
    inline_executor: InlineExecutor,
) -> GateServices:
    return create_gate_services(
        gate_config,
        policy,
        transport=httpx.MockTransport(recorder),
        executor=inline_executor,
    )


@pytest.fixture
def store(runs_root: Path) -> RunStore:
    return RunStore(runs_root=runs_root)


@pytest.fixture
def engine(services: GateServices, store: RunStore) -> MemoryFlowEngine:
    return MemoryFlowEngine(services, store, load_timeout=0.5)


@pytest.fixture
def alice() -> Principal:
    """Has build permission; may submit gates without a submitter list."""
    return Principal(name="alice")


@pytest.fixture
def bob() -> Principal:
    """Has no permissions at all."""
    return Principal(name="bob")


@pytest.fixture
def ops() -> Principal:
    """Has cancel permission only."""
    return Principal(name="ops")


@pytest.fixture
def deploy_params() -> dict[str, Any]:
    return {
        "deploy": "true",
        "tenantId": "t1",
        "projectId": "p1",
        "appId": "a1",
        "tplId": "tpl1",
        "env": "dev",
        "userId": "u-42",
        "userName": "Alice",
        "nodeId": "n-7",
    }
