"""Deploy gate state machine.

A StepGate suspends one flow node until the deploy is decided:

    PENDING --submit_for_deploy--> SUBMITTING --accepted--> SUBMITTED
    SUBMITTED --confirm_success--> DEPLOYED
    PENDING | SUBMITTING | SUBMITTED --abort/stop/failure--> ABORTED

Every entry point checks and claims the new outcome under the gate's lock
before doing anything externally visible, so concurrent callers either win
or get GateAlreadySettledError. Notices are dispatched on the background
executor after the lock is released, one at a time per gate and in the order
they were posted.
"""

import logging
import threading
from collections import deque
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any, Callable, Mapping
from urllib.parse import quote

from deploygate.application.gate_registry import GateRegistry
from deploygate.application.gate_services import GateServices
from deploygate.domain.constants import GATE_URL_NAME, REQUIRED_DEPLOY_FIELDS
from deploygate.domain.engine.ports import FlowNode, PipelineRun, StepContext
from deploygate.domain.errors import (
    GateAlreadySettledError,
    GateInFlightError,
    GateNotSubmittedError,
)
from deploygate.domain.events import GateEvent, GateEventType
from deploygate.domain.models import (
    GateInterruptedError,
    GateState,
    GateStep,
    MarkerKind,
    Outcome,
    ParamErrorRejection,
    Rejection,
)
from deploygate.domain.models import run_markers
from deploygate.domain.models.outcome import IN_FLIGHT_STATES
from deploygate.domain.security import Principal

logger = logging.getLogger(__name__)

ALREADY_SETTLED_MESSAGE = "This deploy has been already given"
PAUSE_LABEL = "Deploy"


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


class StepGate:
    """One pending deploy decision bound to a run and a suspended flow node."""

    def __init__(
        self,
        step: GateStep,
        run: PipelineRun,
        node: FlowNode,
        context: StepContext,
        registry: GateRegistry,
        services: GateServices,
    ) -> None:
        self._step = step
        self._run = run
        self._node = node
        self._context = context
        self._registry = registry
        self._services = services
        self._lock = threading.Lock()
        self._outcome: Outcome | None = None
        self._notice_lock = threading.Lock()
        self._notices: deque[tuple[Future, Callable[[], None]]] = deque()
        self._notices_draining = False

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def gate_id(self) -> str:
        return self._step.gate_id

    @property
    def step(self) -> GateStep:
        return self._step

    @property
    def run(self) -> PipelineRun:
        return self._run

    @property
    def node(self) -> FlowNode:
        return self._node

    @property
    def outcome(self) -> Outcome | None:
        with self._lock:
            return self._outcome

    @property
    def state(self) -> GateState:
        outcome = self.outcome
        return GateState.PENDING if outcome is None else outcome.state

    @property
    def is_settled(self) -> bool:
        outcome = self.outcome
        return outcome is not None and outcome.is_settled

    @property
    def display_name(self) -> str:
        return self._step.display_name

    @property
    def url(self) -> str:
        """Gate URL relative to the server root."""
        return f"/{self._run.url}{GATE_URL_NAME}/{quote(self.gate_id, safe='')}/"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def bind_registry(self, registry: GateRegistry) -> None:
        """Re-attach the gate to the registry that restored it after a restart."""
        self._registry = registry

    def open(self) -> None:
        """Announce the gate, register it with the run and pause the node.

        Raises:
            ValueError: If the run already has a gate with this id
            GateStateUnavailableError: If the run's registry cannot be loaded
        """
        self._post_notice(GateEventType.READY)
        self._registry.add(self)
        self._node.start_pause(PAUSE_LABEL)

        if self._step.has_direct_action:
            self._run.log(
                f"{self._step.message}\n"
                f"{self._step.ok_caption}: POST {self.url}proceedEmpty or Abort: POST {self.url}abort"
            )
        else:
            self._run.log(f"Deploy requested: /{self._run.url}{GATE_URL_NAME}/")
        logger.info(f"Deploy gate '{self.gate_id}' opened in run '{self._run.run_id}'")

    def submit_for_deploy(
        self, params: Mapping[str, Any] | None, principal: Principal
    ) -> Outcome:
        """Phase 1: validate the submission and hand it to the deployment system.

        Returns:
            The SUBMITTED outcome when the deploy request was accepted, or the
            ABORTED outcome when validation or the request failed

        Raises:
            GateAlreadySettledError: If the gate was already submitted or decided
            GatePermissionError: If the principal may not submit
        """
        params = dict(params or {})
        with self._lock:
            if self._outcome is not None:
                raise GateAlreadySettledError(
                    f"{ALREADY_SETTLED_MESSAGE}: cannot re-submit deploy gate '{self.gate_id}'"
                )
            self._services.permissions.check_submit(principal, self._step.submitter)

            missing = [f for f in REQUIRED_DEPLOY_FIELDS if _is_blank(params.get(f))]
            if missing:
                failure = GateInterruptedError(
                    ParamErrorRejection(error=f"missing deploy fields {', '.join(missing)}")
                )
                self._outcome = Outcome.for_aborted(failure)
            else:
                self._outcome = Outcome.for_submitting()
            outcome = self._outcome

        if missing:
            logger.warning(
                f"Deploy gate '{self.gate_id}' rejected: missing fields {missing}"
            )
            self._finish_abort(failure, principal, reason=str(failure))
            return outcome

        # SUBMITTING is claimed: every path below must end in SUBMITTED or ABORTED
        reason = "deploy request failed"
        try:
            user_id = str(params.get("userId", ""))
            user_name = str(params.get("userName", ""))
            self._run.log(f"Deploy submitted by {principal.name}")
            self._post_notice(GateEventType.SUBMITTED, user_id=user_id, user_name=user_name)
            accepted = self._post_deploy(params, user_id, user_name)
        except Exception as e:
            logger.error(f"Deploy gate '{self.gate_id}': deploy submission failed: {e}")
            accepted = False
            reason = f"deploy request failed: {e}"

        with self._lock:
            if self._outcome is None or self._outcome.state != GateState.SUBMITTING:
                # stop() settled the gate while the request was in flight
                logger.warning(
                    f"Deploy gate '{self.gate_id}' was settled while its deploy request was "
                    f"in flight (accepted={accepted})"
                )
                raise GateAlreadySettledError(ALREADY_SETTLED_MESSAGE)
            if accepted:
                # Marker goes in before SUBMITTED is visible so settlement always finds it
                self._add_deploying_marker()
                self._outcome = Outcome.for_submitted(params)
            else:
                failure = GateInterruptedError(Rejection(user_id=principal.user_id))
                self._outcome = Outcome.for_aborted(failure, previous=self._outcome)
            outcome = self._outcome

        if not accepted:
            self._finish_abort(failure, principal, reason=reason)
            return outcome

        logger.info(f"Deploy gate '{self.gate_id}' submitted by {principal.name}")
        return outcome

    def confirm_success(
        self,
        params: Mapping[str, Any] | None = None,
        principal: Principal | None = None,
    ) -> Outcome:
        """Phase 2: the deployment system reports completion; resume the run.

        Raises:
            GateAlreadySettledError: If the gate is already DEPLOYED or ABORTED
            GateNotSubmittedError: If no deploy request was accepted yet
        """
        with self._lock:
            previous = self._outcome
            if previous is not None and previous.is_settled:
                raise GateAlreadySettledError(ALREADY_SETTLED_MESSAGE)
            if previous is None or previous.state != GateState.SUBMITTED:
                raise GateNotSubmittedError(
                    f"Deploy gate '{self.gate_id}' has not been submitted for deploy"
                )
            self._outcome = Outcome.for_deployed(previous.value)
            outcome = self._outcome

        user_id = principal.user_id if principal is not None else None
        self._run.log("Deploy succeed.")
        self._post_notice(GateEventType.SUCCESS, user_id=user_id)

        if user_id is not None:
            self._run.add_marker(run_markers.approved_by(user_id, gate_id=self.gate_id))
            self._run.log(f"Deploy succeed by {user_id}")
        self._node.add_marker(
            run_markers.deploy_submitted(
                self.gate_id, user_id, dict(params) if params is not None else None
            )
        )
        self._run.remove_markers(MarkerKind.DEPLOYING, self.gate_id)
        self._run.add_marker(run_markers.deploy_resolved(self.gate_id))

        self._post_settlement()
        logger.info(f"Deploy gate '{self.gate_id}' deployed")
        self._context.on_success(outcome.value)
        return outcome

    def abort(
        self,
        principal: Principal,
        params: Mapping[str, Any] | None = None,
        user_cancel: bool = False,
    ) -> Outcome:
        """Abort the gate and resume the run with a failure.

        Args:
            principal: Who aborts; the system identity is used by stop()
            params: Submitted form data, logged only
            user_cancel: True for an interactive cancel, which is refused once
                the deploy request has been sent

        Raises:
            GateAlreadySettledError: If the gate is already DEPLOYED or ABORTED
            GatePermissionError: If the principal may neither cancel nor submit
            GateInFlightError: If user_cancel and the deploy request is in flight
        """
        with self._lock:
            previous = self._outcome
            if previous is not None and previous.is_settled:
                raise GateAlreadySettledError(ALREADY_SETTLED_MESSAGE)
            self._services.permissions.check_abort(principal, self._step.submitter)
            if user_cancel and previous is not None and previous.state in IN_FLIGHT_STATES:
                raise GateInFlightError(
                    f"Deploy gate '{self.gate_id}' cannot be cancelled: "
                    f"deploy request is {previous.state.value}"
                )
            rejected_by = None if principal.is_anonymous else principal.name
            failure = GateInterruptedError(Rejection(user_id=rejected_by))
            self._outcome = Outcome.for_aborted(failure, previous=previous)
            outcome = self._outcome

        if params:
            logger.debug(f"Deploy gate '{self.gate_id}' abort parameters: {dict(params)}")
        self._finish_abort(failure, principal, reason=f"aborted by {principal.name}")
        return outcome

    def stop(self, cause: BaseException | None = None) -> "Future[Outcome | None]":
        """Abort as the system identity on the background executor.

        Never blocks the caller. A gate that is already settled is left alone.
        """

        def _abort_as_system() -> Outcome | None:
            try:
                return self.abort(Principal.system(), user_cancel=False)
            except GateAlreadySettledError:
                logger.info(f"Deploy gate '{self.gate_id}' already settled; stop ignored")
                return self.outcome

        if cause is not None:
            logger.info(f"Stopping deploy gate '{self.gate_id}': {cause}")
        return self._services.executor.submit(_abort_as_system)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _finish_abort(
        self, failure: GateInterruptedError, principal: Principal, reason: str
    ) -> None:
        self._run.log(f"Deploy aborted: {reason}")
        self._post_notice(GateEventType.ABORT, user_id=principal.user_id)
        self._run.remove_markers(MarkerKind.DEPLOYING, self.gate_id)
        self._post_settlement()
        logger.info(f"Deploy gate '{self.gate_id}' aborted: {reason}")
        self._context.on_failure(failure)

    def _add_deploying_marker(self) -> None:
        try:
            self._run.add_marker(run_markers.deploying(self.gate_id, message=self._step.message))
        except Exception as e:
            logger.warning(f"Failed to mark deploy gate '{self.gate_id}' as deploying: {e}")

    def _post_settlement(self) -> None:
        try:
            self._registry.remove(self)
        except Exception as e:
            logger.warning(
                f"Failed to remove deploy gate '{self.gate_id}' from run "
                f"'{self._run.run_id}': {e}"
            )
        finally:
            try:
                self._node.end_pause()
            except Exception as e:
                logger.warning(
                    f"Failed to end pause of node '{self._node.node_id}' in run "
                    f"'{self._run.run_id}': {e}"
                )

    def notice_fields(self) -> dict[str, Any]:
        """Body fields every notice carries besides its type."""
        return {
            "runId": self._run.number,
            "stepId": self.gate_id,
            "inputId": self.gate_id,
            "nodeId": self._node.node_id,
            "pipelineName": self._run.pipeline_name,
            "pipelineFullName": self._run.pipeline_full_name,
            "submitter": self._step.submitter or "",
        }

    def _post_notice(
        self,
        event_type: GateEventType,
        user_id: str | None = None,
        user_name: str | None = None,
    ) -> "Future[bool] | None":
        self._services.emitter.emit(
            GateEvent(
                event_type=event_type,
                run_id=self._run.run_id,
                gate_id=self.gate_id,
                timestamp=datetime.now(timezone.utc),
                node_id=self._node.node_id,
                user_id=user_id,
            )
        )

        url = self._services.config.notice_callback
        if not url:
            logger.debug(f"Notice callback not configured; skipping '{event_type.value}'")
            return None

        fields = self.notice_fields()
        future: Future = Future()

        def _deliver() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                delivered = self._services.dispatcher.notify(
                    url, event_type, fields, user_id, user_name
                )
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(delivered)

        with self._notice_lock:
            self._notices.append((future, _deliver))
            if self._notices_draining:
                return future
            self._notices_draining = True

        try:
            self._services.executor.submit(self._drain_notices)
        except RuntimeError as e:
            # Executor already shut down
            with self._notice_lock:
                dropped = list(self._notices)
                self._notices.clear()
                self._notices_draining = False
            for pending, _ in dropped:
                pending.cancel()
            logger.warning(
                f"{len(dropped)} notice(s) for gate '{self.gate_id}' dropped "
                f"('{event_type.value}'): {e}"
            )
            return None
        return future

    def _drain_notices(self) -> None:
        """Deliver queued notices one by one; a gate never has two in flight."""
        while True:
            with self._notice_lock:
                if not self._notices:
                    self._notices_draining = False
                    return
                _, deliver = self._notices.popleft()
            deliver()

    def _post_deploy(self, params: Mapping[str, Any], user_id: str, user_name: str) -> bool:
        try:
            url = self._services.config.resolve_deploy_url(params)
        except ValueError as e:
            logger.warning(f"Deploy gate '{self.gate_id}': {e}")
            return False

        body = {
            "runId": self._run.number,
            "nodeId": self._node.node_id,
            "stepId": self.gate_id,
            "inputId": self.gate_id,
            "pipelineId": self._run.pipeline_name,
            "devopsId": self._run.devops_id,
        }
        logger.info(f"Deploy body is {body}")
        return self._services.dispatcher.post(url, body, user_id=user_id, user_name=user_name)

    def __repr__(self) -> str:
        return f"StepGate(id={self.gate_id!r}, run={self._run.run_id!r}, state={self.state.value})"
