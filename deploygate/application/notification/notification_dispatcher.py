"""Best-effort JSON callbacks to the external deployment backend."""

import json
import logging
from typing import Any, Mapping

import httpx

from deploygate.application.notification.connection_manager import ConnectionManager
from deploygate.domain.constants import (
    JSON_CONTENT_TYPE,
    RETURN_CODE_FIELD,
    SUCCESS_RETURN_CODE,
    USER_HEADER,
)
from deploygate.domain.events import GateEventType

logger = logging.getLogger(__name__)


def user_header_value(user_id: str | None, user_name: str | None) -> str:
    """Compact JSON identity carried in the LEO-USER header."""
    return json.dumps({"userId": user_id, "userName": user_name}, separators=(",", ":"))


def is_accepted(response: httpx.Response) -> bool:
    """HTTP 200, and a success return code when the body reports one."""
    if response.status_code != 200:
        return False
    try:
        body = response.json()
    except ValueError:
        return True
    if isinstance(body, dict) and RETURN_CODE_FIELD in body:
        return str(body[RETURN_CODE_FIELD]) == SUCCESS_RETURN_CODE
    return True


class NotificationDispatcher:
    """Sends notices and deploy requests; failures are logged, never raised."""

    def __init__(self, connections: ConnectionManager) -> None:
        self._connections = connections

    def post(
        self,
        url: str,
        body: Mapping[str, Any],
        user_id: str | None = None,
        user_name: str | None = None,
    ) -> bool:
        headers = {"Content-Type": JSON_CONTENT_TYPE}
        if user_id or user_name:
            headers[USER_HEADER] = user_header_value(user_id, user_name)

        try:
            content = json.dumps(dict(body), ensure_ascii=False).encode("utf-8")
            response = self._connections.client().post(url, content=content, headers=headers)
        except Exception as e:
            logger.warning(f"POST {url} failed: {e}")
            return False

        if not is_accepted(response):
            logger.warning(
                f"POST {url} rejected: status={response.status_code} body={response.text[:200]}"
            )
            return False
        return True

    def notify(
        self,
        url: str,
        event_type: GateEventType | str,
        payload_fields: Mapping[str, Any],
        user_id: str | None = None,
        user_name: str | None = None,
    ) -> bool:
        """Send one notice; an unconfigured URL counts as delivered."""
        if not url:
            return True
        type_value = event_type.value if isinstance(event_type, GateEventType) else event_type
        body = {"type": type_value, **payload_fields}
        ok = self.post(url, body, user_id=user_id, user_name=user_name)
        if ok:
            logger.debug(f"Notice '{type_value}' delivered to {url}")
        return ok
