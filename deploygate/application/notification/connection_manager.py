"""Process-wide pooled HTTP client for outbound callbacks."""

import logging
import threading

import httpx

from deploygate.application.config_models import HttpSettings

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Owns one pooled httpx.Client shared by every gate.

    The client is created lazily on first use. Connection-level retries are
    delegated to the transport, so requests that already reached the server
    (including every POST body) are never replayed.
    """

    def __init__(
        self,
        settings: HttpSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or HttpSettings()
        self._transport = transport
        self._client: httpx.Client | None = None
        self._lock = threading.Lock()

    @property
    def settings(self) -> HttpSettings:
        return self._settings

    def client(self) -> httpx.Client:
        with self._lock:
            if self._client is None:
                self._client = self._build_client()
            return self._client

    def _build_client(self) -> httpx.Client:
        s = self._settings
        timeout = httpx.Timeout(
            connect=s.connect_timeout,
            read=s.read_timeout,
            write=s.write_timeout,
            pool=s.pool_timeout,
        )
        transport = self._transport
        if transport is None:
            limits = httpx.Limits(
                max_connections=s.max_connections,
                max_keepalive_connections=s.max_keepalive_connections,
            )
            transport = httpx.HTTPTransport(retries=s.retries, limits=limits)
        logger.debug(
            f"Creating pooled HTTP client (max_connections={s.max_connections}, "
            f"keepalive={s.max_keepalive_connections}, retries={s.retries})"
        )
        return httpx.Client(transport=transport, timeout=timeout)

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
