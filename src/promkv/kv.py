"""Key-value facade over a Prometheus-compatible backend.

Usage::

    async with PromKV(api_url="http://prom:9090", write_url="http://prom:9090/api/v1/write") as kv:
        await kv.set("greeting", b"hi")
        assert await kv.get("greeting") == b"hi"
"""
from __future__ import annotations

from datetime import datetime
from typing import IO

import httpx
import structlog

from promkv.codec import (
    build_write_request,
    content_bytes,
    content_window,
    last_value,
    parse_size,
    parse_start,
    selector,
)
from promkv.config import Settings
from promkv.exceptions import EncodingError
from promkv.models import CONTENT_SERIES, MAX_VALUE_BYTES, SIZE_SERIES, START_SERIES, to_millis, utc_now
from promkv.query_api import QueryClient
from promkv.remote_write import RemoteWriteClient

logger = structlog.get_logger(__name__)

METADATA_STEP_S = 60.0
CONTENT_STEP_S = 1.0


class PromKV:
    """Stores each value as samples of three series labeled with its key.

    Writes are a single remote-write submission; reads are three sequential range
    queries (size, start, content). An injected ``client`` is used as-is and left
    open; otherwise one is created on ``__aenter__`` and closed on exit.
    """

    def __init__(
        self,
        *,
        api_url: str,
        write_url: str,
        client: httpx.AsyncClient | None = None,
        auth: httpx.Auth | None = None,
        timeout_s: float = 10.0,
        lookback_s: float = 3600.0,
        max_value_bytes: int = MAX_VALUE_BYTES,
    ) -> None:
        if not 0 <= max_value_bytes <= MAX_VALUE_BYTES:
            raise ValueError(f"max_value_bytes must be between 0 and {MAX_VALUE_BYTES}, got {max_value_bytes}")
        self._api_url = api_url
        self._write_url = write_url
        self._client = client
        self._owns_client = client is None
        self._auth = auth
        self._timeout_s = timeout_s
        self._lookback_s = lookback_s
        self._max_value_bytes = max_value_bytes

    @classmethod
    def from_settings(cls, settings: Settings, *, client: httpx.AsyncClient | None = None) -> PromKV:
        return cls(
            api_url=str(settings.api_url),
            write_url=str(settings.write_url),
            client=client,
            auth=settings.basic_auth(),
            timeout_s=settings.timeout_s,
            lookback_s=settings.lookback_s,
            max_value_bytes=settings.max_value_bytes,
        )

    async def __aenter__(self) -> PromKV:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s, auth=self._auth)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("PromKV must be used as an async context manager or given a client")
        return self._client

    async def set(self, key: str, value: bytes | IO[bytes], *, now: datetime | None = None) -> None:
        """Write ``value`` (bytes or a readable binary stream) under ``key``."""
        data = value if isinstance(value, (bytes, bytearray, memoryview)) else value.read()
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise EncodingError(f"value for key {key!r} must be bytes, got {type(data).__name__}")
        data = bytes(data)
        now = now or utc_now()

        batch = build_write_request(key, data, now=now, max_value_bytes=self._max_value_bytes)
        writer = RemoteWriteClient(write_url=self._write_url, client=self._require_client())
        await writer.push(batch)
        logger.info("kv_set_completed", key=key, size=len(data))

    async def get(self, key: str, *, now: datetime | None = None) -> bytes:
        """Return the most recently written value of ``key``.

        Raises ``NotFoundError`` when no write for ``key`` falls in the lookback window.
        """
        query = QueryClient(api_url=self._api_url, client=self._require_client())
        end_s = to_millis(now or utc_now()) / 1000.0
        start_s = end_s - self._lookback_s

        result = await query.query_range(selector(SIZE_SERIES, key), start=start_s, end=end_s, step=METADATA_STEP_S)
        size = parse_size(last_value(result, key=key, series_name=SIZE_SERIES), max_value_bytes=self._max_value_bytes)

        result = await query.query_range(selector(START_SERIES, key), start=start_s, end=end_s, step=METADATA_STEP_S)
        start_ms = parse_start(last_value(result, key=key, series_name=START_SERIES))
        logger.debug("kv_get_located", key=key, size=size, start_ms=start_ms)

        if size == 0:
            logger.info("kv_get_completed", key=key, size=0)
            return b""

        window_start, window_end = content_window(start_ms, size)
        result = await query.query_range(
            selector(CONTENT_SERIES, key), start=window_start, end=window_end, step=CONTENT_STEP_S
        )
        data = content_bytes(result, key=key, size=size)
        logger.info("kv_get_completed", key=key, size=size)
        return data
