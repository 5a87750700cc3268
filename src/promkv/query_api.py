"""Client for the Prometheus HTTP API ``query_range`` endpoint."""
from __future__ import annotations

from typing import Any

import httpx
import structlog

from promkv.codec import parse_matrix
from promkv.exceptions import MalformedDataError, TransportError
from promkv.models import Series
from promkv.remote_write import USER_AGENT, first_line

logger = structlog.get_logger(__name__)

QUERY_RANGE_PATH = "/api/v1/query_range"


def _fmt_seconds(value: float) -> str:
    # Prometheus resolves timestamps to milliseconds.
    return f"{value:.3f}"


def _error_detail(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return first_line(resp.text)
    if isinstance(payload, dict) and payload.get("error"):
        return f"{payload.get('errorType', 'error')}: {payload['error']}"
    return first_line(resp.text)


class QueryClient:
    def __init__(self, *, api_url: str, client: httpx.AsyncClient, user_agent: str = USER_AGENT) -> None:
        self._url = api_url.rstrip("/") + QUERY_RANGE_PATH
        self._client = client
        self._headers = {"Accept": "application/json", "User-Agent": user_agent}

    async def query_range(self, query: str, *, start: float, end: float, step: float) -> list[Series]:
        """Run a range query; ``start``/``end`` in epoch seconds, ``step`` in seconds."""
        params = {
            "query": query,
            "start": _fmt_seconds(start),
            "end": _fmt_seconds(end),
            "step": _fmt_seconds(step),
        }
        logger.debug("query_range", query=query, start=params["start"], end=params["end"], step=params["step"])
        try:
            resp = await self._client.get(self._url, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            raise TransportError(None, f"query_range {query!r} failed: {exc}") from exc

        if resp.status_code // 100 != 2:
            raise TransportError(
                resp.status_code,
                f"server returned HTTP status {resp.status_code} {resp.reason_phrase}: {_error_detail(resp)}",
            )

        try:
            payload: Any = resp.json()
        except ValueError as exc:
            raise MalformedDataError(f"query_range {query!r} returned non-JSON body") from exc
        if not isinstance(payload, dict):
            raise MalformedDataError(f"query_range {query!r} returned {type(payload).__name__}")
        if payload.get("status") != "success":
            raise TransportError(resp.status_code, f"query_range {query!r} failed: {_error_detail(resp)}")

        return parse_matrix(payload.get("data"))
