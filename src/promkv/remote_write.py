from __future__ import annotations

import httpx
import structlog

from promkv._version import __version__
from promkv.codec import encode_write_request
from promkv.exceptions import TransportError
from promkv.models import WriteBatch

logger = structlog.get_logger(__name__)

USER_AGENT = f"promkv/v{__version__}"
REMOTE_WRITE_VERSION = "0.1.0"


def first_line(text: str) -> str:
    for line in text.splitlines():
        return line
    return ""


class RemoteWriteClient:
    """Submits write batches to a Prometheus remote-write endpoint."""

    def __init__(self, *, write_url: str, client: httpx.AsyncClient, user_agent: str = USER_AGENT) -> None:
        self._write_url = write_url
        self._client = client
        self._headers = {
            "Content-Encoding": "snappy",
            "Content-Type": "application/x-protobuf",
            "User-Agent": user_agent,
            "X-Prometheus-Remote-Write-Version": REMOTE_WRITE_VERSION,
        }

    async def push(self, batch: WriteBatch) -> None:
        body = encode_write_request(batch)
        try:
            resp = await self._client.post(self._write_url, content=body, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.warning("remote_write_failed", key=batch.key, error=str(exc))
            raise TransportError(None, f"remote write to {self._write_url} failed: {exc}") from exc

        if resp.status_code // 100 != 2:
            line = first_line(resp.text)
            logger.warning("remote_write_failed", key=batch.key, status=resp.status_code, detail=line)
            raise TransportError(
                resp.status_code,
                f"server returned HTTP status {resp.status_code} {resp.reason_phrase}: {line}",
            )

        logger.debug(
            "remote_write_sent",
            key=batch.key,
            samples=sum(len(s.samples) for s in batch.timeseries),
            body_bytes=len(body),
        )
