"""Mapping between byte values and Prometheus samples.

Write side: a value of ``n`` bytes becomes one size sample, one start sample and
``n`` content samples spaced one second apart, the last of them anchored at
``now - 1s``. Read side: range-query matrices are parsed back into ``Series`` and
the content points are truncated back to bytes.

Nothing here performs I/O; callers pass ``now`` explicitly.
"""
from __future__ import annotations

import json
import math
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import snappy
from google.protobuf.message import DecodeError

from promkv import remote_pb
from promkv.exceptions import EncodingError, MalformedDataError, NotFoundError
from promkv.models import (
    CONTENT_SERIES,
    KEY_LABEL,
    MAX_VALUE_BYTES,
    SERIES_METADATA,
    SIZE_SERIES,
    START_SERIES,
    Sample,
    Series,
    WriteBatch,
    to_millis,
)

BYTE_SPACING_MS = 1000


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


def build_write_request(
    key: str,
    data: bytes,
    *,
    now: datetime,
    max_value_bytes: int = MAX_VALUE_BYTES,
) -> WriteBatch:
    """Build the write batch for ``key`` holding ``data`` as of ``now``.

    Byte ``i`` is anchored at ``start + i`` seconds where ``start = now - len(data)``
    seconds. Size and start samples are both timestamped ``now``; the start sample's
    value is ``start`` in epoch milliseconds.
    """
    n = len(data)
    if n > max_value_bytes:
        raise EncodingError(f"value of {n} bytes exceeds the maximum of {max_value_bytes} bytes")

    now_ms = to_millis(now)
    start_ms = now_ms - n * BYTE_SPACING_MS

    content = tuple(
        Sample(timestamp_ms=start_ms + i * BYTE_SPACING_MS, value=float(b)) for i, b in enumerate(data)
    )
    return WriteBatch(
        key=key,
        size=Series.for_key(SIZE_SERIES, key, (Sample(timestamp_ms=now_ms, value=float(n)),)),
        start=Series.for_key(START_SERIES, key, (Sample(timestamp_ms=now_ms, value=float(start_ms)),)),
        content=Series.for_key(CONTENT_SERIES, key, content),
        metadata=SERIES_METADATA,
    )


def to_protobuf(batch: WriteBatch) -> Any:
    """Convert a ``WriteBatch`` into a ``prometheus.WriteRequest`` message."""
    req = remote_pb.WriteRequest()
    for md in batch.metadata:
        req.metadata.add(
            type=remote_pb.metric_type(md.type),
            metric_family_name=md.name,
            help=md.help,
            unit=md.unit,
        )
    for series in batch.timeseries:
        ts = req.timeseries.add()
        for name, value in series.labels.items():
            ts.labels.add(name=name, value=value)
        for sample in series.samples:
            ts.samples.add(value=sample.value, timestamp=sample.timestamp_ms)
    return req


def encode_write_request(batch: WriteBatch) -> bytes:
    """Serialize and snappy-compress a batch into a remote-write request body."""
    try:
        raw = to_protobuf(batch).SerializeToString()
        return snappy.compress(raw)
    except (ValueError, TypeError, MemoryError) as exc:
        raise EncodingError(f"failed to encode write request for key {batch.key!r}: {exc}") from exc


def decode_write_request(body: bytes) -> Any:
    """Inverse of ``encode_write_request``; returns the ``prometheus.WriteRequest`` message."""
    try:
        raw = snappy.decompress(body)
    except snappy.UncompressError as exc:
        raise MalformedDataError(f"invalid snappy block: {exc}") from exc
    req = remote_pb.WriteRequest()
    try:
        req.ParseFromString(raw)
    except DecodeError as exc:
        raise MalformedDataError(f"invalid remote-write protobuf: {exc}") from exc
    return req


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


def selector(series_name: str, key: str) -> str:
    """PromQL selector matching ``series_name`` with an exact ``key`` label."""
    return f"{series_name}{{{KEY_LABEL}={json.dumps(key, ensure_ascii=False)}}}"


def _parse_value(raw: Any) -> float:
    # Prometheus encodes sample values as strings ("NaN", "+Inf" included).
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise MalformedDataError(f"unexpected sample value {raw!r}")
    try:
        return float(raw)
    except ValueError as exc:
        raise MalformedDataError(f"unparsable sample value {raw!r}") from exc


def _parse_point(point: Any) -> Sample:
    if not isinstance(point, (list, tuple)) or len(point) != 2:
        raise MalformedDataError(f"unexpected sample point {point!r}")
    ts, value = point
    if isinstance(ts, bool) or not isinstance(ts, (int, float)):
        raise MalformedDataError(f"unexpected sample timestamp {ts!r}")
    return Sample(timestamp_ms=round(float(ts) * 1000), value=_parse_value(value))


def parse_matrix(data: Any) -> list[Series]:
    """Parse the ``data`` object of a query_range response into series."""
    if not isinstance(data, dict):
        raise MalformedDataError(f"unexpected query data {type(data).__name__}")
    result_type = data.get("resultType")
    if result_type != "matrix":
        raise MalformedDataError(f"unrecognized result type {result_type!r}")

    result = data.get("result")
    if not isinstance(result, list):
        raise MalformedDataError("query result is not a list")

    out: list[Series] = []
    for item in result:
        if not isinstance(item, dict):
            raise MalformedDataError(f"unexpected series entry {item!r}")
        metric = item.get("metric", {})
        values = item.get("values", [])
        if not isinstance(metric, dict) or not isinstance(values, list):
            raise MalformedDataError("series entry has wrong metric/values shape")
        out.append(
            Series(
                labels={str(k): str(v) for k, v in metric.items()},
                samples=tuple(_parse_point(p) for p in values),
            )
        )
    return out


def _last_series(result: Sequence[Series], *, key: str, series_name: str) -> Series:
    # Exact label matching should yield one series; if not, the last one wins.
    if not result or not result[-1].samples:
        raise NotFoundError(key, series_name)
    return result[-1]


def last_value(result: Sequence[Series], *, key: str, series_name: str) -> float:
    """Value of the chronologically last sample of the last series."""
    series = _last_series(result, key=key, series_name=series_name)
    return max(series.samples, key=lambda s: s.timestamp_ms).value


def parse_size(value: float, *, max_value_bytes: int = MAX_VALUE_BYTES) -> int:
    """Validate a size sample and truncate it to an int."""
    if not math.isfinite(value):
        raise MalformedDataError(f"size sample is not finite: {value!r}")
    size = int(value)
    if size < 0:
        raise MalformedDataError(f"size sample is negative: {size}")
    if size > max_value_bytes:
        raise MalformedDataError(f"size sample {size} exceeds the maximum of {max_value_bytes} bytes")
    return size


def parse_start(value: float) -> int:
    """Validate a start sample; returns epoch milliseconds."""
    if not math.isfinite(value) or value < 0:
        raise MalformedDataError(f"start sample is not a valid timestamp: {value!r}")
    return int(value)


def content_window(start_ms: int, size: int) -> tuple[float, float]:
    """Query window (in epoch seconds) spanning exactly ``size`` one-second steps."""
    start_s = start_ms / 1000.0
    return start_s, start_s + size * (BYTE_SPACING_MS / 1000.0)


def to_byte(value: float) -> int:
    if not math.isfinite(value):
        raise MalformedDataError(f"content sample is not finite: {value!r}")
    return int(value) & 0xFF


def content_bytes(result: Sequence[Series], *, key: str, size: int) -> bytes:
    """Reassemble the first ``size`` content points of the last series into bytes.

    Range queries include the window's end point, so one point more than ``size``
    is expected and dropped.
    """
    if size == 0:
        return b""
    series = _last_series(result, key=key, series_name=CONTENT_SERIES)
    samples = sorted(series.samples, key=lambda s: s.timestamp_ms)
    if len(samples) < size:
        raise MalformedDataError(f"expected {size} content samples for key {key!r}, got {len(samples)}")
    return bytes(to_byte(s.value) for s in samples[:size])
