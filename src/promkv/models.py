from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

SIZE_SERIES = "promkv_file_size_bytes"
START_SERIES = "promkv_file_timestamp_seconds"
CONTENT_SERIES = "promkv_file_content"

KEY_LABEL = "key"
NAME_LABEL = "__name__"

# Range queries are capped at 11,000 points per series; the content window
# includes its end point, so one point is reserved for it.
MAX_VALUE_BYTES = 10_999

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_millis(dt: datetime) -> int:
    """Epoch milliseconds, truncated like Prometheus' ``timestamp.FromTime``."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH) // timedelta(milliseconds=1)


def from_millis(ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=ms)


@dataclass(frozen=True, slots=True)
class Sample:
    """One (timestamp, value) point; timestamp in epoch milliseconds."""

    timestamp_ms: int
    value: float


@dataclass(frozen=True, slots=True)
class Series:
    """A labeled sequence of samples, as written or as returned by a query."""

    labels: dict[str, str]
    samples: tuple[Sample, ...] = ()

    @property
    def name(self) -> str:
        return self.labels.get(NAME_LABEL, "")

    @classmethod
    def for_key(cls, name: str, key: str, samples: tuple[Sample, ...]) -> Series:
        return cls(labels={NAME_LABEL: name, KEY_LABEL: key}, samples=samples)


@dataclass(frozen=True, slots=True)
class SeriesMetadata:
    name: str
    help: str
    unit: str = ""
    type: str = "gauge"


SERIES_METADATA: tuple[SeriesMetadata, ...] = (
    SeriesMetadata(name=START_SERIES, help="Last timestamp when file was written.", unit="seconds"),
    SeriesMetadata(name=SIZE_SERIES, help="Size of file.", unit="bytes"),
    SeriesMetadata(name=CONTENT_SERIES, help="Content of file."),
)


@dataclass(frozen=True, slots=True)
class WriteBatch:
    """Everything a single ``set`` submits to the ingestion endpoint."""

    key: str
    size: Series
    start: Series
    content: Series
    metadata: tuple[SeriesMetadata, ...] = field(default=SERIES_METADATA)

    @property
    def timeseries(self) -> tuple[Series, ...]:
        return (self.start, self.size, self.content)
