from promkv._version import __version__
from promkv.codec import build_write_request
from promkv.exceptions import (
    EncodingError,
    MalformedDataError,
    NotFoundError,
    PromKVError,
    TransportError,
)
from promkv.kv import PromKV

__all__ = [
    "__version__",
    "PromKV",
    "build_write_request",
    "PromKVError",
    "TransportError",
    "EncodingError",
    "NotFoundError",
    "MalformedDataError",
]
