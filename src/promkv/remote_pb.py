"""Protobuf messages of the Prometheus remote-write 1.0 schema.

The schema is ``remote.proto`` next to this module, a subset of upstream
``prompb/types.proto`` and ``prompb/remote.proto``. Field numbers match upstream
so the encoded bytes are accepted by any remote-write receiver. Descriptors live
in a private pool so they never clash with another copy of ``prometheus.*``
registered in the default one.
"""
from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_F = descriptor_pb2.FieldDescriptorProto

_PACKAGE = "prometheus"

METRIC_TYPES = ("UNKNOWN", "COUNTER", "GAUGE", "HISTOGRAM", "GAUGEHISTOGRAM", "SUMMARY", "INFO", "STATESET")


def _field(name: str, number: int, type_: int, *, repeated: bool = False, type_name: str | None = None) -> _F:
    fd = _F(
        name=name,
        number=number,
        type=type_,
        label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
    )
    if type_name is not None:
        fd.type_name = f".{_PACKAGE}.{type_name}"
    return fd


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(name="promkv/prompb/remote.proto", package=_PACKAGE, syntax="proto3")

    fdp.message_type.add(
        name="Sample",
        field=[
            _field("value", 1, _F.TYPE_DOUBLE),
            _field("timestamp", 2, _F.TYPE_INT64),
        ],
    )
    fdp.message_type.add(
        name="Label",
        field=[
            _field("name", 1, _F.TYPE_STRING),
            _field("value", 2, _F.TYPE_STRING),
        ],
    )
    fdp.message_type.add(
        name="TimeSeries",
        field=[
            _field("labels", 1, _F.TYPE_MESSAGE, repeated=True, type_name="Label"),
            _field("samples", 2, _F.TYPE_MESSAGE, repeated=True, type_name="Sample"),
        ],
    )

    metadata = fdp.message_type.add(
        name="MetricMetadata",
        field=[
            _field("type", 1, _F.TYPE_ENUM, type_name="MetricMetadata.MetricType"),
            _field("metric_family_name", 2, _F.TYPE_STRING),
            _field("help", 4, _F.TYPE_STRING),
            _field("unit", 5, _F.TYPE_STRING),
        ],
    )
    metric_type = metadata.enum_type.add(name="MetricType")
    for number, name in enumerate(METRIC_TYPES):
        metric_type.value.add(name=name, number=number)

    write_request = fdp.message_type.add(
        name="WriteRequest",
        field=[
            _field("timeseries", 1, _F.TYPE_MESSAGE, repeated=True, type_name="TimeSeries"),
            _field("metadata", 3, _F.TYPE_MESSAGE, repeated=True, type_name="MetricMetadata"),
        ],
    )
    write_request.reserved_range.add(start=2, end=3)
    return fdp


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_file_descriptor().SerializeToString())


def _message(name: str) -> type:
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{_PACKAGE}.{name}"))


Sample = _message("Sample")
Label = _message("Label")
TimeSeries = _message("TimeSeries")
MetricMetadata = _message("MetricMetadata")
WriteRequest = _message("WriteRequest")


def metric_type(name: str) -> int:
    """Enum number of a ``MetricMetadata.MetricType`` given its lower/upper-case name."""
    return METRIC_TYPES.index(name.upper())
