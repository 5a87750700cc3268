from __future__ import annotations

import re
import unittest
from pathlib import Path

from promkv import remote_pb

PROTO_PATH = Path(remote_pb.__file__).with_name("remote.proto")

_MESSAGE_RE = re.compile(r"^message (\w+) \{")
_FIELD_RE = re.compile(r"^\s*(?:repeated\s+)?[\w.]+\s+(\w+)\s*=\s*(\d+);")
_ENUM_VALUE_RE = re.compile(r"^\s*([A-Z]+)\s*=\s*(\d+);")


def _parse_proto(text: str) -> tuple[dict[str, dict[str, int]], dict[str, int]]:
    messages: dict[str, dict[str, int]] = {}
    enum_values: dict[str, int] = {}
    current: str | None = None
    for line in text.splitlines():
        if m := _MESSAGE_RE.match(line):
            current = m.group(1)
            messages[current] = {}
        elif m := _FIELD_RE.match(line):
            assert current is not None
            messages[current][m.group(1)] = int(m.group(2))
        elif m := _ENUM_VALUE_RE.match(line):
            enum_values[m.group(1)] = int(m.group(2))
    return messages, enum_values


class TestRemoteSchema(unittest.TestCase):
    def test_descriptors_match_proto_file(self) -> None:
        messages, enum_values = _parse_proto(PROTO_PATH.read_text(encoding="utf-8"))
        file_descriptor = remote_pb.WriteRequest.DESCRIPTOR.file

        self.assertEqual(set(messages), set(file_descriptor.message_types_by_name))
        for name, fields in messages.items():
            with self.subTest(message=name):
                descriptor = file_descriptor.message_types_by_name[name]
                self.assertEqual({f.name: f.number for f in descriptor.fields}, fields)

        self.assertEqual(enum_values, {name: i for i, name in enumerate(remote_pb.METRIC_TYPES)})

    def test_upstream_field_numbers(self) -> None:
        fields = remote_pb.WriteRequest.DESCRIPTOR.fields_by_name
        self.assertEqual(fields["timeseries"].number, 1)
        self.assertEqual(fields["metadata"].number, 3)
        self.assertEqual(remote_pb.MetricMetadata.DESCRIPTOR.fields_by_name["help"].number, 4)
