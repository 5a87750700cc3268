from __future__ import annotations

import os
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

import httpx
from pydantic import ValidationError

from promkv.config import Settings, load_settings
from promkv.models import MAX_VALUE_BYTES

ENV = {
    "PROMETHEUS_URL": "http://prom.env:9090",
    "PROMETHEUS_REMOTE_WRITE_URL": "http://prom.env:9090/api/v1/write",
    "PROMETHEUS_USERNAME": "alice",
    "PROMETHEUS_PASSWORD": "s3cret",
    "PROMKV_TIMEOUT_S": "2.5",
}


class TestSettings(unittest.TestCase):
    def test_reads_prometheus_environment(self) -> None:
        with patch.dict(os.environ, ENV, clear=True):
            settings = load_settings()

        self.assertEqual(str(settings.api_url).rstrip("/"), "http://prom.env:9090")
        self.assertEqual(str(settings.write_url), "http://prom.env:9090/api/v1/write")
        self.assertEqual(settings.timeout_s, 2.5)
        self.assertEqual(settings.max_value_bytes, MAX_VALUE_BYTES)
        self.assertNotIn("s3cret", repr(settings))

        auth = settings.basic_auth()
        self.assertIsInstance(auth, httpx.BasicAuth)

    def test_no_username_means_no_auth(self) -> None:
        with patch.dict(os.environ, {"PROMETHEUS_USERNAME": "  "}, clear=True):
            self.assertIsNone(Settings().basic_auth())

    def test_unprefixed_environment_is_ignored(self) -> None:
        stray = {
            "USERNAME": "winuser",
            "PASSWORD": "hunter2",
            "API_URL": "http://elsewhere:1",
            "WRITE_URL": "http://elsewhere:1/write",
        }
        with patch.dict(os.environ, stray, clear=True):
            settings = Settings()

        self.assertIsNone(settings.basic_auth())
        self.assertEqual(str(settings.api_url).rstrip("/"), "http://localhost:9090")
        self.assertEqual(str(settings.write_url), "http://localhost:9090/api/v1/write")

    def test_prefixed_endpoint_variables(self) -> None:
        env = {"PROMKV_API_URL": "http://prom.prefixed:9090", "PROMKV_USERNAME": "bob"}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings()

        self.assertEqual(str(settings.api_url).rstrip("/"), "http://prom.prefixed:9090")
        self.assertIsInstance(settings.basic_auth(), httpx.BasicAuth)

    def test_max_value_bytes_is_capped_by_query_resolution(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(Settings(max_value_bytes=MAX_VALUE_BYTES).max_value_bytes, MAX_VALUE_BYTES)
            with self.assertRaises(ValidationError):
                Settings(max_value_bytes=11_000)
        with patch.dict(os.environ, {"PROMKV_MAX_VALUE_BYTES": "20000"}, clear=True):
            with self.assertRaises(ValidationError):
                Settings()

    def test_yaml_overrides_environment(self) -> None:
        with TemporaryDirectory() as td:
            cfg_path = Path(td) / "promkv.yaml"
            cfg_path.write_text(
                """
api_url: "http://prom.yaml:9090"
username: carol
lookback_s: 7200
log_level: debug
log_format: json
""".lstrip(),
                encoding="utf-8",
            )
            with patch.dict(os.environ, ENV, clear=True):
                settings = load_settings(cfg_path)

        self.assertEqual(str(settings.api_url).rstrip("/"), "http://prom.yaml:9090")
        self.assertEqual(str(settings.write_url), "http://prom.env:9090/api/v1/write")
        self.assertEqual(settings.username, "carol")
        self.assertEqual(settings.lookback_s, 7200.0)
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.log_format, "json")

    def test_invalid_values_are_rejected(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValidationError):
                Settings(timeout_s=0)
            with self.assertRaises(ValidationError):
                Settings(log_level="loud")

    def test_yaml_must_be_a_mapping(self) -> None:
        with TemporaryDirectory() as td:
            cfg_path = Path(td) / "promkv.yaml"
            cfg_path.write_text("- just\n- a list\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_settings(cfg_path)
