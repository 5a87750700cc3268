from __future__ import annotations

import argparse
import asyncio
import sys
from typing import BinaryIO

import structlog
from pydantic import ValidationError

from promkv.config import Settings, load_settings
from promkv.exceptions import PromKVError
from promkv.kv import PromKV
from promkv.logging_config import configure_logging

logger = structlog.get_logger(__name__)

DESCRIPTION = """\
promkv is a key-value storage backed by Prometheus.

It is meant to be used as a joke, and should not be used for real persistent
storage. Expect data corruption and bugs to be rampant.

Environment:
  PROMETHEUS_URL               base URL of the Prometheus API
  PROMETHEUS_REMOTE_WRITE_URL  URL to remote_write values to
  PROMETHEUS_USERNAME          optional basic auth username
  PROMETHEUS_PASSWORD          optional basic auth password
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promkv",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to YAML config (overrides environment)")
    parser.add_argument("--log-level", help="Log level for stderr diagnostics")

    sub = parser.add_subparsers(dest="command", required=True)
    get_cmd = sub.add_parser("get", help="Get a value from promkv.")
    get_cmd.add_argument("name")
    set_cmd = sub.add_parser("set", help="Store a value in promkv. Data is read from stdin.")
    set_cmd.add_argument("name")
    return parser


async def _run(settings: Settings, command: str, name: str, stdin: BinaryIO, stdout: BinaryIO) -> None:
    async with PromKV.from_settings(settings) as kv:
        if command == "get":
            data = await kv.get(name)
            stdout.write(data)
            stdout.flush()
        else:
            await kv.set(name, stdin.read())


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError, ValidationError) as exc:
        print(f"promkv: invalid configuration: {exc}", file=sys.stderr)
        return 1

    configure_logging(args.log_level or settings.log_level, settings.log_format)

    try:
        asyncio.run(_run(settings, args.command, args.name, sys.stdin.buffer, sys.stdout.buffer))
    except PromKVError as exc:
        logger.debug("command_failed", command=args.command, key=args.name, error_type=type(exc).__name__)
        print(f"promkv: {exc}", file=sys.stderr)
        return 1
    return 0
