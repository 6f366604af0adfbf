"""CLI entry: python -m log2slack.cli {emit,flush} [--config path]."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from log2slack.runner import emit, run

load_dotenv()

DEFAULT_CONFIG = "config/config.yaml"
LOG_DIR = Path("logs")

# exit status when records are kept for a later retry
EXIT_RETRY_PENDING = 2


def _setup_logging(verbose: bool = False) -> None:
    LOG_DIR.mkdir(exist_ok=True)
    log_file = LOG_DIR / "app.log"
    fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
    formatter = logging.Formatter(fmt)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not root.handlers:
        h_stderr = logging.StreamHandler(sys.stderr)
        h_stderr.setFormatter(formatter)
        root.addHandler(h_stderr)
        h_file = logging.FileHandler(log_file, encoding="utf-8")
        h_file.setFormatter(formatter)
        root.addHandler(h_file)


def _parse_fields(pairs: list[str]) -> dict[str, str]:
    fields = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"--field expects key=value, got {pair!r}")
        fields[key] = value
    return fields


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Buffer log records and flush them to Slack")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Config file path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    emit_parser = sub.add_parser("emit", help="Append one record to the buffer")
    emit_parser.add_argument("--tag", required=True, help="Record tag, e.g. app.error")
    emit_parser.add_argument(
        "--field",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Record field (repeatable)",
    )
    emit_parser.add_argument(
        "--json",
        action="store_true",
        help="Read the record fields as a JSON object from stdin",
    )
    emit_parser.add_argument("--time", type=int, default=None, help="Epoch seconds (default: now)")

    flush_parser = sub.add_parser("flush", help="Send buffered records to Slack")
    flush_parser.add_argument(
        "--force",
        action="store_true",
        help="Flush even if buffer.flush_cron does not match the current minute",
    )
    flush_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build payloads and log them but do not send; the buffer is kept",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    _setup_logging(args.verbose)

    try:
        if args.command == "emit":
            fields = _parse_fields(args.field)
            if args.json:
                data = json.load(sys.stdin)
                if not isinstance(data, dict):
                    raise ValueError("--json expects a JSON object on stdin")
                fields.update(data)
            emit(args.config, args.tag, fields, time=args.time)
        elif args.command == "flush":
            if not run(args.config, force=args.force, dry_run=args.dry_run):
                sys.exit(EXIT_RETRY_PENDING)
    except FileNotFoundError as e:
        logging.error("%s", e)
        sys.exit(1)
    except ValueError as e:
        logging.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
