"""File buffer: records are appended as JSON lines and flushed in chunks.

`emit` appends `[tag, time, record]` lines to the buffer file. A flush
renames the file to `<name>.chunk` and delivers that chunk; the chunk is
removed once delivered and kept when delivery must be retried, in which
case the next flush starts with it.
"""
from __future__ import annotations

import json
import logging
import time as _time
from pathlib import Path
from typing import Any, Iterator, Mapping

from log2slack.models import Record

logger = logging.getLogger(__name__)


def format_record(tag: str, time: int, fields: Mapping[str, Any]) -> str:
    """Serialize one record as a single JSON line."""
    return json.dumps([tag, int(time), dict(fields)], ensure_ascii=False, default=str)


def parse_record(line: str) -> Record:
    tag, time, fields = json.loads(line)
    if not isinstance(tag, str) or not isinstance(fields, dict):
        raise ValueError(f"malformed buffered record: {line[:200]!r}")
    return Record(tag=tag, time=int(time), fields=fields)


class FileBuffer:
    """Append-only spool file plus at most one pending chunk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.chunk_path = self.path.with_name(self.path.name + ".chunk")

    def append(self, tag: str, fields: Mapping[str, Any], time: int | None = None) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if time is None:
            time = int(_time.time())
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(format_record(tag, time, fields) + "\n")

    def take_chunk(self) -> Path | None:
        """Return the pending chunk, cutting a new one from the buffer if none is pending."""
        if self.chunk_path.exists():
            return self.chunk_path
        if not self.path.exists() or self.path.stat().st_size == 0:
            return None
        self.path.replace(self.chunk_path)
        return self.chunk_path

    def read_chunk(self, chunk: Path) -> Iterator[Record]:
        """Yield records in file order; undecodable lines are logged and skipped."""
        with open(chunk, encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield parse_record(line)
                except (ValueError, TypeError) as e:
                    logger.warning("skip buffered line %s:%s: %s", chunk, lineno, e)

    def commit(self, chunk: Path) -> None:
        """Drop a chunk once it has been handled."""
        chunk.unlink(missing_ok=True)
