"""Runner: load config, decide whether a flush is due by cron, flush the buffer."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from croniter import croniter

from log2slack.buffer import FileBuffer
from log2slack.channel.base import filter_token
from log2slack.config import AppConfig, build_config, load_config
from log2slack.output import SlackOutput

logger = logging.getLogger(__name__)


def read_app_config(config_path: str | Path) -> AppConfig:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"config not found: {path}")
    return build_config(load_config(path))


def flush_due(cron_expr: str | None, now: datetime) -> bool:
    """True when cron_expr fires in the current minute (always true without one)."""
    if not cron_expr:
        return True
    now_utc = now.astimezone(timezone.utc)
    now_trunc = now_utc.replace(second=0, microsecond=0)
    base = now_trunc - timedelta(minutes=1)
    try:
        next_run = croniter(cron_expr, base).get_next(datetime)
    except (ValueError, KeyError) as e:
        raise ValueError(f"config: invalid buffer.flush_cron {cron_expr!r}: {e}") from e
    next_trunc = next_run.replace(second=0, microsecond=0)
    if next_run.tzinfo is None:
        next_trunc = next_trunc.replace(tzinfo=timezone.utc)
    return next_trunc == now_trunc


def flush_buffer(output: SlackOutput, buffer: FileBuffer, dry_run: bool = False) -> bool:
    """Flush chunks until the buffer is empty.

    Returns False when a chunk hit a transient error and was kept for the
    next run. In dry-run mode payloads are only logged and the chunk is kept.
    """
    while True:
        chunk = buffer.take_chunk()
        if chunk is None:
            return True
        records = list(buffer.read_chunk(chunk))
        if dry_run:
            try:
                payloads = output.build_payloads(records)
            except Exception as e:
                logger.error("Dry-run: error=%s error_class=%s", e, type(e).__name__)
                logger.debug("Dry-run: backtrace", exc_info=True)
                payloads = []
            for payload in payloads:
                logger.info("Dry-run: would post %s", filter_token(payload))
            logger.info("Dry-run: %s record(s) left in %s", len(records), chunk)
            return True
        try:
            output.write(records)
        except Exception as e:
            logger.warning("flush of %s record(s) deferred, will retry next run: %s", len(records), e)
            return False
        buffer.commit(chunk)
        logger.info("Flushed %s record(s) from %s", len(records), chunk)


def run(config_path: str | Path, force: bool = False, dry_run: bool = False) -> bool:
    """Load config and flush the buffer if the flush schedule matches now.

    Returns False when records are left pending for a retry.
    """
    config = read_app_config(config_path)
    now = datetime.now(timezone.utc)
    if not force and not flush_due(config.buffer.flush_cron, now):
        logger.info("No flush due (flush_cron=%s). Use --force to flush anyway.", config.buffer.flush_cron)
        return True
    output = SlackOutput(config.output)
    return flush_buffer(output, FileBuffer(config.buffer.path), dry_run=dry_run)


def emit(config_path: str | Path, tag: str, fields: dict, time: int | None = None) -> None:
    """Append one record to the configured buffer."""
    config = read_app_config(config_path)
    FileBuffer(config.buffer.path).append(tag, fields, time=time)
    logger.debug("Buffered record tag=%s into %s", tag, config.buffer.path)
