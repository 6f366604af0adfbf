"""Slack output: turn one buffered batch into payloads and deliver them.

write() is the flush entry point used by the runner. Only transient
(timeout) errors escape it, so the caller keeps the batch and tries again
later; every other failure is logged and the batch is dropped. A retried
batch is sent from the start, so channels that already received their
payload get it again.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from log2slack.channel import SlackClient, classify_error, get_client
from log2slack.config import OutputConfig
from log2slack.grouping import group_records
from log2slack.models import ErrorKind, Record
from log2slack.payload import Payload, build_payloads, common_payload

logger = logging.getLogger(__name__)


class SlackOutput:
    """Grouping, payload building and delivery for one configured output."""

    def __init__(self, config: OutputConfig, client: SlackClient | None = None) -> None:
        self.config = config
        self.client = client or get_client(config)
        self.post_message_opts: dict[str, Any] = (
            {"auto_channels_create": True} if config.auto_channels_create else {}
        )
        self.common_payload = common_payload(
            username=config.username,
            icon_emoji=config.icon_emoji,
            icon_url=config.icon_url,
            token=config.token,
        )

    def format_time(self, timestamp: float) -> str:
        tz = timezone.utc if self.config.utc else None
        return datetime.fromtimestamp(timestamp, tz=tz).strftime(self.config.time_format)

    def enrich(self, record: Record) -> Record:
        """Set the tag and formatted time fields, replacing any record values."""
        cfg = self.config
        fields = dict(record.fields)
        if cfg.include_tag_key:
            fields[cfg.tag_key] = record.tag
        if cfg.include_time_key:
            fields[cfg.time_key] = self.format_time(record.time)
        return Record(tag=record.tag, time=record.time, fields=fields)

    def build_payloads(self, records: Iterable[Record]) -> list[Payload]:
        cfg = self.config
        groups = group_records(
            (self.enrich(r) for r in records),
            channel=cfg.channel,
            color=cfg.color,
            message=cfg.message,
            title=cfg.title,
        )
        return build_payloads(groups.values(), cfg.titled, self.common_payload)

    def write(self, records: Iterable[Record]) -> None:
        """Deliver one batch; payloads are sent one after another."""
        try:
            payloads = self.build_payloads(records)
            for payload in payloads:
                self.client.post_message(payload, self.post_message_opts)
        except Exception as e:
            if classify_error(e) is ErrorKind.TRANSIENT:
                logger.warning("out_slack: error=%s error_class=%s", e, type(e).__name__)
                raise
            # discarded; only timeouts are retried
            logger.error("out_slack: error=%s error_class=%s", e, type(e).__name__)
            logger.debug("out_slack: backtrace", exc_info=True)
