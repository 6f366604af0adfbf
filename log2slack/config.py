"""Configuration loading: YAML file -> validated AppConfig.

All checks happen here, once, before any record is flushed. Any problem is a
ConfigError, which the CLI reports and exits on.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import unquote

import yaml
from croniter import croniter

from log2slack.template import BoundTemplate, TemplateError

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_PATH = "buffer/records.jsonl"
DEFAULT_ICON_EMOJI = ":question:"

# Match ${VAR_NAME} in credential strings
ENV_PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Accepted alternative spellings -> canonical option name
_ALIASES = {
    "destination_channel": "channel",
    "sender_username": "username",
    "auto_channel_create": "auto_channels_create",
}


class ConfigError(ValueError):
    """Fatal configuration problem, surfaced at startup."""


@dataclass(frozen=True)
class OutputConfig:
    """Validated Slack output settings."""

    webhook_url: str | None
    token: str | None
    channel: BoundTemplate
    color: BoundTemplate
    title: BoundTemplate | None
    message: BoundTemplate
    username: str = "fluentd"
    icon_emoji: str | None = DEFAULT_ICON_EMOJI
    icon_url: str | None = None
    auto_channels_create: bool = False
    https_proxy: str | None = None
    include_tag_key: bool = True
    tag_key: str = "tag"
    include_time_key: bool = True
    time_key: str = "time"
    time_format: str = "%H:%M:%S"
    utc: bool = False
    open_timeout: float = 10.0
    read_timeout: float = 30.0

    @property
    def titled(self) -> bool:
        return self.title is not None


@dataclass(frozen=True)
class BufferConfig:
    """Where records are spooled and when they are flushed."""

    path: Path
    flush_cron: str | None = None


@dataclass(frozen=True)
class AppConfig:
    output: OutputConfig
    buffer: BufferConfig


def load_config(path: str | Path) -> dict:
    """Load YAML config from path."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_env(raw: str) -> str:
    """Replace ${ENV_VAR} with os.environ values; unset variables become ""."""
    def repl(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in os.environ:
            logger.warning("environment variable %s is not set", key)
        return os.environ.get(key, "")
    return ENV_PLACEHOLDER_RE.sub(repl, raw)


def _keys(value: Any, option: str) -> list[str] | None:
    """Key lists may be a YAML list or a comma-separated string."""
    if value is None:
        return None
    if isinstance(value, str):
        return [k.strip() for k in value.split(",") if k.strip()]
    if isinstance(value, (list, tuple)):
        return [str(k) for k in value]
    raise ConfigError(f"config: `{option}` must be a list or a comma-separated string")


def _bool(value: Any, option: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "yes", "1", "false", "no", "0"):
        return value.lower() in ("true", "yes", "1")
    raise ConfigError(f"config: `{option}` must be a boolean, got {value!r}")


def _template(text: str, keys: list[str] | None, option: str) -> BoundTemplate:
    try:
        return BoundTemplate.build(text, keys, option)
    except TemplateError as e:
        raise ConfigError(f"config: {e}") from e


def _normalize_channel(channel: Any) -> str:
    if not channel:
        raise ConfigError("config: `channel` is required")
    # URL-escaped channels (e.g. %23ops) are still accepted
    channel = unquote(str(channel))
    if not channel.startswith("#"):
        channel = "#" + channel
    return channel


def build_output_config(raw: dict) -> OutputConfig:
    """Validate the `output` section; raise ConfigError on any problem."""
    if not isinstance(raw, dict):
        raise ConfigError("config: output must be a dict")
    opts = {_ALIASES.get(k, k): v for k, v in raw.items()}

    webhook_url = opts.get("webhook_url")
    token = opts.get("token")
    if webhook_url is not None and token is not None:
        raise ConfigError("config: either of `webhook_url` or `token` can be specified, not both")

    title = opts.get("title")
    title_keys = _keys(opts.get("title_keys"), "title_keys")
    message = opts.get("message")
    message_keys = _keys(opts.get("message_keys"), "message_keys")

    if webhook_url is not None:
        webhook_url = _resolve_env(str(webhook_url))
        if not webhook_url:
            raise ConfigError("config: `webhook_url` is an empty string")
        # defaults kept compatible with older webhook-only configs
        if title is None:
            title = "%s"
        if title_keys is None:
            title_keys = ["tag"]
        if message is None:
            message = "[%s] %s"
        if message_keys is None:
            message_keys = ["time", "message"]
    elif token is not None:
        token = _resolve_env(str(token))
        if not token:
            raise ConfigError("config: `token` is an empty string")
        if message is None:
            message = "%s"
        if message_keys is None:
            message_keys = ["message"]
    else:
        raise ConfigError("config: either of `webhook_url` or `token` is required")

    icon_emoji = opts.get("icon_emoji")
    icon_url = opts.get("icon_url")
    if icon_emoji and icon_url:
        raise ConfigError("config: either of `icon_emoji` or `icon_url` can be specified")
    if not icon_url:
        icon_emoji = icon_emoji or DEFAULT_ICON_EMOJI

    channel = _normalize_channel(opts.get("channel"))
    color = str(opts.get("color") or "good")
    channel_keys = _keys(opts.get("channel_keys"), "channel_keys")
    color_keys = _keys(opts.get("color_keys"), "color_keys")

    try:
        open_timeout = float(opts.get("open_timeout", 10))
        read_timeout = float(opts.get("read_timeout", 30))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"config: timeouts must be numbers: {e}") from e

    return OutputConfig(
        webhook_url=webhook_url,
        token=token,
        channel=_template(channel, channel_keys, "channel"),
        color=_template(color, color_keys, "color"),
        title=_template(str(title), title_keys, "title") if title is not None else None,
        message=_template(str(message), message_keys, "message"),
        username=str(opts.get("username", "fluentd")),
        icon_emoji=icon_emoji or None,
        icon_url=icon_url or None,
        auto_channels_create=_bool(opts.get("auto_channels_create", False), "auto_channels_create"),
        https_proxy=opts.get("https_proxy") or None,
        include_tag_key=_bool(opts.get("include_tag_key", True), "include_tag_key"),
        tag_key=str(opts.get("tag_key", "tag")),
        include_time_key=_bool(opts.get("include_time_key", True), "include_time_key"),
        time_key=str(opts.get("time_key", "time")),
        time_format=str(opts.get("time_format", "%H:%M:%S")),
        utc=_bool(opts.get("utc", False), "utc"),
        open_timeout=open_timeout,
        read_timeout=read_timeout,
    )


def build_buffer_config(raw: dict | None) -> BufferConfig:
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError("config: buffer must be a dict")
    flush_cron = raw.get("flush_cron")
    if flush_cron and not croniter.is_valid(str(flush_cron)):
        raise ConfigError(f"config: invalid buffer.flush_cron {flush_cron!r}")
    return BufferConfig(
        path=Path(raw.get("path") or DEFAULT_BUFFER_PATH),
        flush_cron=str(flush_cron) if flush_cron else None,
    )


def build_config(raw: dict) -> AppConfig:
    if not isinstance(raw, dict):
        raise ConfigError("config: top level must be a mapping")
    if "output" not in raw:
        raise ConfigError("config: missing `output` section")
    return AppConfig(
        output=build_output_config(raw["output"]),
        buffer=build_buffer_config(raw.get("buffer")),
    )
