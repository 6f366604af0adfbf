"""Channel layer: Slack clients; factory picks one from the output config."""
from __future__ import annotations

from log2slack.channel.base import (
    ChannelNotFoundError,
    SlackApiError,
    SlackClient,
    SlackConnectionError,
    SlackError,
    SlackTimeoutError,
    classify_error,
)
from log2slack.channel.web_api import WebApiClient
from log2slack.channel.webhook import IncomingWebhookClient
from log2slack.config import OutputConfig


def get_client(config: OutputConfig) -> SlackClient:
    """Webhook client when webhook_url is set, Web API client for token auth."""
    timeout = (config.open_timeout, config.read_timeout)
    if config.webhook_url:
        return IncomingWebhookClient(config.webhook_url, https_proxy=config.https_proxy, timeout=timeout)
    if config.token:
        return WebApiClient(https_proxy=config.https_proxy, timeout=timeout)
    raise ValueError("either of `webhook_url` or `token` is required")


__all__ = [
    "ChannelNotFoundError",
    "IncomingWebhookClient",
    "SlackApiError",
    "SlackClient",
    "SlackConnectionError",
    "SlackError",
    "SlackTimeoutError",
    "WebApiClient",
    "classify_error",
    "get_client",
]
