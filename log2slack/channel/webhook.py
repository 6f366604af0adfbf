"""Slack Incoming Webhook client: POST the payload as JSON to the hook URL."""
from __future__ import annotations

import logging
from typing import Any

from log2slack.channel.base import SlackApiError, SlackClient, filter_token

logger = logging.getLogger(__name__)


class IncomingWebhookClient(SlackClient):
    """Incoming webhooks answer a literal "ok" on success."""

    def __init__(self, webhook_url: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.webhook_url = webhook_url

    def post_message(self, payload: dict[str, Any], options: dict[str, Any] | None = None) -> None:
        logger.info("post_message %s", filter_token(payload))
        res = self._post(self.webhook_url, json=payload)
        self._check_status(res)
        if res.text.strip() != "ok":
            raise SlackApiError(
                f"Slack webhook error: body={res.text[:500]}",
                status=res.status_code,
                body=res.text,
            )
