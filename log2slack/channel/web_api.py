"""Slack Web API client (token based): chat.postMessage and channels.create."""
from __future__ import annotations

import logging
from typing import Any

from log2slack.channel.base import (
    ChannelNotFoundError,
    NameTakenError,
    SlackApiError,
    SlackClient,
    filter_token,
)

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"


class WebApiClient(SlackClient):
    """Form-encoded Web API calls; attachments travel as a JSON string."""

    def __init__(self, api_url: str = SLACK_API_URL, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_url = api_url.rstrip("/")

    @property
    def post_message_endpoint(self) -> str:
        return f"{self.api_url}/chat.postMessage"

    @property
    def channels_create_endpoint(self) -> str:
        return f"{self.api_url}/channels.create"

    def post_message(self, payload: dict[str, Any], options: dict[str, Any] | None = None) -> None:
        """Post; on channel_not_found optionally create the channel and retry once."""
        options = options or {}
        logger.info("post_message %s", filter_token(payload))
        try:
            self._call(self.post_message_endpoint, payload)
        except ChannelNotFoundError:
            if not options.get("auto_channels_create"):
                raise
            logger.warning(
                'channel "%s" is not found. try to create the channel, and then retry to post the message.',
                payload.get("channel"),
            )
            self.channels_create({"name": payload.get("channel"), "token": payload.get("token")})
            self._call(self.post_message_endpoint, payload)

    def channels_create(self, params: dict[str, Any]) -> None:
        logger.info("channels_create %s", filter_token(params))
        try:
            self._call(self.channels_create_endpoint, params)
        except NameTakenError:
            logger.info('channel "%s" already exists', params.get("name"))

    def _call(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        res = self._post(url, data=self._encode_body(params))
        self._check_status(res)
        try:
            body = res.json()
        except ValueError as e:
            raise SlackApiError(f"Slack API returned non-JSON body: {res.text[:500]}", res.status_code, res.text) from e
        if body.get("ok"):
            return body
        error = body.get("error", "unknown_error")
        message = f"Slack API error: {error}"
        if error == "channel_not_found":
            raise ChannelNotFoundError(message, res.status_code, res.text)
        if error == "name_taken":
            raise NameTakenError(message, res.status_code, res.text)
        raise SlackApiError(message, res.status_code, res.text)

    def _encode_body(self, params: dict[str, Any]) -> dict[str, Any]:
        body = {k: v for k, v in params.items() if v is not None}
        if "attachments" in body:
            body["attachments"] = self._to_json(body["attachments"])
        return body
