"""Slack client abstraction and delivery error hierarchy."""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import requests

from log2slack.models import ErrorKind

logger = logging.getLogger(__name__)


class SlackError(Exception):
    """Delivery failed; `kind` tells the output whether to retry the batch."""

    kind = ErrorKind.PERMANENT


class SlackTimeoutError(SlackError):
    """Connect or read timeout talking to Slack; the batch is retried."""

    kind = ErrorKind.TRANSIENT


class SlackConnectionError(SlackError):
    """Any non-timeout transport failure (DNS, TLS, refused connection)."""


class SlackApiError(SlackError):
    """Slack answered, but rejected the request."""

    def __init__(self, message: str, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ChannelNotFoundError(SlackApiError):
    pass


class NameTakenError(SlackApiError):
    pass


def classify_error(error: BaseException) -> ErrorKind:
    """Map any exception raised while flushing onto an ErrorKind."""
    if isinstance(error, SlackError):
        return error.kind
    if isinstance(error, requests.Timeout):
        return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT


def filter_token(params: dict[str, Any]) -> dict[str, Any]:
    """Copy of params safe to log."""
    if "token" not in params:
        return params
    return {**params, "token": "[FILTERED]"}


class SlackClient(ABC):
    """post_message(payload, options) -> None; raises SlackError on failure."""

    def __init__(
        self,
        https_proxy: str | None = None,
        timeout: tuple[float, float] = (10.0, 30.0),
        session: requests.Session | None = None,
    ) -> None:
        self.https_proxy = https_proxy
        self.timeout = timeout
        self.session = session or requests.Session()

    @abstractmethod
    def post_message(self, payload: dict[str, Any], options: dict[str, Any] | None = None) -> None:
        """Send one payload."""
        ...

    def _post(self, url: str, **kwargs: Any) -> requests.Response:
        proxies = {"https": self.https_proxy} if self.https_proxy else None
        try:
            return self.session.post(url, timeout=self.timeout, proxies=proxies, **kwargs)
        except (requests.ConnectTimeout, requests.ReadTimeout) as e:
            raise SlackTimeoutError(str(e)) from e
        except requests.RequestException as e:
            raise SlackConnectionError(str(e)) from e

    @staticmethod
    def _check_status(res: requests.Response) -> None:
        if res.status_code != 200:
            raise SlackApiError(
                f"Slack returned status={res.status_code} body={res.text[:500]}",
                status=res.status_code,
                body=res.text,
            )

    @staticmethod
    def _to_json(params: dict[str, Any]) -> str:
        return json.dumps(params, ensure_ascii=False)
