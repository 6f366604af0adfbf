"""Build Slack chat.postMessage payloads from message groups."""
from __future__ import annotations

from typing import Any, Iterable

from log2slack.models import MessageGroup

Payload = dict[str, Any]


def common_payload(
    username: str,
    icon_emoji: str | None = None,
    icon_url: str | None = None,
    token: str | None = None,
) -> Payload:
    """Sender identity merged into every payload."""
    payload: Payload = {"username": username}
    if icon_emoji:
        payload["icon_emoji"] = icon_emoji
    if icon_url:
        payload["icon_url"] = icon_url
    if token:
        payload["token"] = token
    return payload


def plain_attachment(group: MessageGroup) -> dict[str, Any]:
    text = group.text
    return {
        "color": group.color,
        "fallback": text,
        "text": text,
    }


def titled_attachment(group: MessageGroup) -> dict[str, Any]:
    fields = list(group.fields.values())
    return {
        "color": group.color,
        # fallback is the message shown on popup
        "fallback": " ".join(f.title for f in fields),
        "fields": [f.to_dict() for f in fields],
    }


def build_payloads(groups: Iterable[MessageGroup], titled: bool, common: Payload) -> list[Payload]:
    """One payload per channel, carrying one attachment per color group.

    Channels appear in first-occurrence order. Groups with nothing in them
    are skipped, so every payload has at least one attachment.
    """
    attachment = titled_attachment if titled else plain_attachment
    by_channel: dict[str, list[dict[str, Any]]] = {}
    for group in groups:
        if not (group.fields if titled else group.lines):
            continue
        by_channel.setdefault(group.channel, []).append(attachment(group))
    return [
        {"channel": channel, "attachments": attachments, **common}
        for channel, attachments in by_channel.items()
    ]
