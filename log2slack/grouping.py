"""Partition one flush's records into (channel, color) message groups."""
from __future__ import annotations

from typing import Iterable

from log2slack.models import DestinationKey, Field, MessageGroup, Record
from log2slack.template import BoundTemplate


def group_records(
    records: Iterable[Record],
    channel: BoundTemplate,
    color: BoundTemplate,
    message: BoundTemplate,
    title: BoundTemplate | None = None,
) -> dict[DestinationKey, MessageGroup]:
    """Single pass over records in arrival order.

    Channel and color are rendered per record, so the set of groups is only
    known after the pass. With a title template (titled mode) each group
    holds one field per tag, titled on the tag's first record. Line order
    inside a group, and inside a field, is arrival order; groups and fields
    keep first-occurrence order.
    """
    groups: dict[DestinationKey, MessageGroup] = {}
    for record in records:
        key = DestinationKey(
            channel=channel.render(record.fields),
            color=color.render(record.fields),
        )
        group = groups.get(key)
        if group is None:
            group = groups[key] = MessageGroup(channel=key.channel, color=key.color)

        text = message.render(record.fields)
        if title is None:
            group.append_line(text)
            continue

        field = group.fields.get(record.tag)
        if field is None:
            field = group.fields[record.tag] = Field(title=title.render(record.fields))
        field.append(text)
    return groups
