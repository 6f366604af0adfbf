"""Core data models shared by the grouping, payload and delivery layers."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


@dataclass(frozen=True)
class Record:
    """One buffered log record: (tag, epoch seconds, fields)."""

    tag: str
    time: int
    fields: Mapping[str, Any]


@dataclass(frozen=True)
class DestinationKey:
    """Rendered (channel, color) of one outbound attachment.

    In titled mode the record tag is the sub-key inside MessageGroup.fields.
    """

    channel: str
    color: str


@dataclass
class Field:
    """Titled-mode field builder; lines are joined once in to_dict()."""

    title: str
    lines: list[str] = field(default_factory=list)

    def append(self, line: str) -> None:
        self.lines.append(f"{line}\n")

    @property
    def value(self) -> str:
        return "".join(self.lines)

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "value": self.value}


@dataclass
class MessageGroup:
    """Per-flush accumulator for one (channel, color) bucket.

    Plain mode fills `lines`; titled mode fills `fields`, keyed by tag in
    first-occurrence order.
    """

    channel: str
    color: str
    lines: list[str] = field(default_factory=list)
    fields: dict[str, Field] = field(default_factory=dict)

    def append_line(self, line: str) -> None:
        self.lines.append(f"{line}\n")

    @property
    def text(self) -> str:
        return "".join(self.lines)


class ErrorKind(Enum):
    """Delivery failure classification: retry the batch or discard it."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
