"""Positional `%s` templates rendered against record fields.

Templates are parsed once at configuration time into literal and placeholder
tokens, so a specifier/key-count mismatch is reported before any record is
processed. A field missing from a record is logged and substituted with an
empty string.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

logger = logging.getLogger(__name__)


# After a "%": either a literal "%" or a string conversion with optional
# flags, width and precision ("%-6s", "%5s", "%.3s").
CONVERSION_RE = re.compile(r"%|[-+ 0#]*\d*(?:\.\d+)?s")


class TemplateError(ValueError):
    """Template text is malformed or does not match its key list."""


@dataclass(frozen=True)
class Placeholder:
    """Positional slot: value index plus its conversion, e.g. "-6s"."""

    index: int
    conversion: str = "s"

    def format(self, value: str) -> str:
        if self.conversion == "s":
            return value
        return ("%" + self.conversion) % value


@dataclass(frozen=True)
class Template:
    """Parsed template: literal strings and placeholders, in order."""

    text: str
    tokens: tuple[str | Placeholder, ...]

    @classmethod
    def parse(cls, text: str) -> "Template":
        tokens: list[str | Placeholder] = []
        literal: list[str] = []
        index = 0
        i = 0
        while i < len(text):
            ch = text[i]
            if ch != "%":
                literal.append(ch)
                i += 1
                continue
            match = CONVERSION_RE.match(text, i + 1)
            if match is None:
                raise TemplateError(
                    f"unsupported format specifier {text[i:i + 2]!r} at position {i} in {text!r}"
                )
            conversion = match.group(0)
            if conversion == "%":
                literal.append("%")
            else:
                if literal:
                    tokens.append("".join(literal))
                    literal = []
                tokens.append(Placeholder(index=index, conversion=conversion))
                index += 1
            i = match.end()
        if literal:
            tokens.append("".join(literal))
        return cls(text=text, tokens=tuple(tokens))

    @classmethod
    def literal(cls, text: str) -> "Template":
        return cls(text=text, tokens=(text,) if text else ())

    @property
    def arity(self) -> int:
        return sum(1 for token in self.tokens if isinstance(token, Placeholder))

    def apply(self, values: Sequence[str]) -> str:
        if len(values) != self.arity:
            raise TemplateError(
                f"template {self.text!r} expects {self.arity} values, got {len(values)}"
            )
        return "".join(
            t.format(values[t.index]) if isinstance(t, Placeholder) else t for t in self.tokens
        )


def compile_template(text: str, keys: Sequence[str] | None, option: str) -> Template:
    """Parse `text` and check it takes exactly len(keys) values.

    `option` names the config pair (e.g. "message") for the error message.
    With no keys the text is used literally and is not parsed at all.
    """
    if keys is None:
        return Template.literal(text)
    try:
        template = Template.parse(text)
    except TemplateError as e:
        raise TemplateError(f"`{option}`: {e}") from e
    if template.arity != len(keys):
        raise TemplateError(
            f"string specifier '%s' for `{option}` and `{option}_keys` specification mismatch "
            f"({template.arity} specifier(s), {len(keys)} key(s))"
        )
    return template


def fetch_keys(record: Mapping[str, Any], keys: Sequence[str]) -> list[str]:
    """Look up keys in order; missing keys warn and become ""."""
    values = []
    for key in keys:
        if key not in record:
            logger.warning("the specified key '%s' not found in record. [%s]", key, record)
            values.append("")
            continue
        values.append(str(record[key]))
    return values


def render(template: Template, keys: Sequence[str] | None, record: Mapping[str, Any]) -> str:
    """Render one template for one record; without keys the raw text is returned."""
    if keys is None:
        return template.text
    return template.apply(fetch_keys(record, keys))


@dataclass(frozen=True)
class BoundTemplate:
    """A validated template together with the record keys feeding it."""

    template: Template
    keys: tuple[str, ...] | None = None

    @classmethod
    def build(cls, text: str, keys: Sequence[str] | None, option: str) -> "BoundTemplate":
        key_tuple = tuple(keys) if keys is not None else None
        return cls(template=compile_template(text, key_tuple, option), keys=key_tuple)

    def render(self, record: Mapping[str, Any]) -> str:
        return render(self.template, self.keys, record)
