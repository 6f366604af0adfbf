from __future__ import annotations

import logging

import pytest

from log2slack.template import BoundTemplate, Template, TemplateError, compile_template, render


@pytest.mark.parametrize(
    ("text", "arity"),
    [
        ("plain", 0),
        ("%s", 1),
        ("[%s] %s", 2),
        ("100%% of %s", 1),
        ("%s%s%s", 3),
    ],
)
def test_arity_counts_positional_specifiers(text: str, arity: int) -> None:
    assert Template.parse(text).arity == arity


def test_compile_accepts_matching_key_count() -> None:
    template = compile_template("[%s] %s", ["tag", "message"], "message")
    assert template.apply(["a", "b"]) == "[a] b"


@pytest.mark.parametrize("keys", [["tag"], ["tag", "message", "extra"], []])
def test_compile_rejects_key_count_mismatch(keys: list[str]) -> None:
    with pytest.raises(TemplateError) as excinfo:
        compile_template("[%s] %s", keys, "message")
    assert "`message` and `message_keys`" in str(excinfo.value)


def test_compile_rejects_unsupported_specifier() -> None:
    with pytest.raises(TemplateError):
        compile_template("%d errors", ["count"], "title")


def test_literal_without_keys_is_not_parsed() -> None:
    template = compile_template("#ops-100%", None, "channel")
    assert render(template, None, {}) == "#ops-100%"


@pytest.mark.parametrize(
    ("text", "values", "expected"),
    [
        ("%-6s|%s", ["warn", "m"], "warn  |m"),
        ("%5s", ["ab"], "   ab"),
        ("%.3s!", ["abcdef"], "abc!"),
        ("[%-4.2s]", ["xyz"], "[xy  ]"),
    ],
)
def test_width_flag_and_precision_specifiers(text: str, values: list[str], expected: str) -> None:
    template = compile_template(text, [f"k{i}" for i in range(len(values))], "message")
    assert template.arity == len(values)
    assert template.apply(values) == expected


def test_percent_escape_renders_literal_percent() -> None:
    bound = BoundTemplate.build("%s at 100%%", ["host"], "message")
    assert bound.render({"host": "web1"}) == "web1 at 100%"


def test_values_are_coerced_to_string() -> None:
    bound = BoundTemplate.build("%s/%s", ["code", "ok"], "message")
    assert bound.render({"code": 500, "ok": False}) == "500/False"


def test_missing_key_renders_empty_and_warns(caplog: pytest.LogCaptureFixture) -> None:
    bound = BoundTemplate.build("[%s] %s", ["tag", "message"], "message")
    with caplog.at_level(logging.WARNING, logger="log2slack.template"):
        assert bound.render({"tag": "app"}) == "[app] "
    assert "'message' not found" in caplog.text
