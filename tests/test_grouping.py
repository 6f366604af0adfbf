from __future__ import annotations

from log2slack.grouping import group_records
from log2slack.models import DestinationKey, Record
from log2slack.payload import build_payloads, common_payload
from log2slack.template import BoundTemplate


def _t(text: str, keys: list[str] | None = None, option: str = "message") -> BoundTemplate:
    return BoundTemplate.build(text, keys, option)


def _record(tag: str, **fields: str) -> Record:
    return Record(tag=tag, time=0, fields={"tag": tag, **fields})


CHANNEL = _t("#%s", ["team"], "channel")
COLOR = _t("%s", ["level"], "color")
MESSAGE = _t("%s", ["message"])
TITLE = _t("%s", ["tag"], "title")


def test_plain_groups_by_channel_and_color_in_arrival_order() -> None:
    records = [
        _record("a", team="ops", level="danger", message="1"),
        _record("a", team="dev", level="good", message="2"),
        _record("b", team="ops", level="danger", message="3"),
        _record("a", team="ops", level="good", message="4"),
    ]
    groups = group_records(records, CHANNEL, COLOR, MESSAGE)

    assert list(groups) == [
        DestinationKey("#ops", "danger"),
        DestinationKey("#dev", "good"),
        DestinationKey("#ops", "good"),
    ]
    assert groups[DestinationKey("#ops", "danger")].text == "1\n3\n"


def test_titled_groups_fields_by_tag() -> None:
    records = [
        _record("app.error", team="ops", level="danger", message="e1"),
        _record("app.warn", team="ops", level="danger", message="w1"),
        _record("app.error", team="ops", level="danger", message="e2"),
    ]
    groups = group_records(records, CHANNEL, COLOR, MESSAGE, title=TITLE)

    group = groups[DestinationKey("#ops", "danger")]
    assert list(group.fields) == ["app.error", "app.warn"]
    assert group.fields["app.error"].value == "e1\ne2\n"
    assert group.lines == []


def test_title_is_rendered_from_first_record_of_tag() -> None:
    title = _t("%s on %s", ["tag", "host"], "title")
    records = [
        _record("app", team="ops", level="good", host="web1", message="a"),
        _record("app", team="ops", level="good", host="web2", message="b"),
    ]
    groups = group_records(records, CHANNEL, COLOR, MESSAGE, title=title)
    assert groups[DestinationKey("#ops", "good")].fields["app"].title == "app on web1"


def test_missing_color_key_groups_under_empty_color() -> None:
    records = [_record("a", team="ops", message="no level")]
    groups = group_records(records, CHANNEL, COLOR, MESSAGE)
    assert list(groups) == [DestinationKey("#ops", "")]


def test_plain_payload_count_equals_distinct_channels() -> None:
    records = [
        _record("a", team="ops", level="danger", message="1"),
        _record("a", team="dev", level="good", message="2"),
        _record("a", team="ops", level="good", message="3"),
    ]
    groups = group_records(records, CHANNEL, COLOR, MESSAGE)
    payloads = build_payloads(groups.values(), False, common_payload("fluentd", ":question:"))

    assert [p["channel"] for p in payloads] == ["#ops", "#dev"]
    ops = payloads[0]
    assert [a["color"] for a in ops["attachments"]] == ["danger", "good"]
    assert ops["attachments"][0] == {"color": "danger", "fallback": "1\n", "text": "1\n"}
    assert ops["username"] == "fluentd"
    assert ops["icon_emoji"] == ":question:"


def test_titled_attachment_fields_and_fallback() -> None:
    records = [
        _record("app.error", team="ops", level="danger", message="e1"),
        _record("app.warn", team="ops", level="danger", message="w1"),
    ]
    groups = group_records(records, CHANNEL, COLOR, MESSAGE, title=TITLE)
    (payload,) = build_payloads(groups.values(), True, common_payload("fluentd"))

    (attachment,) = payload["attachments"]
    assert attachment["fallback"] == "app.error app.warn"
    assert attachment["fields"] == [
        {"title": "app.error", "value": "e1\n"},
        {"title": "app.warn", "value": "w1\n"},
    ]
    assert "text" not in attachment


def test_empty_batch_builds_no_payloads() -> None:
    groups = group_records([], CHANNEL, COLOR, MESSAGE)
    assert build_payloads(groups.values(), False, common_payload("fluentd")) == []


def test_common_payload_only_carries_set_identity_fields() -> None:
    assert common_payload("bot", icon_url="https://i", token="xoxb") == {
        "username": "bot",
        "icon_url": "https://i",
        "token": "xoxb",
    }
