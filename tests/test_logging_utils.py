from __future__ import annotations

from faultline.logging_utils import LogBlockBuilder, _coerce_items, _stringify, _wrap_text, render_fields_block


class TestCoerceItems:
    def test_with_dict(self):
        assert _coerce_items({"key1": "value1", "key2": "value2"}) == [("key1", "value1"), ("key2", "value2")]

    def test_preserves_sequence_order(self):
        assert _coerce_items([("z", 1), ("a", 2)]) == [("z", 1), ("a", 2)]


class TestStringify:
    def test_none_is_empty(self):
        assert _stringify(None, 100) == ""

    def test_strips_strings(self):
        assert _stringify("  padded  ", 100) == "padded"

    def test_joins_sequences(self):
        assert _stringify(["a", 1, None], 100) == "a, 1, "

    def test_truncates_long_values(self):
        assert _stringify("x" * 20, 5) == "xxxxx..."

    def test_default_limit_applies(self):
        assert _stringify("x" * 2500) == "x" * 2000 + "..."


def test_wrap_text_splits_lines():
    assert _wrap_text("", 10) == [""]
    assert _wrap_text("one two three four", 9) == ["one two", "three", "four"]
    assert _wrap_text("first\nsecond", 40) == ["first", "second"]


class TestLogBlockBuilder:
    def test_title_is_underlined(self):
        builder = LogBlockBuilder("Notification Delivered", pad_top=False)
        lines = builder.render().splitlines()
        assert lines == ["Notification Delivered", "-" * len("Notification Delivered")]

    def test_pad_top_adds_leading_blank_line(self):
        assert LogBlockBuilder("Title").lines[0] == ""

    def test_fields_are_aligned(self):
        builder = LogBlockBuilder("Title", pad_top=False)
        builder.add_fields({"Endpoint": "https://notify.example", "Status": 200})
        lines = builder.render().splitlines()
        assert lines[2] == "    Endpoint: https://notify.example"
        assert lines[3] == "    Status  : 200"

    def test_long_values_wrap_under_label(self):
        builder = LogBlockBuilder("Title", pad_top=False)
        builder.add_fields({"Payload": " ".join(["word"] * 60)})
        lines = builder.render().splitlines()[2:]
        assert len(lines) > 1
        assert lines[0].startswith("    Payload : word")
        assert all(line.startswith("    " + " " * 8 + "  ") for line in lines[1:])

    def test_empty_fields_are_ignored(self):
        builder = LogBlockBuilder("Title", pad_top=False)
        builder.add_fields({})
        builder.add_fields(None)
        assert len(builder.lines) == 2


def test_render_fields_block():
    block = render_fields_block("Delivery", {"Status": 200}, pad_top=False)
    assert block == "Delivery\n--------\n    Status  : 200"
