"""Tests for the palette catalogue and property editor helpers."""

from formcraft.model import NodeType, Option
from formcraft.palette import (
    PALETTE,
    editable_fields,
    format_options,
    get_palette_item,
    parse_options,
)


class TestPalette:

    def test_every_type_is_offered_once(self):
        types = [item.type for item in PALETTE]
        assert sorted(types) == sorted(t.value for t in NodeType)

    def test_lookup(self):
        assert get_palette_item("col").label == "Column"
        assert get_palette_item(NodeType.TEXTAREA).label == "TextArea"

    def test_unknown_type_falls_back(self):
        item = get_palette_item("slider")
        assert item.label == "Slider"
        assert item.icon == ""


class TestEditableFields:

    def test_select(self):
        assert editable_fields("select") == ["label", "placeholder", "defaultValue", "required", "options"]

    def test_checkbox(self):
        assert editable_fields("checkbox") == ["label", "required"]

    def test_layout_types(self):
        assert editable_fields("container") == ["label"]
        assert editable_fields("row") == []
        assert editable_fields("divider") == []


class TestOptions:

    def test_parse(self):
        text = "Sales:sales\n\n  Support : support \nOther"
        assert parse_options(text) == [
            Option("Sales", "sales"),
            Option("Support", "support"),
            Option("Other", "Other"),
        ]

    def test_missing_label(self):
        assert parse_options(":x") == [Option("x", "x")]

    def test_format_round_trip(self):
        options = [Option("A", "a"), Option("B", "b")]
        assert parse_options(format_options(options)) == options
