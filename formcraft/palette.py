"""Component palette and property editor definitions."""

from typing import List, Dict, Union
from dataclasses import dataclass

from formcraft.model import NodeType, Option, type_value


@dataclass(frozen=True)
class PaletteItem:
    """A component that can be dragged from the palette."""
    type: str
    label: str
    icon: str = ""


# Order is the order shown in the palette
PALETTE: List[PaletteItem] = [
    PaletteItem(NodeType.CONTAINER.value, "Container", "📦"),
    PaletteItem(NodeType.ROW.value, "Row", "↔"),
    PaletteItem(NodeType.COL.value, "Column", "↕"),
    PaletteItem(NodeType.INPUT.value, "Input", "📝"),
    PaletteItem(NodeType.TEXTAREA.value, "TextArea", "📄"),
    PaletteItem(NodeType.SELECT.value, "Select", "📋"),
    PaletteItem(NodeType.CHECKBOX.value, "Checkbox", "☑"),
    PaletteItem(NodeType.RADIO.value, "Radio", "🔘"),
    PaletteItem(NodeType.BUTTON.value, "Button", "⏺"),
    PaletteItem(NodeType.TEXT.value, "Text", "📌"),
    PaletteItem(NodeType.DIVIDER.value, "Divider", "➖"),
]

# Which properties the editor offers per node type
_FIELD_TYPES: Dict[str, tuple] = {
    "label": ("input", "textarea", "select", "checkbox", "radio", "button", "text", "container"),
    "placeholder": ("input", "textarea", "select"),
    "defaultValue": ("input", "textarea", "select"),
    "required": ("input", "textarea", "select", "checkbox", "radio"),
    "options": ("select", "radio"),
}


def get_palette_item(node_type: Union[str, NodeType]) -> PaletteItem:
    """Get the palette entry for a type, falling back to a bare entry."""
    value = type_value(node_type)
    for item in PALETTE:
        if item.type == value:
            return item
    return PaletteItem(value, value.title())


def editable_fields(node_type: Union[str, NodeType]) -> List[str]:
    """Property names the editor shows for a node type."""
    value = type_value(node_type)
    return [name for name, types in _FIELD_TYPES.items() if value in types]


def parse_options(text: str) -> List[Option]:
    """Parse ``label:value`` lines into options.

    Blank lines are skipped; a missing side copies the other one.
    """
    options = []
    for line in text.splitlines():
        if not line.strip():
            continue
        label, _, value = line.partition(":")
        label, value = label.strip(), value.strip()
        options.append(Option(label=label or value, value=value or label))
    return options


def format_options(options: List[Option]) -> str:
    """Inverse of parse_options, for pre-filling the editor."""
    return "\n".join(f"{o.label}:{o.value}" for o in options)
