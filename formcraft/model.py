"""Form node data model and its JSON shape."""

import json
from copy import deepcopy
from enum import Enum
from typing import Optional, List, Dict, Any, Union
from dataclasses import dataclass, field


class NodeType(str, Enum):
    """Component types a form tree can hold."""
    CONTAINER = "container"
    ROW = "row"
    COL = "col"
    INPUT = "input"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    BUTTON = "button"
    TEXT = "text"
    DIVIDER = "divider"


# Plain strings so membership tests work for both str and NodeType values
CONTAINER_TYPES = frozenset({"container", "row", "col"})
NODE_TYPES = frozenset(t.value for t in NodeType)
DEFAULT_NODE_TYPE = NodeType.INPUT.value

# Wire key -> attribute name, for keys that differ
_WIRE_TO_ATTR = {"defaultValue": "default_value"}
_ATTR_TO_WIRE = {v: k for k, v in _WIRE_TO_ATTR.items()}

_SIMPLE_FIELDS = ("label", "placeholder", "required", "default_value", "style", "props")
_WIRE_ORDER = ("label", "placeholder", "required", "default_value",
               "options", "children", "style", "props")


def type_value(node_type: Union[str, NodeType, None]) -> str:
    """Normalise a node type to its plain string value."""
    if node_type is None:
        return DEFAULT_NODE_TYPE
    if isinstance(node_type, NodeType):
        return node_type.value
    return str(node_type)


def is_container_type(node_type: Union[str, NodeType, None]) -> bool:
    """Check whether nodes of this type may hold children."""
    return type_value(node_type) in CONTAINER_TYPES


def is_known_type(node_type: Union[str, NodeType, None]) -> bool:
    """Check whether a type is one of the NodeType values."""
    return type_value(node_type) in NODE_TYPES


@dataclass
class Option:
    """A label/value choice of a select or radio node."""
    label: str = ""
    value: str = ""

    def to_dict(self) -> dict:
        return {"label": self.label, "value": self.value}

    @classmethod
    def from_dict(cls, data: Any) -> "Option":
        if isinstance(data, Option):
            return cls(data.label, data.value)
        if not isinstance(data, dict):
            return cls(str(data), str(data))
        return cls(label=str(data.get("label", "")), value=str(data.get("value", "")))


@dataclass
class FormNode:
    """One element of the form tree."""
    id: str
    type: str = DEFAULT_NODE_TYPE
    label: Optional[str] = None
    placeholder: Optional[str] = None
    required: Optional[bool] = None
    default_value: Optional[Union[str, bool]] = None
    options: Optional[List[Option]] = None
    children: Optional[List[str]] = None  # ids, container types only
    style: Optional[Dict[str, Any]] = None
    props: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_container(self) -> bool:
        return is_container_type(self.type)

    def copy(self) -> "FormNode":
        return deepcopy(self)

    def apply(self, fields: Dict[str, Any]):
        """Shallow-merge fields onto this node.

        Accepts wire keys (``defaultValue``) or attribute names. ``id``,
        ``type`` and ``children`` are structural and never touched here.
        Unknown keys land in ``extra``.
        """
        for key, value in fields.items():
            attr = _WIRE_TO_ATTR.get(key, key)
            if attr in ("id", "type", "children", "extra"):
                continue
            if attr == "options":
                self.options = None if value is None else [Option.from_dict(o) for o in value]
            elif attr in _SIMPLE_FIELDS:
                setattr(self, attr, deepcopy(value))
            else:
                self.extra[key] = deepcopy(value)

    def to_dict(self) -> dict:
        """Wire shape; optional fields that are unset are omitted."""
        data: Dict[str, Any] = {"id": self.id, "type": self.type}
        for attr in _WIRE_ORDER:
            value = getattr(self, attr)
            if value is None:
                continue
            if attr == "options":
                data["options"] = [o.to_dict() for o in value]
            elif attr == "children":
                data["children"] = list(value)
            else:
                data[_ATTR_TO_WIRE.get(attr, attr)] = deepcopy(value)
        for key, value in self.extra.items():
            data.setdefault(key, deepcopy(value))
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], node_id: Optional[str] = None) -> "FormNode":
        """Build a node from its wire shape. No structural validation."""
        raw_id = data.get("id", node_id)
        node = cls(id="" if raw_id is None else str(raw_id), type=type_value(data.get("type")))
        if data.get("children") is not None:
            node.children = [str(c) for c in data["children"]]
        node.apply({k: v for k, v in data.items() if k not in ("id", "type", "children")})
        return node


@dataclass
class FormState:
    """Externally observed snapshot of a form tree."""
    nodes: Dict[str, FormNode] = field(default_factory=dict)
    root_id: str = "root"
    selected_node_id: Optional[str] = None

    @classmethod
    def empty(cls, root_id: str = "root") -> "FormState":
        """A form holding only an empty root container."""
        root = FormNode(id=root_id, type=NodeType.CONTAINER.value, children=[])
        return cls(nodes={root_id: root}, root_id=root_id)

    def copy(self) -> "FormState":
        return deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "nodes": {node_id: node.to_dict() for node_id, node in self.nodes.items()},
            "rootId": self.root_id,
            "selectedNodeId": self.selected_node_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormState":
        nodes = {
            str(key): FormNode.from_dict(raw, node_id=str(key))
            for key, raw in (data.get("nodes") or {}).items()
        }
        return cls(
            nodes=nodes,
            root_id=str(data.get("rootId", "root")),
            selected_node_id=data.get("selectedNodeId"),
        )

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, data: str) -> "FormState":
        return cls.from_dict(json.loads(data))
