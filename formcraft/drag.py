"""Drag session state machine.

A session follows one pointer gesture: it records where the dragged item came
from and the latest drop candidate, and only touches the node store once, on
commit. An external input source reports abstract drag phases through the
``on_drag_*`` methods.
"""

import logging
from enum import Enum
from typing import Optional, Dict, Any, Tuple
from dataclasses import dataclass

from formcraft.model import type_value, is_container_type, is_known_type
from formcraft.paths import resolve_target, is_ancestor_or_equal
from formcraft.store import NodeStore, MutationResult

logger = logging.getLogger(__name__)

PALETTE_SOURCE = "palette"
NO_SOURCE_INDEX = -1


class DragType(str, Enum):
    """Where a drag gesture started."""
    PALETTE = "palette"
    CANVAS = "canvas"


@dataclass
class DragDescriptor:
    """What the input source knows about a drag phase."""
    source_kind: DragType = DragType.CANVAS
    node_id: Optional[str] = None
    declared_type: Optional[str] = None
    target_parent_id: Optional[str] = None
    target_index: Optional[int] = None
    target_path: Optional[str] = None  # path or "path::index" slot id

    @property
    def has_target(self) -> bool:
        return bool(self.target_path or self.target_parent_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DragDescriptor":
        """Accept both camelCase (wire) and snake_case keys."""
        def pick(*keys):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        index = pick("targetIndex", "target_index")
        return cls(
            source_kind=DragType(pick("sourceKind", "source_kind") or DragType.CANVAS.value),
            node_id=pick("nodeId", "node_id"),
            declared_type=pick("declaredType", "declared_type"),
            target_parent_id=pick("targetParentId", "target_parent_id"),
            target_index=None if index is None else int(index),
            target_path=pick("targetPath", "target_path"),
        )


@dataclass
class DragState:
    """Fields of an in-progress gesture; all empty while idle."""
    dragging_id: Optional[str] = None
    source_parent_id: Optional[str] = None
    source_index: Optional[int] = None
    destination_parent_id: Optional[str] = None
    destination_index: Optional[int] = None
    drag_type: Optional[DragType] = None
    dragged_type: Optional[str] = None
    active: bool = False


class DragSession:
    """Tracks one drag gesture over a node store."""

    def __init__(self, store: NodeStore):
        self.store = store
        self.state = DragState()

    @property
    def active(self) -> bool:
        return self.state.active

    def start(self, origin: DragDescriptor) -> bool:
        """Begin a gesture. Returns False if the origin cannot be dragged."""
        if self.state.active:
            logger.debug("Drag started while another was active; cancelling it")
            self.cancel()

        if origin.source_kind == DragType.PALETTE:
            dragged_type = type_value(origin.declared_type)
            if not is_known_type(dragged_type):
                logger.debug("Ignoring palette drag of unknown type %r", dragged_type)
                return False
            self.state = DragState(
                dragging_id=origin.node_id or f"{PALETTE_SOURCE}-{dragged_type}",
                source_parent_id=PALETTE_SOURCE,
                source_index=NO_SOURCE_INDEX,
                drag_type=DragType.PALETTE,
                dragged_type=dragged_type,
                active=True,
            )
        else:
            node = self.store.get(origin.node_id) if origin.node_id else None
            if node is None or node.id == self.store.root_id:
                logger.debug("Ignoring canvas drag of %r", origin.node_id)
                return False
            # Source position is captured now; later store changes don't move it
            self.state = DragState(
                dragging_id=origin.node_id,
                source_parent_id=self.store.parent_of(origin.node_id),
                source_index=self.store.index_of(origin.node_id),
                drag_type=DragType.CANVAS,
                dragged_type=node.type,
                active=True,
            )

        logger.debug("Drag started: %s %s", self.state.drag_type.value, self.state.dragging_id)
        return True

    def update_destination(self, parent_id: Optional[str], index: Optional[int]):
        """Record the latest drop candidate. Last write wins."""
        if not self.state.active:
            return
        self.state.destination_parent_id = parent_id
        self.state.destination_index = index

    def resolve(self, descriptor: DragDescriptor) -> Optional[Tuple[str, Optional[int]]]:
        """Turn a descriptor's target into ``(parent_id, index)``."""
        if not descriptor.has_target:
            return None
        target = descriptor.target_path or descriptor.target_parent_id
        return resolve_target(self.store.nodes, target, descriptor.target_index, self.store.root_id)

    def end(self, final: Optional[DragDescriptor] = None) -> Optional[MutationResult]:
        """Commit the gesture and go back to idle.

        With a descriptor, its target is where the pointer was released; a
        descriptor without a target means the release happened over nothing
        and no mutation is made. Without a descriptor the last recorded
        destination is used.
        """
        if not self.state.active:
            return None
        state = self.state
        try:
            if final is not None:
                target = self.resolve(final)
            elif state.destination_parent_id is not None:
                target = resolve_target(
                    self.store.nodes, state.destination_parent_id,
                    state.destination_index, self.store.root_id,
                )
            else:
                target = None

            if target is None:
                logger.debug("Drag of %s dropped outside any target", state.dragging_id)
                return None

            parent_id, index = target
            if state.drag_type == DragType.PALETTE:
                result = self.store.add_node(parent_id, {"type": state.dragged_type}, index)
            else:
                result = self.store.move_node(state.dragging_id, parent_id, index)
            logger.debug("Drag committed to %s[%s]: %s", parent_id, index, result.outcome.value)
            return result
        finally:
            self.state = DragState()

    def cancel(self):
        """Abort the gesture without touching the store."""
        if self.state.active:
            logger.debug("Drag of %s cancelled", self.state.dragging_id)
        self.state = DragState()

    # ==================== Drop target queries ====================

    def can_drop_into(self, parent_id: str) -> bool:
        """Whether the dragged item could land in this node."""
        if not self.state.active:
            return False
        node = self.store.get(parent_id)
        if node is None or not is_container_type(node.type):
            return False
        if self.state.drag_type == DragType.CANVAS:
            dragging = self.state.dragging_id
            if parent_id == dragging or self.store.is_descendant(parent_id, dragging):
                return False
        return True

    def highlight_for(self, path: str) -> bool:
        """Whether the container rendered at path contains the destination."""
        if not self.state.active or self.state.destination_parent_id is None:
            return False
        destination_path = self.store.path_of(self.state.destination_parent_id)
        if destination_path is None:
            return False
        return is_ancestor_or_equal(path, destination_path)

    # ==================== Input source adapter ====================

    def on_drag_start(self, origin: DragDescriptor) -> bool:
        return self.start(origin)

    def on_drag_over(self, candidate: DragDescriptor):
        target = self.resolve(candidate)
        if target is not None:
            self.update_destination(*target)

    def on_drag_end(self, final: DragDescriptor) -> Optional[MutationResult]:
        return self.end(final)

    def on_drag_cancel(self):
        self.cancel()
