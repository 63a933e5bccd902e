"""Tests for the drag session state machine."""

import pytest

from formcraft.drag import (
    NO_SOURCE_INDEX,
    PALETTE_SOURCE,
    DragDescriptor,
    DragSession,
    DragState,
    DragType,
)
from formcraft.store import NodeStore, Outcome


def palette(declared_type="input", **kwargs):
    return DragDescriptor(source_kind=DragType.PALETTE, declared_type=declared_type, **kwargs)


def canvas(node_id, **kwargs):
    return DragDescriptor(source_kind=DragType.CANVAS, node_id=node_id, **kwargs)


class TestStart:

    def test_palette_start(self, flat_store):
        session = DragSession(flat_store)
        assert session.start(palette("button"))
        state = session.state
        assert state.active
        assert state.drag_type is DragType.PALETTE
        assert state.source_parent_id == PALETTE_SOURCE
        assert state.source_index == NO_SOURCE_INDEX
        assert state.dragged_type == "button"
        assert state.dragging_id == "palette-button"

    def test_canvas_start_snapshots_source(self, nested_store):
        session = DragSession(nested_store)
        assert session.start(canvas("Z"))
        assert session.state.drag_type is DragType.CANVAS
        assert session.state.source_parent_id == "X"
        assert session.state.source_index == 1

        # Later store changes do not rewrite the recorded source
        nested_store.move_node("Y", "root", 0)
        assert session.state.source_index == 1

    def test_canvas_start_of_missing_node_stays_idle(self, flat_store):
        session = DragSession(flat_store)
        assert not session.start(canvas("missing"))
        assert not session.active

    def test_root_cannot_be_dragged(self, flat_store):
        session = DragSession(flat_store)
        assert not session.start(canvas("root"))
        assert session.state == DragState()

    def test_palette_start_of_unknown_type_stays_idle(self, flat_store):
        before = flat_store.snapshot()
        session = DragSession(flat_store)
        origin = DragDescriptor.from_dict({"sourceKind": "palette", "declaredType": "slider"})
        assert not session.start(origin)
        assert session.state == DragState()
        assert session.end(palette("slider", target_parent_id="root")) is None
        assert flat_store.snapshot() == before

    def test_restart_discards_previous_gesture(self, flat_store):
        session = DragSession(flat_store)
        session.start(palette("text"))
        session.update_destination("root", 2)
        session.start(canvas("A"))
        assert session.state.drag_type is DragType.CANVAS
        assert session.state.destination_parent_id is None


class TestDestination:

    def test_last_write_wins(self, flat_store):
        session = DragSession(flat_store)
        session.start(palette())
        session.update_destination("root", 0)
        session.update_destination("root", 3)
        assert (session.state.destination_parent_id, session.state.destination_index) == ("root", 3)

    def test_ignored_while_idle(self, flat_store):
        session = DragSession(flat_store)
        session.update_destination("root", 1)
        assert session.state == DragState()

    def test_drag_over_resolves_slot_ids(self, nested_store):
        session = DragSession(nested_store)
        session.on_drag_start(canvas("L"))
        session.on_drag_over(canvas("L", target_path="root/X/Z/W::0"))
        assert session.state.destination_parent_id == "W"
        assert session.state.destination_index == 0

    def test_drag_over_unresolvable_keeps_previous(self, nested_store):
        session = DragSession(nested_store)
        session.on_drag_start(canvas("L"))
        session.on_drag_over(canvas("L", target_parent_id="X", target_index=1))
        session.on_drag_over(canvas("L", target_path="root/ghost::0"))
        assert session.state.destination_parent_id == "X"


class TestEnd:

    def test_end_to_end_palette_insert_before_sibling(self):
        store = NodeStore.empty()
        first = store.add_node("root", {"type": "input"}).node_id
        assert store.children_of("root") == [first]

        session = DragSession(store)
        session.start(palette("button"))
        session.update_destination("root", 0)
        result = session.end()

        assert result.ok
        assert store.children_of("root") == [result.node_id, first]
        assert store.get(result.node_id).type == "button"
        assert not session.active

    def test_canvas_reorder(self, flat_store):
        session = DragSession(flat_store)
        session.on_drag_start(canvas("A"))
        result = session.on_drag_end(canvas("A", target_path="root::3"))
        assert result.ok
        assert flat_store.children_of("root") == ["B", "C", "A", "D"]

    def test_canvas_reparent(self, nested_store):
        session = DragSession(nested_store)
        session.start(canvas("L"))
        session.end(canvas("L", target_parent_id="W", target_index=0))
        assert nested_store.children_of("W") == ["L"]
        assert nested_store.validate() == []

    def test_release_over_nothing(self, flat_store):
        before = flat_store.snapshot()
        session = DragSession(flat_store)
        session.start(palette("text"))
        session.update_destination("root", 1)
        assert session.end(palette("text")) is None
        assert flat_store.snapshot() == before
        assert not session.active

    def test_no_destination_recorded(self, flat_store):
        before = flat_store.snapshot()
        session = DragSession(flat_store)
        session.start(canvas("A"))
        assert session.end() is None
        assert flat_store.snapshot() == before

    def test_rejected_commit_still_goes_idle(self, nested_store):
        before = nested_store.snapshot()
        session = DragSession(nested_store)
        session.start(canvas("X"))
        result = session.end(canvas("X", target_path="root/X/Z/W::0"))
        assert result.outcome is Outcome.INVALID_TARGET
        assert nested_store.snapshot() == before
        assert session.state == DragState()

    def test_palette_drop_on_leaf(self, flat_store):
        session = DragSession(flat_store)
        session.start(palette("input"))
        result = session.end(palette(target_parent_id="A"))
        assert result.outcome is Outcome.INVALID_TARGET
        assert len(flat_store) == 5

    def test_end_while_idle(self, flat_store):
        assert DragSession(flat_store).end(palette(target_parent_id="root")) is None


class TestCancel:

    def test_cancel_discards_everything(self, flat_store):
        before = flat_store.snapshot()
        session = DragSession(flat_store)
        session.on_drag_start(palette("divider"))
        session.update_destination("root", 0)
        session.on_drag_cancel()
        assert session.state == DragState()
        assert session.end() is None
        assert flat_store.snapshot() == before


class TestDropQueries:

    def test_can_drop_into(self, nested_store):
        session = DragSession(nested_store)
        session.start(canvas("X"))
        assert session.can_drop_into("root")
        assert not session.can_drop_into("X")
        assert not session.can_drop_into("W")
        assert not session.can_drop_into("L")

    def test_palette_can_drop_into_any_container(self, nested_store):
        session = DragSession(nested_store)
        assert not session.can_drop_into("root")
        session.start(palette("input"))
        assert session.can_drop_into("W")

    def test_highlight_ancestors_of_destination(self, nested_store):
        session = DragSession(nested_store)
        session.start(palette("input"))
        session.update_destination("Z", 0)
        assert session.highlight_for("root")
        assert session.highlight_for("root/X")
        assert session.highlight_for("root/X/Z")
        assert not session.highlight_for("root/X/Z/W")
        assert not session.highlight_for("root/L")


class TestDescriptor:

    def test_from_camel_case(self):
        descriptor = DragDescriptor.from_dict({
            "sourceKind": "palette",
            "declaredType": "select",
            "targetParentId": "root",
            "targetIndex": "2",
        })
        assert descriptor.source_kind is DragType.PALETTE
        assert descriptor.declared_type == "select"
        assert descriptor.target_index == 2
        assert descriptor.has_target

    def test_defaults_to_canvas(self):
        descriptor = DragDescriptor.from_dict({"node_id": "A"})
        assert descriptor.source_kind is DragType.CANVAS
        assert not descriptor.has_target

    def test_bad_source_kind(self):
        with pytest.raises(ValueError):
            DragDescriptor.from_dict({"sourceKind": "toolbar"})
