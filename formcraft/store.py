"""Flattened node store and the mutation operations over it."""

import logging
import random
import string
import time
from collections import Counter
from enum import Enum
from types import MappingProxyType
from typing import Optional, List, Dict, Any, Iterator, Mapping, Set
from dataclasses import dataclass

from formcraft.model import FormNode, FormState, type_value, is_container_type, is_known_type
from formcraft.paths import join_path

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id() -> str:
    """Generate a node id like ``node_1718000000000_k3j9x0a2b``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"node_{int(time.time() * 1000)}_{suffix}"


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class Outcome(Enum):
    """How a mutation ended."""
    OK = "ok"
    NOT_FOUND = "not_found"
    INVALID_TARGET = "invalid_target"


@dataclass(frozen=True)
class MutationResult:
    outcome: Outcome
    node_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK


class Selection:
    """The node currently selected for property editing."""

    def __init__(self, node_id: Optional[str] = None):
        self.node_id = node_id

    def clear(self):
        self.node_id = None

    def is_selected(self, node_id: str) -> bool:
        return self.node_id is not None and self.node_id == node_id


class NodeStore:
    """Owns the form tree and keeps its structural invariants.

    Nodes live in a flat id -> node map; container nodes list their child ids
    in order. A child -> parent back index is maintained alongside every
    mutation so parent lookups never scan the whole map.

    Mutations never raise for ids that do not resolve or for structurally
    invalid requests; they return a ``MutationResult`` and leave the store
    untouched instead.
    """

    def __init__(self, state: Optional[FormState] = None):
        self._nodes: Dict[str, FormNode] = {}
        self._parents: Dict[str, str] = {}
        self._shared: Set[str] = set()
        self._root_id = "root"
        self.selection = Selection()
        self.replace(state or FormState.empty())

    @classmethod
    def empty(cls, root_id: str = "root") -> "NodeStore":
        return cls(FormState.empty(root_id))

    @property
    def root_id(self) -> str:
        return self._root_id

    @property
    def selected_node_id(self) -> Optional[str]:
        return self.selection.node_id

    @property
    def nodes(self) -> Mapping[str, FormNode]:
        """Read-only live view of the node map."""
        return MappingProxyType(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    # ==================== Reads ====================

    def get(self, node_id: str) -> Optional[FormNode]:
        """Return a copy of a node, or None if it does not exist."""
        node = self._nodes.get(node_id)
        return node.copy() if node else None

    def snapshot(self) -> FormState:
        """Return a detached copy of the whole form state."""
        return FormState(
            nodes={node_id: node.copy() for node_id, node in self._nodes.items()},
            root_id=self._root_id,
            selected_node_id=self.selection.node_id,
        )

    def children_of(self, node_id: str) -> List[str]:
        node = self._nodes.get(node_id)
        if node is None or node.children is None:
            return []
        return list(node.children)

    def parent_of(self, node_id: str) -> Optional[str]:
        return self._parents.get(node_id)

    def index_of(self, node_id: str) -> int:
        """Position of a node among its siblings, -1 if it has no parent."""
        parent = self._nodes.get(self._parents.get(node_id, ""))
        if parent is None or not parent.children or node_id not in parent.children:
            return -1
        return parent.children.index(node_id)

    def path_of(self, node_id: str) -> Optional[str]:
        """Derive the root-to-node path, None if the node is detached."""
        if node_id not in self._nodes:
            return None
        chain = [node_id]
        seen = {node_id}
        current = node_id
        while current != self._root_id:
            current = self._parents.get(current)
            if current is None or current in seen:
                return None
            seen.add(current)
            chain.append(current)
        return join_path(*reversed(chain))

    def iter_subtree(self, node_id: str) -> Iterator[str]:
        """Yield a node id and all its descendants, depth first."""
        stack = [node_id]
        seen = set()
        while stack:
            current = stack.pop()
            if current in seen or current not in self._nodes:
                continue
            seen.add(current)
            yield current
            stack.extend(reversed(self._nodes[current].children or []))

    def is_descendant(self, node_id: str, ancestor_id: str) -> bool:
        """Check if node_id sits somewhere below ancestor_id."""
        seen = set()
        current = self._parents.get(node_id)
        while current is not None and current not in seen:
            if current == ancestor_id:
                return True
            seen.add(current)
            current = self._parents.get(current)
        return False

    def validate(self) -> List[str]:
        """List every structural invariant the current tree breaks."""
        problems = []
        refs: Counter = Counter()
        for node_id, node in self._nodes.items():
            if not is_known_type(node.type):
                problems.append(f"node {node_id!r} has unknown type {node.type!r}")
            if node.children is None:
                continue
            if node.children and not node.is_container:
                problems.append(f"leaf node {node_id!r} ({node.type}) has children")
            for child_id in node.children:
                refs[child_id] += 1
                if child_id not in self._nodes:
                    problems.append(f"node {node_id!r} references missing child {child_id!r}")

        if self._root_id not in self._nodes:
            problems.append(f"root {self._root_id!r} is missing")
        elif refs[self._root_id]:
            problems.append(f"root {self._root_id!r} has a parent")

        for node_id in self._nodes:
            if node_id == self._root_id:
                continue
            if refs[node_id] != 1:
                problems.append(f"node {node_id!r} has {refs[node_id]} parents")

        reachable = set(self.iter_subtree(self._root_id))
        for node_id in self._nodes:
            if node_id not in reachable and refs[node_id] == 1:
                problems.append(f"node {node_id!r} is not reachable from the root")
        return problems

    # ==================== Bulk load ====================

    def replace(self, state: FormState):
        """Load a whole state. The caller vouches for its consistency."""
        state = state.copy()
        self._nodes = state.nodes
        self._root_id = state.root_id
        self.selection = Selection(state.selected_node_id)
        self._reindex()
        logger.debug("Loaded form with %d nodes (root %s)", len(self._nodes), self._root_id)

    def reset(self):
        """Go back to a single empty root container."""
        self.replace(FormState.empty(self._root_id))

    def _reindex(self):
        self._parents = {}
        refs: Counter = Counter()
        for node_id, node in self._nodes.items():
            for child_id in node.children or []:
                self._parents.setdefault(child_id, node_id)
                refs[child_id] += 1
        # Ids listed more than once; only bulk loads can produce these
        self._shared = {child_id for child_id, count in refs.items() if count > 1}

    # ==================== Mutations ====================

    def _reject(self, outcome: Outcome, action: str, node_id: Optional[str]) -> MutationResult:
        logger.debug("%s rejected for %r: %s", action, node_id, outcome.value)
        return MutationResult(outcome, node_id)

    def _container(self, node_id: str) -> Optional[FormNode]:
        node = self._nodes.get(node_id)
        if node is None or not node.is_container:
            return None
        return node

    def _strip_references(self, doomed: set):
        """Drop ids from every children list that still mentions them."""
        for node in self._nodes.values():
            if node.children and not doomed.isdisjoint(node.children):
                node.children = [c for c in node.children if c not in doomed]
        self._shared -= doomed

    def add_node(self, parent_id: str, partial: Optional[Dict[str, Any]] = None,
                 index: Optional[int] = None) -> MutationResult:
        """Create a node under parent_id at index (appended when omitted)."""
        partial = dict(partial or {})
        if parent_id not in self._nodes:
            return self._reject(Outcome.NOT_FOUND, "add", parent_id)
        parent = self._container(parent_id)
        if parent is None:
            return self._reject(Outcome.INVALID_TARGET, "add", parent_id)
        node_type = type_value(partial.get("type"))
        if not is_known_type(node_type):
            return self._reject(Outcome.INVALID_TARGET, "add", node_type)

        node_id = generate_id()
        while node_id in self._nodes:
            node_id = generate_id()

        node = FormNode(
            id=node_id,
            type=node_type,
            label="",
            children=[] if is_container_type(node_type) else None,
        )
        node.apply(partial)

        if parent.children is None:
            parent.children = []
        position = len(parent.children) if index is None else _clamp(index, 0, len(parent.children))
        self._nodes[node_id] = node
        parent.children.insert(position, node_id)
        self._parents[node_id] = parent_id

        logger.debug("Added %s %s under %s at %d", node_type, node_id, parent_id, position)
        return MutationResult(Outcome.OK, node_id)

    def remove_node(self, node_id: str) -> MutationResult:
        """Delete a node and its whole subtree."""
        if node_id not in self._nodes:
            return self._reject(Outcome.NOT_FOUND, "remove", node_id)
        if node_id == self._root_id:
            return self._reject(Outcome.INVALID_TARGET, "remove", node_id)

        doomed = list(self.iter_subtree(node_id))

        if self._shared.intersection(doomed):
            self._strip_references(set(doomed))
        else:
            parent = self._nodes.get(self._parents.get(node_id, ""))
            if parent is not None and parent.children:
                parent.children = [c for c in parent.children if c != node_id]

        for doomed_id in doomed:
            del self._nodes[doomed_id]
            self._parents.pop(doomed_id, None)

        if self.selection.node_id in doomed:
            self.selection.clear()

        logger.debug("Removed %s and %d descendant(s)", node_id, len(doomed) - 1)
        return MutationResult(Outcome.OK, node_id)

    def update_attributes(self, node_id: str, fields: Dict[str, Any]) -> MutationResult:
        """Shallow-merge fields onto a node; structure is never changed."""
        node = self._nodes.get(node_id)
        if node is None:
            return self._reject(Outcome.NOT_FOUND, "update", node_id)
        updated = node.copy()
        updated.apply(fields)
        self._nodes[node_id] = updated
        logger.debug("Updated %s: %s", node_id, ", ".join(sorted(fields)))
        return MutationResult(Outcome.OK, node_id)

    def move_node(self, node_id: str, new_parent_id: str,
                  new_index: Optional[int] = None) -> MutationResult:
        """Re-parent and/or re-order a node.

        ``new_index`` is a position in the target's children as they were
        before the node was taken out. When moving forward within the same
        parent that position is one too far once the node is removed, so it
        is shifted back by one.
        """
        if node_id not in self._nodes:
            return self._reject(Outcome.NOT_FOUND, "move", node_id)
        if node_id == self._root_id:
            return self._reject(Outcome.INVALID_TARGET, "move", node_id)
        if new_parent_id not in self._nodes:
            return self._reject(Outcome.NOT_FOUND, "move", new_parent_id)
        target = self._container(new_parent_id)
        if target is None:
            return self._reject(Outcome.INVALID_TARGET, "move", new_parent_id)
        # Dropping a node into its own subtree would detach it as a cycle
        if new_parent_id == node_id or self.is_descendant(new_parent_id, node_id):
            return self._reject(Outcome.INVALID_TARGET, "move", new_parent_id)

        source_parent_id = self._parents.get(node_id)
        source_index = -1
        source = self._nodes.get(source_parent_id or "")
        if source is not None and source.children and node_id in source.children:
            source_index = source.children.index(node_id)
            del source.children[source_index]
        else:
            source_parent_id = None
        if node_id in self._shared:
            self._strip_references({node_id})

        if target.children is None:
            target.children = []
        if new_index is None:
            effective = len(target.children)
        else:
            effective = new_index
            if source_parent_id == new_parent_id and source_index != -1 and source_index < new_index:
                effective -= 1
            effective = _clamp(effective, 0, len(target.children))

        target.children.insert(effective, node_id)
        self._parents[node_id] = new_parent_id

        logger.debug(
            "Moved %s from %s[%d] to %s[%d]",
            node_id, source_parent_id, source_index, new_parent_id, effective,
        )
        return MutationResult(Outcome.OK, node_id)

    def select(self, node_id: Optional[str]) -> MutationResult:
        """Point the selection at a node, or clear it with None."""
        if node_id is None:
            self.selection.clear()
            return MutationResult(Outcome.OK)
        if node_id not in self._nodes:
            return self._reject(Outcome.NOT_FOUND, "select", node_id)
        self.selection.node_id = node_id
        return MutationResult(Outcome.OK, node_id)
