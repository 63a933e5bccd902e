"""Path addressing for drop targets.

A path is the chain of node ids from the root to a node joined by ``/``,
e.g. ``root/row-1/col-2``. Paths are always derived from the current tree and
never stored. A slot between children of a container is addressed as
``<path>::<index>``.
"""

from typing import Optional, List, Mapping, Tuple

from formcraft.model import FormNode

PATH_SEPARATOR = "/"
SLOT_SEPARATOR = "::"
DEFAULT_ROOT_ID = "root"


def parse_path(path: Optional[str], root_id: str = DEFAULT_ROOT_ID) -> List[str]:
    """Split a path into ids. Empty or malformed input resolves to the root."""
    if not path or not isinstance(path, str):
        return [root_id]
    parts = [p for p in path.split(PATH_SEPARATOR) if p]
    return parts or [root_id]


def join_path(*ids: str) -> str:
    return PATH_SEPARATOR.join(i for i in ids if i)


def resolve_node(nodes: Mapping[str, FormNode], path: Optional[str],
                 root_id: str = DEFAULT_ROOT_ID) -> Optional[FormNode]:
    """Walk a path; every component must exist in the node map."""
    current = None
    for node_id in parse_path(path, root_id):
        current = nodes.get(node_id)
        if current is None:
            return None
    return current


def parent_id_from_path(path: Optional[str], root_id: str = DEFAULT_ROOT_ID) -> str:
    """Last component of the path, or the root for an empty path."""
    return parse_path(path, root_id)[-1]


def is_ancestor_or_equal(ancestor_path: str, descendant_path: str) -> bool:
    if ancestor_path == descendant_path:
        return True
    return descendant_path.startswith(ancestor_path + PATH_SEPARATOR)


def slot_id(path: str, index: int) -> str:
    return f"{path}{SLOT_SEPARATOR}{index}"


def parse_slot_id(target: Optional[str]) -> Tuple[str, Optional[int]]:
    """Split ``path::index`` into its parts.

    A bare path (or an index that is not an integer) yields ``(path, None)``,
    meaning "append to the container".
    """
    if not target:
        return "", None
    path, sep, raw_index = target.rpartition(SLOT_SEPARATOR)
    if not sep:
        return target, None
    try:
        return path, int(raw_index)
    except ValueError:
        return path, None


def resolve_target(nodes: Mapping[str, FormNode], target: Optional[str],
                   index: Optional[int] = None,
                   root_id: str = DEFAULT_ROOT_ID) -> Optional[Tuple[str, Optional[int]]]:
    """Turn a drop target string into a concrete ``(parent_id, index)``.

    An explicit ``index`` wins over one embedded in a slot id. Returns None
    when the path does not resolve to a node.
    """
    path, slot_index = parse_slot_id(target)
    if resolve_node(nodes, path, root_id) is None:
        return None
    parent_id = parent_id_from_path(path, root_id)
    return parent_id, index if index is not None else slot_index
