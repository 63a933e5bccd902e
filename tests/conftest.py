"""Shared fixtures for FormCraft tests."""

import pytest

from formcraft.database import Database
from formcraft.model import FormState
from formcraft.store import NodeStore


def _state(nodes: dict, selected=None) -> FormState:
    return FormState.from_dict({"nodes": nodes, "rootId": "root", "selectedNodeId": selected})


@pytest.fixture
def flat_store():
    """Root container holding four inputs A, B, C, D."""
    nodes = {"root": {"id": "root", "type": "container", "children": ["A", "B", "C", "D"]}}
    for node_id in "ABCD":
        nodes[node_id] = {"id": node_id, "type": "input", "label": node_id}
    return NodeStore(_state(nodes))


@pytest.fixture
def nested_store():
    """root -> [X -> [Y, Z -> [W]], L]"""
    nodes = {
        "root": {"id": "root", "type": "container", "children": ["X", "L"]},
        "X": {"id": "X", "type": "container", "label": "Section", "children": ["Y", "Z"]},
        "Y": {"id": "Y", "type": "input", "label": "Name"},
        "Z": {"id": "Z", "type": "row", "children": ["W"]},
        "W": {"id": "W", "type": "col", "children": []},
        "L": {"id": "L", "type": "text", "label": "Footer"},
    }
    return NodeStore(_state(nodes))


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "library.db")
    yield database
    database.close()


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Keep exports and backups out of the real home directory."""
    path = tmp_path / "data"
    monkeypatch.setenv("FORMCRAFT_DATA_DIR", str(path))
    return path
