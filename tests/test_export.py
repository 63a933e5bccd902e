"""Tests for form export."""

import json

import pytest

pytest.importorskip("cairo")

from formcraft.errors import ExportError  # noqa: E402
from formcraft.export import FormExporter, default_export_name, get_export_dir  # noqa: E402
from formcraft.model import FormState  # noqa: E402
from formcraft.samples import sample_form  # noqa: E402
from formcraft.store import NodeStore  # noqa: E402


@pytest.fixture
def exporter():
    return FormExporter(sample_form())


class TestPdf:

    def test_writes_pdf(self, exporter, tmp_path):
        out = tmp_path / "form.pdf"
        assert exporter.export_pdf(str(out), title="Contact")
        assert out.read_bytes().startswith(b"%PDF")

    def test_long_form_paginates(self, tmp_path):
        store = NodeStore.empty()
        for i in range(80):
            store.add_node("root", {"type": "textarea", "label": f"Question {i}"})
        out = tmp_path / "long.pdf"
        assert FormExporter(store.snapshot()).export_pdf(str(out), page_size="Letter")
        assert out.stat().st_size > 0

    def test_missing_root(self, tmp_path):
        state = FormState(nodes={}, root_id="root")
        out = tmp_path / "none.pdf"
        assert FormExporter(state).export_pdf(str(out)) is False
        assert not out.exists()

    def test_unwritable_target(self, exporter, tmp_path):
        with pytest.raises(ExportError):
            exporter.export_pdf(str(tmp_path / "missing-dir" / "form.pdf"))


class TestHtml:

    def test_structure(self, exporter):
        page = exporter.to_html(title="Contact")
        assert page.startswith("<!DOCTYPE html>")
        assert "<title>Contact</title>" in page
        assert "display: flex" in page
        assert "☐ Subscribe to the newsletter" in page
        assert "<hr" in page
        assert page.index("First name") < page.index("Last name") < page.index("Send")

    def test_escapes_text(self):
        store = NodeStore.empty()
        store.add_node("root", {"type": "text", "label": "<b>1 & 2</b>"})
        page = FormExporter(store.snapshot()).to_html()
        assert "&lt;b&gt;1 &amp; 2&lt;/b&gt;" in page
        assert "<b>1" not in page

    def test_export_html_file(self, exporter, tmp_path):
        out = tmp_path / "form.html"
        assert exporter.export_html(str(out))
        assert "Form Export" in out.read_text(encoding="utf-8")

    def test_unwritable_target(self, exporter, tmp_path):
        with pytest.raises(ExportError):
            exporter.export_html(str(tmp_path / "missing-dir" / "form.html"))


class TestMarkdown:

    def test_outline(self, exporter):
        text = exporter.to_markdown()
        lines = text.splitlines()
        assert lines[0] == "# Contact Us"
        assert "- First name (input) *required*: Jane" in lines
        assert "  - Support = `support`" in lines
        assert "---" in lines
        assert "- Send (button)" in lines

    def test_nested_container_heading(self):
        store = NodeStore.empty()
        section = store.add_node("root", {"type": "container", "label": "Details"}).node_id
        store.add_node(section, {"type": "input", "label": "Phone"})
        text = FormExporter(store.snapshot()).to_markdown()
        assert "## Details" in text
        assert "- Phone (input)" in text

    def test_skips_dangling_children(self):
        state = FormState.from_dict({
            "nodes": {"root": {"id": "root", "type": "container", "children": ["ghost"]}},
            "rootId": "root",
        })
        assert FormExporter(state).to_markdown() == "# Form\n\n"


class TestJson:

    def test_wire_shape(self, exporter, tmp_path):
        out = tmp_path / "form.json"
        assert exporter.export_json(str(out))
        assert json.loads(out.read_text(encoding="utf-8")) == sample_form().to_dict()


class TestNames:

    def test_default_name(self):
        name = default_export_name("pdf")
        assert name.startswith("form-")
        assert name.endswith(".pdf")

    def test_export_dir(self, data_dir):
        assert get_export_dir() == data_dir / "exports"
