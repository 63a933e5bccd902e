"""Export functionality for FormCraft forms."""

import html
import logging
import time
from pathlib import Path
from typing import Optional, List, Callable
from datetime import datetime

import cairo

from formcraft.database import get_data_dir
from formcraft.errors import ExportError
from formcraft.model import FormNode, FormState
from formcraft.palette import get_palette_item

logger = logging.getLogger(__name__)


class FormExporter:
    """Walks a form snapshot and writes it out in various formats."""

    COLORS = {
        'page': (1.0, 1.0, 1.0),
        'text': (0.0, 0.0, 0.0),
        'muted': (0.45, 0.45, 0.45),
        'border': (0.8, 0.8, 0.8),
        'field_bg': (0.96, 0.96, 0.96),
        'button': (0.094, 0.565, 1.0),       # #1890ff
        'button_text': (1.0, 1.0, 1.0),
    }

    # Page sizes in points (72 points = 1 inch)
    PAGE_SIZES = {
        "A4": (595, 842),
        "Letter": (612, 792),
    }

    PAGE_MARGIN = 30
    FONT_SIZE = 12
    LINE_HEIGHT = 16
    FIELD_HEIGHT = 22
    TEXTAREA_HEIGHT = 60
    BLOCK_SPACING = 10
    COL_SPACING = 10
    FIELD_PADDING = 5

    def __init__(self, state: FormState):
        self.state = state
        self.nodes = state.nodes
        self.root_id = state.root_id

    @property
    def root(self) -> Optional[FormNode]:
        return self.nodes.get(self.root_id)

    def _children(self, node: FormNode, visiting: frozenset) -> List[FormNode]:
        """Existing children of a node, skipping ids already on the walk."""
        result = []
        for child_id in node.children or []:
            child = self.nodes.get(child_id)
            if child is not None and child_id not in visiting:
                result.append(child)
        return result

    def _write(self, filepath: str, render: Callable[[], str]) -> bool:
        if self.root is None:
            logger.warning("Nothing to export: root %r is missing", self.root_id)
            return False
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                f.write(render())
        except OSError as exc:
            logger.error("Could not write %s: %s", filepath, exc)
            raise ExportError(f"Could not write {filepath}: {exc}") from exc
        return True

    # ==================== PDF ====================

    def export_pdf(self, filepath: str, page_size: str = "A4",
                   title: str = "Form Export") -> bool:
        """Export the form to a paginated PDF."""
        root = self.root
        if root is None:
            logger.warning("Nothing to export: root %r is missing", self.root_id)
            return False

        width, height = self.PAGE_SIZES.get(page_size, self.PAGE_SIZES["A4"])
        try:
            surface = cairo.PDFSurface(filepath, width, height)
        except (OSError, cairo.Error) as exc:
            logger.error("Could not create %s: %s", filepath, exc)
            raise ExportError(f"Could not create {filepath}: {exc}") from exc

        surface.set_metadata(cairo.PDF_METADATA_TITLE, title)
        surface.set_metadata(cairo.PDF_METADATA_CREATE_DATE, datetime.now().isoformat())
        cr = cairo.Context(surface)
        cr.select_font_face("Helvetica", cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_NORMAL)
        cr.set_font_size(self.FONT_SIZE)

        content_width = width - self.PAGE_MARGIN * 2
        bottom = height - self.PAGE_MARGIN
        y = self.PAGE_MARGIN
        self._paint_page(cr, width, height)

        # The root's own label heads the first page; blocks break between pages
        visiting = frozenset({root.id})
        if root.label:
            y += self._draw_label(cr, root.label, self.PAGE_MARGIN, y, content_width, bold=True)
        for child in self._children(root, visiting):
            block_height = self._render(cr, child, 0, 0, content_width, visiting, draw=False)
            if y + block_height > bottom and y > self.PAGE_MARGIN:
                cr.show_page()
                self._paint_page(cr, width, height)
                y = self.PAGE_MARGIN
            y += self._render(cr, child, self.PAGE_MARGIN, y, content_width, visiting, draw=True)

        surface.finish()
        logger.info("Exported PDF to %s", filepath)
        return True

    def _paint_page(self, cr, width: float, height: float):
        cr.set_source_rgb(*self.COLORS['page'])
        cr.rectangle(0, 0, width, height)
        cr.fill()

    def _wrap(self, cr, text: str, width: float) -> List[str]:
        """Greedy word wrap using the current font."""
        lines: List[str] = []
        for paragraph in text.split("\n"):
            line = ""
            for word in paragraph.split():
                candidate = f"{line} {word}" if line else word
                if line and cr.text_extents(candidate).x_advance > width:
                    lines.append(line)
                    line = word
                else:
                    line = candidate
            lines.append(line)
        return lines

    def _draw_text(self, cr, text: str, x: float, y: float, color: str = 'text'):
        cr.set_source_rgb(*self.COLORS[color])
        cr.move_to(x, y + self.FONT_SIZE)
        cr.show_text(text)

    def _draw_label(self, cr, text: str, x: float, y: float, width: float,
                    bold: bool = False, draw: bool = True) -> float:
        cr.select_font_face("Helvetica", cairo.FONT_SLANT_NORMAL,
                            cairo.FONT_WEIGHT_BOLD if bold else cairo.FONT_WEIGHT_NORMAL)
        lines = self._wrap(cr, text, width)
        if draw:
            for i, line in enumerate(lines):
                self._draw_text(cr, line, x, y + i * self.LINE_HEIGHT)
        cr.select_font_face("Helvetica", cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_NORMAL)
        return len(lines) * self.LINE_HEIGHT + 4

    def _draw_box(self, cr, x: float, y: float, w: float, h: float, text: str = ""):
        cr.rectangle(x, y, w, h)
        cr.set_source_rgb(*self.COLORS['field_bg'])
        cr.fill_preserve()
        cr.set_source_rgb(*self.COLORS['border'])
        cr.set_line_width(1)
        cr.stroke()
        if text:
            self._draw_text(cr, text, x + self.FIELD_PADDING, y + self.FIELD_PADDING, 'muted')

    def _render(self, cr, node: FormNode, x: float, y: float, width: float,
                visiting: frozenset, draw: bool) -> float:
        """Lay out (and optionally draw) a node; returns the height it takes."""
        visiting = visiting | {node.id}
        kind = node.type

        if kind in ("container", "col"):
            height = 0.0
            if kind == "container" and node.label:
                height += self._draw_label(cr, node.label, x, y, width, bold=True, draw=draw)
            for child in self._children(node, visiting):
                height += self._render(cr, child, x, y + height, width, visiting, draw)
            return height + (self.BLOCK_SPACING if kind == "container" else 0)

        if kind == "row":
            columns = self._children(node, visiting)
            if not columns:
                return 0.0
            col_width = (width - self.COL_SPACING * (len(columns) - 1)) / len(columns)
            tallest = 0.0
            for i, col in enumerate(columns):
                col_x = x + i * (col_width + self.COL_SPACING)
                tallest = max(tallest, self._render(cr, col, col_x, y, col_width, visiting, draw))
            return tallest + self.BLOCK_SPACING

        if kind in ("input", "textarea", "select"):
            height = 0.0
            if node.label:
                height += self._draw_label(cr, node.label, x, y, width, bold=True, draw=draw)
            box_height = self.TEXTAREA_HEIGHT if kind == "textarea" else self.FIELD_HEIGHT
            placeholder = node.placeholder or ("Select..." if kind == "select" else "")
            if draw:
                self._draw_box(cr, x, y + height, width, box_height, placeholder)
            return height + box_height + self.BLOCK_SPACING

        if kind in ("checkbox", "radio"):
            mark = "☐" if kind == "checkbox" else "○"
            default = get_palette_item(kind).label
            height = self._draw_label(cr, f"{mark} {node.label or default}", x, y, width, draw=draw)
            for option in node.options or []:
                height += self._draw_label(cr, f"    ○ {option.label}", x, y + height, width, draw=draw)
            return height + self.BLOCK_SPACING

        if kind == "button":
            text = node.label or "Button"
            if draw:
                button_width = min(width, cr.text_extents(text).x_advance + self.FIELD_PADDING * 4)
                cr.rectangle(x, y, button_width, self.FIELD_HEIGHT)
                cr.set_source_rgb(*self.COLORS['button'])
                cr.fill()
                self._draw_text(cr, text, x + self.FIELD_PADDING * 2, y + self.FIELD_PADDING, 'button_text')
            return self.FIELD_HEIGHT + self.BLOCK_SPACING

        if kind == "text":
            return self._draw_label(cr, node.label or "Text", x, y, width, draw=draw) + self.BLOCK_SPACING

        if kind == "divider":
            if draw:
                cr.set_source_rgb(*self.COLORS['border'])
                cr.set_line_width(1)
                cr.move_to(x, y + self.BLOCK_SPACING)
                cr.line_to(x + width, y + self.BLOCK_SPACING)
                cr.stroke()
            return self.BLOCK_SPACING * 2

        return 0.0

    # ==================== HTML ====================

    def to_html(self, title: str = "Form Export") -> str:
        """Standalone HTML page; Word opens it and can save it as DOCX."""
        body = self._node_html(self.root, frozenset()) if self.root else ""
        return (
            "<!DOCTYPE html>\n"
            "<html>\n"
            "  <head>\n"
            '    <meta charset="UTF-8">\n'
            f"    <title>{html.escape(title)}</title>\n"
            "    <style>\n"
            "      body { font-family: Arial, sans-serif; max-width: 800px; margin: 20px auto; padding: 20px; }\n"
            "    </style>\n"
            "  </head>\n"
            "  <body>\n"
            f"    <h1>{html.escape(title)}</h1>\n"
            f"{body}\n"
            "  </body>\n"
            "</html>\n"
        )

    def export_html(self, filepath: str, title: str = "Form Export") -> bool:
        """Export the form to an HTML file."""
        ok = self._write(filepath, lambda: self.to_html(title))
        if ok:
            logger.info("Exported HTML to %s", filepath)
        return ok

    def _node_html(self, node: FormNode, visiting: frozenset) -> str:
        visiting = visiting | {node.id}
        esc = html.escape

        def children() -> str:
            return "".join(self._node_html(c, visiting) for c in self._children(node, visiting))

        def label() -> str:
            return f'<p style="font-weight: bold;">{esc(node.label)}</p>' if node.label else ""

        box = 'border: 1px solid #ccc; padding: 8px; background-color: #f5f5f5;'
        kind = node.type
        if kind == "container":
            return f'<div style="margin-bottom: 10px;">{label()}{children()}</div>'
        if kind == "row":
            return f'<div style="display: flex; margin-bottom: 10px;">{children()}</div>'
        if kind == "col":
            return f'<div style="flex: 1; margin-right: 10px;">{children()}</div>'
        if kind == "input":
            return f'<div style="margin-bottom: 10px;">{label()}<div style="{box}">{esc(node.placeholder or "")}</div></div>'
        if kind == "textarea":
            return (f'<div style="margin-bottom: 10px;">{label()}'
                    f'<div style="{box} height: 80px;">{esc(node.placeholder or "")}</div></div>')
        if kind == "select":
            return (f'<div style="margin-bottom: 10px;">{label()}'
                    f'<div style="{box}">{esc(node.placeholder or "Select...")}</div></div>')
        if kind == "checkbox":
            return f'<div style="margin-bottom: 10px;"><p>☐ {esc(node.label or "Checkbox")}</p></div>'
        if kind == "radio":
            options = "".join(f"<p>○ {esc(o.label)}</p>" for o in node.options or [])
            return f'<div style="margin-bottom: 10px;">{label()}{options}</div>'
        if kind == "button":
            return ('<div style="margin-bottom: 10px;"><div style="background-color: #1890ff; color: white; '
                    'padding: 8px; text-align: center; border-radius: 4px; display: inline-block;">'
                    f'{esc(node.label or "Button")}</div></div>')
        if kind == "text":
            return f'<div style="margin-bottom: 10px;"><p>{esc(node.label or "Text")}</p></div>'
        if kind == "divider":
            return '<hr style="margin: 10px 0; border: 1px solid #ccc;" />'
        return ""

    # ==================== Markdown ====================

    def to_markdown(self) -> str:
        """Outline of the form: containers as headings, fields as bullets."""
        root = self.root
        if root is None:
            return ""
        lines = [f"# {root.label or 'Form'}", ""]

        def add_node(node: FormNode, depth: int, visiting: frozenset):
            visiting = visiting | {node.id}
            for child in self._children(node, visiting):
                if child.is_container:
                    if child.type == "container" and child.label:
                        if depth <= 2:
                            lines.append(f"{'#' * (depth + 1)} {child.label}")
                            lines.append("")
                        else:
                            lines.append(f"{'  ' * (depth - 3)}- **{child.label}**")
                    add_node(child, depth + 1 if child.type == "container" else depth, visiting)
                    continue

                indent = "  " * max(depth - 3, 0)
                if child.type == "divider":
                    lines.append("")
                    lines.append("---")
                    lines.append("")
                    continue
                text = child.label or get_palette_item(child.type).label
                line = f"{indent}- {text} ({child.type})"
                if child.required:
                    line += " *required*"
                if child.placeholder:
                    line += f": {child.placeholder}"
                lines.append(line)
                for option in child.options or []:
                    lines.append(f"{indent}  - {option.label} = `{option.value}`")

        add_node(root, 1, frozenset())
        return "\n".join(lines) + "\n"

    def export_markdown(self, filepath: str) -> bool:
        """Export the form to a Markdown outline."""
        ok = self._write(filepath, self.to_markdown)
        if ok:
            logger.info("Exported Markdown to %s", filepath)
        return ok

    # ==================== JSON ====================

    def export_json(self, filepath: str) -> bool:
        """Write the form in its wire shape."""
        ok = self._write(filepath, lambda: self.state.to_json(indent=2))
        if ok:
            logger.info("Exported JSON to %s", filepath)
        return ok


def default_export_name(extension: str) -> str:
    """File name like ``form-1718000000000.pdf``."""
    return f"form-{int(time.time() * 1000)}.{extension}"


def get_export_dir() -> Path:
    """Get the default export directory."""
    export_dir = get_data_dir() / "exports"
    export_dir.mkdir(exist_ok=True)
    return export_dir
