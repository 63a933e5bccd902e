"""Command line interface for FormCraft.

Usage:
  formcraft new contact --sample
  formcraft add contact input --parent root::0 --label "Email"
  formcraft move contact node_123 root/name-row/name-col-2 --index 0
  formcraft drag contact gestures.jsonl
  formcraft export contact --format pdf --out contact.pdf

Forms live in an SQLite library under $FORMCRAFT_DATA_DIR (or
~/.local/share/formcraft); --db points at another library file.
"""

from __future__ import annotations

import argparse
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Callable, Optional

from formcraft import __version__
from formcraft.database import Database
from formcraft.drag import DragDescriptor, DragSession
from formcraft.errors import FormCraftError
from formcraft.model import NodeType, FormState
from formcraft.palette import parse_options
from formcraft.paths import resolve_target
from formcraft.samples import sample_form
from formcraft.store import NodeStore, MutationResult, Outcome

logger = logging.getLogger("formcraft")

EXPORT_FORMATS = {"pdf": "pdf", "html": "html", "md": "md", "json": "json"}


def setup_logging(verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger("formcraft")
    logger.setLevel(logging.DEBUG)  # handlers filter

    # Clear existing handlers if this is called multiple times
    logger.handlers.clear()
    logger.propagate = False

    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
    return logger


def _report(result: MutationResult, action: str) -> int:
    if result.ok:
        print(f"{action}: {result.node_id}" if result.node_id else action)
        return 0
    print(f"{action} not applied ({result.outcome.value}): {result.node_id}")
    return 1


def _mutate(db: Database, form_name: str, change: Callable[[NodeStore], MutationResult],
            action: str) -> int:
    """Load a form, apply one mutation, and save it back if it applied."""
    form = db.require_form(form_name)
    store = NodeStore(db.load_state(form.id))
    result = change(store)
    if result.ok:
        db.save_state(form.id, store.snapshot())
    return _report(result, action)


def _parse_value(raw: str) -> Any:
    """JSON when it parses (true, 3, "x", [...]), plain string otherwise."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


# ==================== Commands ====================

def cmd_new(db: Database, args: argparse.Namespace) -> int:
    state = sample_form() if args.sample else FormState.empty()
    form = db.create_form(args.name, state)
    print(f"Created form {form.name!r} (id {form.id})")
    return 0


def cmd_list(db: Database, args: argparse.Namespace) -> int:
    forms = db.get_all_forms(include_archived=args.all)
    if not forms:
        print("No forms")
        return 0
    for form in forms:
        archived = " [archived]" if form.is_archived else ""
        print(f"{form.id:>4}  {form.name}{archived}  (modified {form.modified_at})")
    return 0


def cmd_show(db: Database, args: argparse.Namespace) -> int:
    form = db.require_form(args.form)
    store = NodeStore(db.load_state(form.id))

    def show(node_id: str, depth: int, visiting: frozenset):
        node = store.nodes.get(node_id)
        if node is None or node_id in visiting:
            return
        marker = "*" if store.selection.is_selected(node_id) else " "
        label = f"  {node.label!r}" if node.label else ""
        print(f"{marker}{'  ' * depth}{node_id}  [{node.type}]{label}")
        for child_id in store.children_of(node_id):
            show(child_id, depth + 1, visiting | {node_id})

    show(store.root_id, 0, frozenset())
    return 0


def cmd_add(db: Database, args: argparse.Namespace) -> int:
    fields: dict = {"type": args.type}
    if args.label is not None:
        fields["label"] = args.label
    if args.placeholder is not None:
        fields["placeholder"] = args.placeholder
    if args.required:
        fields["required"] = True

    def change(store: NodeStore) -> MutationResult:
        target = resolve_target(store.nodes, args.parent, args.index, store.root_id)
        if target is None:
            return MutationResult(Outcome.NOT_FOUND, args.parent)
        return store.add_node(target[0], fields, target[1])

    return _mutate(db, args.form, change, "Added")


def cmd_move(db: Database, args: argparse.Namespace) -> int:
    def change(store: NodeStore) -> MutationResult:
        target = resolve_target(store.nodes, args.target, args.index, store.root_id)
        if target is None:
            return MutationResult(Outcome.NOT_FOUND, args.target)
        return store.move_node(args.node, target[0], target[1])

    return _mutate(db, args.form, change, "Moved")


def cmd_remove(db: Database, args: argparse.Namespace) -> int:
    return _mutate(db, args.form, lambda store: store.remove_node(args.node), "Removed")


def cmd_set(db: Database, args: argparse.Namespace) -> int:
    fields = {}
    for assignment in args.fields:
        key, sep, raw = assignment.partition("=")
        if not sep or not key:
            print(f"Expected key=value, got {assignment!r}")
            return 2
        if key == "options" and not raw.lstrip().startswith("["):
            # "Sales:sales;Support:support"
            fields[key] = [o.to_dict() for o in parse_options(raw.replace(";", "\n"))]
        else:
            fields[key] = _parse_value(raw)
    return _mutate(db, args.form, lambda store: store.update_attributes(args.node, fields), "Updated")


def cmd_select(db: Database, args: argparse.Namespace) -> int:
    node_id = None if args.clear else args.node
    return _mutate(db, args.form, lambda store: store.select(node_id), "Selected")


def cmd_import(db: Database, args: argparse.Namespace) -> int:
    path = Path(args.file)
    try:
        state = FormState.from_json(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, TypeError, AttributeError) as exc:
        logger.error("Could not read %s: %s", path, exc)
        return 1
    problems = NodeStore(state).validate()
    for problem in problems:
        logger.warning("%s: %s", path, problem)
    form = db.create_form(args.name, state)
    print(f"Imported {path} as {form.name!r} (id {form.id}, {len(state.nodes)} nodes)")
    return 0


def cmd_export(db: Database, args: argparse.Namespace) -> int:
    # Deferred so the rest of the CLI works without the PDF stack
    from formcraft.export import FormExporter, default_export_name, get_export_dir

    form = db.require_form(args.form)
    exporter = FormExporter(db.load_state(form.id))
    extension = EXPORT_FORMATS[args.format]
    out = Path(args.out) if args.out else get_export_dir() / default_export_name(extension)

    if args.format == "pdf":
        page_size = args.page_size or db.get_setting("default_page_size", "A4")
        ok = exporter.export_pdf(str(out), page_size=page_size, title=form.name)
    elif args.format == "html":
        ok = exporter.export_html(str(out), title=form.name)
    elif args.format == "md":
        ok = exporter.export_markdown(str(out))
    else:
        ok = exporter.export_json(str(out))

    if not ok:
        print(f"Nothing to export for {form.name!r}")
        return 1
    print(f"Exported {form.name!r} to {out}")
    return 0


def cmd_check(db: Database, args: argparse.Namespace) -> int:
    form = db.require_form(args.form)
    problems = NodeStore(db.load_state(form.id)).validate()
    if not problems:
        print(f"{form.name!r}: OK")
        return 0
    print(f"{form.name!r}: {len(problems)} problem(s)")
    for problem in problems:
        print(f"  - {problem}")
    return 1


def cmd_delete(db: Database, args: argparse.Namespace) -> int:
    form = db.require_form(args.form)
    if args.backup:
        print(f"Backup written to {db.create_backup(form.id)}")
    db.delete_form(form.id)
    print(f"Deleted form {form.name!r}")
    return 0


def cmd_drag(db: Database, args: argparse.Namespace) -> int:
    """Replay drag-phase events from a JSON-lines file.

    Each line is a descriptor plus a ``phase`` of start, over, end or cancel.
    An ``end`` line is released over its own target fields, or over nothing
    when it has none; ``"useLastDestination": true`` commits to the last
    ``over`` instead.
    """
    form = db.require_form(args.form)
    store = NodeStore(db.load_state(form.id))
    session = DragSession(store)
    committed = 0

    try:
        lines = Path(args.events).read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        logger.error("Could not read %s: %s", args.events, exc)
        return 1

    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            event = json.loads(line)
            phase = event.pop("phase")
            use_last = bool(event.pop("useLastDestination", False))
            descriptor = DragDescriptor.from_dict(event)
        except (json.JSONDecodeError, KeyError, ValueError, TypeError, AttributeError) as exc:
            logger.error("%s:%d: bad drag event: %s", args.events, number, exc)
            return 1

        if phase == "start":
            session.on_drag_start(descriptor)
        elif phase == "over":
            session.on_drag_over(descriptor)
        elif phase == "end":
            result = session.end() if use_last else session.on_drag_end(descriptor)
            if result is not None and result.ok:
                committed += 1
            elif result is not None:
                logger.warning("%s:%d: drop not applied (%s)", args.events, number, result.outcome.value)
        elif phase == "cancel":
            session.on_drag_cancel()
        else:
            logger.error("%s:%d: unknown phase %r", args.events, number, phase)
            return 1

    if committed:
        db.save_state(form.id, store.snapshot())
    print(f"Committed {committed} drop(s) to {form.name!r}")
    return 0


# ==================== Parser ====================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="formcraft", description="FormCraft form designer")
    parser.add_argument("--version", action="version", version=f"formcraft {__version__}")
    parser.add_argument("--db", type=Path, default=None, help="Form library file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("new", help="Create a form")
    p.add_argument("name")
    p.add_argument("--sample", action="store_true", help="Start from the sample contact form")
    p.set_defaults(func=cmd_new)

    p = sub.add_parser("list", help="List forms")
    p.add_argument("--all", action="store_true", help="Include archived forms")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("show", help="Print a form's tree")
    p.add_argument("form")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("add", help="Add a component")
    p.add_argument("form")
    p.add_argument("type", choices=[t.value for t in NodeType])
    p.add_argument("--parent", default="root", help="Path or slot id (path::index)")
    p.add_argument("--index", type=int, default=None)
    p.add_argument("--label")
    p.add_argument("--placeholder")
    p.add_argument("--required", action="store_true")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("move", help="Move a component")
    p.add_argument("form")
    p.add_argument("node")
    p.add_argument("target", help="Path or slot id (path::index)")
    p.add_argument("--index", type=int, default=None)
    p.set_defaults(func=cmd_move)

    p = sub.add_parser("remove", help="Remove a component and its children")
    p.add_argument("form")
    p.add_argument("node")
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("set", help="Update component properties")
    p.add_argument("form")
    p.add_argument("node")
    p.add_argument("fields", nargs="+", metavar="key=value")
    p.set_defaults(func=cmd_set)

    p = sub.add_parser("select", help="Select a component")
    p.add_argument("form")
    p.add_argument("node", nargs="?")
    p.add_argument("--clear", action="store_true")
    p.set_defaults(func=cmd_select)

    p = sub.add_parser("import", help="Import a form from JSON")
    p.add_argument("name")
    p.add_argument("file")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("export", help="Export a form")
    p.add_argument("form")
    p.add_argument("--format", choices=sorted(EXPORT_FORMATS), default="pdf")
    p.add_argument("--out", default=None)
    p.add_argument("--page-size", choices=["A4", "Letter"], default=None)
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("check", help="Check a form's tree structure")
    p.add_argument("form")
    p.set_defaults(func=cmd_check)

    p = sub.add_parser("delete", help="Delete a form")
    p.add_argument("form")
    p.add_argument("--backup", action="store_true", help="Write a JSON backup first")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("drag", help="Replay drag events from a JSON-lines file")
    p.add_argument("form")
    p.add_argument("events")
    p.set_defaults(func=cmd_drag)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    db = Database(args.db)
    try:
        return int(args.func(db, args))
    except FormCraftError as exc:
        logger.error("%s", exc)
        return 1
    except sqlite3.IntegrityError as exc:
        logger.error("Library rejected the change: %s", exc)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
