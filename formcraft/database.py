"""SQLite form library for FormCraft."""

import sqlite3
import json
import logging
import os
from pathlib import Path
from datetime import datetime
from typing import Optional, List, Any
from dataclasses import dataclass

from formcraft.errors import StoredStateError, FormNotFoundError
from formcraft.model import FormState

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "FORMCRAFT_DATA_DIR"


def get_data_dir() -> Path:
    """Get the application data directory.

    ``$FORMCRAFT_DATA_DIR`` overrides the default under ``~/.local/share``.
    """
    override = os.environ.get(DATA_DIR_ENV)
    data_dir = Path(override).expanduser() if override else Path.home() / ".local" / "share" / "formcraft"
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "exports").mkdir(exist_ok=True)
    (data_dir / "backups").mkdir(exist_ok=True)
    return data_dir


def get_db_path() -> Path:
    """Get the database file path."""
    return get_data_dir() / "formcraft.db"


@dataclass
class StoredForm:
    """A named form in the library."""
    id: int = 0
    name: str = "Untitled Form"
    created_at: str = ""
    modified_at: str = ""
    is_archived: bool = False


class Database:
    """Library of saved forms plus application settings."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or get_db_path()
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def _init_db(self):
        """Initialize the database schema."""
        cursor = self.conn.cursor()

        cursor.executescript("""
            -- Forms table; state holds the FormState wire JSON
            CREATE TABLE IF NOT EXISTS forms (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                modified_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                state JSON NOT NULL,
                is_archived BOOLEAN DEFAULT 0
            );

            -- App settings table
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value JSON
            );
        """)

        self.conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @staticmethod
    def _row_to_form(row: sqlite3.Row) -> StoredForm:
        return StoredForm(
            id=row["id"],
            name=row["name"],
            created_at=row["created_at"],
            modified_at=row["modified_at"],
            is_archived=bool(row["is_archived"]),
        )

    # ==================== Form Operations ====================

    def create_form(self, name: str = "Untitled Form",
                    state: Optional[FormState] = None) -> StoredForm:
        """Create a new form, empty unless a state is given."""
        cursor = self.conn.cursor()
        now = datetime.now().isoformat()
        state = state or FormState.empty()

        cursor.execute(
            "INSERT INTO forms (name, created_at, modified_at, state) VALUES (?, ?, ?, ?)",
            (name, now, now, state.to_json())
        )
        form_id = cursor.lastrowid
        self.conn.commit()
        logger.debug("Created form %d %r", form_id, name)

        return StoredForm(id=form_id, name=name, created_at=now, modified_at=now)

    def get_form(self, form_id: int) -> Optional[StoredForm]:
        """Get a form by ID."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM forms WHERE id = ?", (form_id,))
        row = cursor.fetchone()
        return self._row_to_form(row) if row else None

    def get_form_by_name(self, name: str) -> Optional[StoredForm]:
        """Get a form by its unique name."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM forms WHERE name = ?", (name,))
        row = cursor.fetchone()
        return self._row_to_form(row) if row else None

    def require_form(self, name_or_id: str) -> StoredForm:
        """Look a form up by name, then by numeric id."""
        form = self.get_form_by_name(name_or_id)
        if form is None and str(name_or_id).isdigit():
            form = self.get_form(int(name_or_id))
        if form is None:
            raise FormNotFoundError(f"No form named {name_or_id!r}")
        return form

    def get_all_forms(self, include_archived: bool = False) -> List[StoredForm]:
        """Get all forms, most recently modified first."""
        cursor = self.conn.cursor()

        if include_archived:
            cursor.execute("SELECT * FROM forms ORDER BY modified_at DESC, id DESC")
        else:
            cursor.execute("SELECT * FROM forms WHERE is_archived = 0 ORDER BY modified_at DESC, id DESC")

        return [self._row_to_form(row) for row in cursor.fetchall()]

    def load_state(self, form_id: int) -> FormState:
        """Decode the stored state of a form."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT state FROM forms WHERE id = ?", (form_id,))
        row = cursor.fetchone()
        if not row:
            raise FormNotFoundError(f"No form with id {form_id}")
        try:
            return FormState.from_json(row["state"])
        except (json.JSONDecodeError, TypeError, AttributeError) as exc:
            raise StoredStateError(f"Form {form_id} has an unreadable state: {exc}") from exc

    def save_state(self, form_id: int, state: FormState):
        """Store a new state for a form."""
        cursor = self.conn.cursor()
        now = datetime.now().isoformat()
        cursor.execute(
            "UPDATE forms SET state = ?, modified_at = ? WHERE id = ?",
            (state.to_json(), now, form_id)
        )
        if cursor.rowcount == 0:
            raise FormNotFoundError(f"No form with id {form_id}")
        self.conn.commit()

    def rename_form(self, form_id: int, name: str):
        """Rename a form."""
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE forms SET name = ?, modified_at = ? WHERE id = ?",
            (name, datetime.now().isoformat(), form_id)
        )
        self.conn.commit()

    def set_archived(self, form_id: int, archived: bool = True):
        """Hide a form from the default listing, or bring it back."""
        cursor = self.conn.cursor()
        cursor.execute("UPDATE forms SET is_archived = ? WHERE id = ?", (archived, form_id))
        self.conn.commit()

    def delete_form(self, form_id: int):
        """Delete a form."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM forms WHERE id = ?", (form_id,))
        self.conn.commit()

    def duplicate_form(self, form_id: int, new_name: str) -> Optional[StoredForm]:
        """Duplicate a form under a new name."""
        if not self.get_form(form_id):
            return None
        return self.create_form(new_name, self.load_state(form_id))

    # ==================== Settings Operations ====================

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get an application setting."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cursor.fetchone()

        if not row:
            return default

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            return default

    def set_setting(self, key: str, value: Any):
        """Set an application setting."""
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
            (key, json.dumps(value))
        )
        self.conn.commit()

    # ==================== Backup Operations ====================

    def create_backup(self, form_id: int, backup_dir: Optional[Path] = None) -> Optional[Path]:
        """Write the form's state to a timestamped JSON backup."""
        form = self.get_form(form_id)
        if not form:
            return None

        backup_dir = backup_dir or get_data_dir() / "backups"
        backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_file = backup_dir / f"form_{form_id}_{timestamp}.json"
        backup_file.write_text(self.load_state(form_id).to_json(indent=2), encoding="utf-8")

        # Clean old backups (keep last N)
        backup_count = self.get_setting("backup_count", 10)
        backups = sorted(backup_dir.glob(f"form_{form_id}_*.json"), reverse=True)
        for old_backup in backups[backup_count:]:
            old_backup.unlink()

        logger.debug("Backed up form %d to %s", form_id, backup_file)
        return backup_file
