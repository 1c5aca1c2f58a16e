"""
SQLite schema for the parts inventory.

parts
    id INTEGER PRIMARY KEY AUTOINCREMENT
    part_no TEXT UNIQUE NOT NULL      – business identifier
    part_name, description TEXT
    cost TEXT                         – free text, never used for arithmetic
    qty INTEGER DEFAULT 0
    material, material_size, material_cost TEXT
    finishing_type, finishing_cost TEXT
    photos, drawing_2d, cad_3d, cnc_code, invoice TEXT
                                      – JSON attachment manifests
    created_at, updated_at TEXT DEFAULT CURRENT_TIMESTAMP

The trigger keeps updated_at fresh for writes that touch only a manifest.
"""

from __future__ import annotations

import sqlite3

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS parts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    part_no TEXT NOT NULL UNIQUE,
    part_name TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    cost TEXT NOT NULL DEFAULT '',
    qty INTEGER NOT NULL DEFAULT 0,
    material TEXT NOT NULL DEFAULT '',
    material_size TEXT NOT NULL DEFAULT '',
    material_cost TEXT NOT NULL DEFAULT '',
    finishing_type TEXT NOT NULL DEFAULT '',
    finishing_cost TEXT NOT NULL DEFAULT '',
    photos TEXT,
    drawing_2d TEXT,
    cad_3d TEXT,
    cnc_code TEXT,
    invoice TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TRIGGER IF NOT EXISTS update_parts_timestamp
AFTER UPDATE ON parts
BEGIN
    UPDATE parts SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
END;
"""


def init_db(conn: sqlite3.Connection) -> None:
    """Create the tables if they don't already exist."""
    conn.executescript(SCHEMA_SQL)
    conn.commit()
