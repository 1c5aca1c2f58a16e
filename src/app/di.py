from __future__ import annotations

import sqlite3
from pathlib import Path

from app.logging_config import setup_logging
from app.settings import Settings, get_settings
from core.services.attachment_service import AttachmentService
from core.services.parts_service import PartsService
from infra.db.conn import connect
from infra.db.repositories.parts_repo import PartsRepo as PartsRepoImpl
from infra.db.schema import init_db
from infra.storage.attachment_layout import AttachmentLayout

# -----------------------------
# Connection helper
# -----------------------------


def _get_conn(settings: Settings) -> sqlite3.Connection:
    """Open the configured database and make sure the schema exists."""
    conn = connect(settings.db_path)
    init_db(conn)
    return conn


# -----------------------------
# Factories used by entry points
# -----------------------------


def parts_service_for_conn(
    conn: sqlite3.Connection,
    upload_root: Path | str,
    *,
    max_collisions: int = 10000,
    page_size: int = 5000,
) -> PartsService:
    attachments = AttachmentService(AttachmentLayout(upload_root), max_collisions=max_collisions)
    return PartsService(PartsRepoImpl(conn), attachments, page_size=page_size)


def get_parts_service(settings: Settings | None = None) -> tuple[PartsService, sqlite3.Connection]:
    """Build a service from settings. The caller owns (and must close) the connection."""
    settings = settings or get_settings()
    settings.ensure_directories()
    setup_logging(settings.effective_log_level)
    conn = _get_conn(settings)
    service = parts_service_for_conn(
        conn,
        settings.upload_dir,
        max_collisions=settings.max_name_collisions,
        page_size=settings.page_size,
    )
    return service, conn
