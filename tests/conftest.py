import os
import sys

import pytest

# Ensure 'src/' is on sys.path for imports like 'from core import dtos'
_REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_SRC_PATH = os.path.join(_REPO_ROOT, "src")
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from app.di import parts_service_for_conn  # noqa: E402
from app.settings import get_settings  # noqa: E402
from core.dtos import IncomingFile  # noqa: E402
from core.services.attachment_service import AttachmentService  # noqa: E402
from infra.db.conn import connect  # noqa: E402
from infra.db.schema import init_db  # noqa: E402
from infra.storage.attachment_layout import AttachmentLayout  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Point settings at a temp data dir so nothing touches the real one."""
    monkeypatch.setenv("APP_DB_PATH", str(tmp_path / "data" / "products.db"))
    monkeypatch.setenv("APP_UPLOAD_DIR", str(tmp_path / "data" / "uploads"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# --- SQLite test DB fixtures ---


@pytest.fixture()
def conn_rw(tmp_path):
    """Read/write SQLite connection with the parts schema."""
    conn = connect(tmp_path / "parts_test.db")
    init_db(conn)
    try:
        yield conn
    finally:
        conn.close()


# --- Attachment fixtures ---


@pytest.fixture()
def upload_root(tmp_path):
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture()
def layout(upload_root):
    return AttachmentLayout(upload_root)


@pytest.fixture()
def attachments(layout):
    return AttachmentService(layout)


@pytest.fixture()
def service(conn_rw, upload_root):
    return parts_service_for_conn(conn_rw, upload_root)


@pytest.fixture()
def make_file():
    def _make(name: str, data: bytes = b"data", content_type: str = "application/octet-stream"):
        return IncomingFile.from_bytes(name, data, content_type)

    return _make
