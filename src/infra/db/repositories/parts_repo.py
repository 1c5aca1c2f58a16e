from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .base import BaseRepo

PART_FIELDS = (
    "part_no",
    "part_name",
    "description",
    "cost",
    "qty",
    "material",
    "material_size",
    "material_cost",
    "finishing_type",
    "finishing_cost",
)
MANIFEST_COLUMNS = ("photos", "drawing_2d", "cad_3d", "cnc_code", "invoice")

SORTABLE_COLUMNS = frozenset({"id", *PART_FIELDS, "created_at", "updated_at"})
DEFAULT_SORT = "updated_at"

_SELECT = """
    SELECT id, part_no, part_name, description, cost, qty,
           material, material_size, material_cost,
           finishing_type, finishing_cost,
           photos, drawing_2d, cad_3d, cnc_code, invoice,
           created_at, updated_at
    FROM parts
"""
_SEARCH_WHERE = """
    WHERE part_no LIKE ? OR part_name LIKE ? OR description LIKE ? OR material LIKE ?
"""


def _search_params(q: str | None) -> tuple[str, list[Any]]:
    if not q:
        return "", []
    like = f"%{q}%"
    return _SEARCH_WHERE, [like, like, like, like]


class PartsRepo(BaseRepo):
    def get_part(self, part_id: int) -> dict | None:
        return self._one(_SELECT + " WHERE id = ?", [part_id])

    def get_part_by_no(self, part_no: str) -> dict | None:
        return self._one(_SELECT + " WHERE part_no = ?", [part_no])

    def part_no_exists(self, part_no: str) -> bool:
        return bool(
            self._scalar("SELECT EXISTS(SELECT 1 FROM parts WHERE part_no = ?)", [part_no])
        )

    def part_numbers(self) -> list[tuple[int, str]]:
        return [(r["id"], r["part_no"]) for r in self._all("SELECT id, part_no FROM parts")]

    def insert_part(self, values: Mapping[str, Any], manifests: Mapping[str, str | None]) -> int:
        columns = [*PART_FIELDS, *MANIFEST_COLUMNS]
        params = [values[c] for c in PART_FIELDS] + [manifests.get(c) for c in MANIFEST_COLUMNS]
        cur = self._write(
            f"INSERT INTO parts({', '.join(columns)}) VALUES ({', '.join('?' * len(columns))})",
            params,
        )
        rid = cur.lastrowid
        if rid is None:
            raise RuntimeError("Expected lastrowid after INSERT.")
        return int(rid)

    def update_part(
        self, part_id: int, values: Mapping[str, Any], manifests: Mapping[str, str | None]
    ) -> None:
        assignments = ", ".join(f"{c} = ?" for c in (*PART_FIELDS, *MANIFEST_COLUMNS))
        params = [values[c] for c in PART_FIELDS] + [manifests.get(c) for c in MANIFEST_COLUMNS]
        self._write(
            f"UPDATE parts SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            [*params, part_id],
        )

    def update_manifest(self, part_id: int, column: str, text: str) -> None:
        if column not in MANIFEST_COLUMNS:
            raise ValueError(f"Unknown manifest column {column!r}")
        self._write(f"UPDATE parts SET {column} = ? WHERE id = ?", [text, part_id])

    def delete_part(self, part_id: int) -> None:
        self._write("DELETE FROM parts WHERE id = ?", [part_id])

    def count_parts(self, q: str | None = None) -> int:
        where, params = _search_params(q)
        return int(self._scalar("SELECT COUNT(*) FROM parts " + where, params) or 0)

    def search_parts(
        self,
        q: str | None = None,
        *,
        sort: str | None = None,
        order: str = "DESC",
        limit: int = 5000,
        offset: int = 0,
    ) -> list[dict]:
        """Filter, sort and page parts. Unknown sort columns/orders fall back to defaults."""
        column = sort if sort in SORTABLE_COLUMNS else DEFAULT_SORT
        direction = order if order in ("ASC", "DESC") else "DESC"
        where, params = _search_params(q)
        return self._all(
            _SELECT + where + f" ORDER BY {column} {direction}, id {direction} LIMIT ? OFFSET ?",
            [*params, limit, offset],
        )
