from __future__ import annotations

import logging
import math
import sqlite3
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from app.adapters import row_to_part
from core.dtos import (
    AttachmentDescriptor,
    IncomingFile,
    PageMeta,
    PaginatedResponse,
    PartDTO,
    PartInput,
    PartQuery,
)
from core.enums import AttachmentCategory
from core.errors import (
    AttachmentStorageError,
    DuplicatePartError,
    PartNotFoundError,
    PartValidationError,
)
from core.manifest import merge_manifest
from core.services.attachment_service import AttachmentService

log = logging.getLogger(__name__)

Uploads = Mapping[AttachmentCategory, Iterable[IncomingFile]]


class PartsRepo(Protocol):
    def get_part(self, part_id: int) -> Mapping[str, Any] | None: ...
    def get_part_by_no(self, part_no: str) -> Mapping[str, Any] | None: ...
    def part_no_exists(self, part_no: str) -> bool: ...
    def part_numbers(self) -> list[tuple[int, str]]: ...
    def insert_part(
        self, values: Mapping[str, Any], manifests: Mapping[str, str | None]
    ) -> int: ...
    def update_part(
        self, part_id: int, values: Mapping[str, Any], manifests: Mapping[str, str | None]
    ) -> None: ...
    def update_manifest(self, part_id: int, column: str, text: str) -> None: ...
    def delete_part(self, part_id: int) -> None: ...
    def count_parts(self, q: str | None = None) -> int: ...
    def search_parts(
        self,
        q: str | None = None,
        *,
        sort: str | None = None,
        order: str = "DESC",
        limit: int = 5000,
        offset: int = 0,
    ) -> list[Mapping[str, Any]]: ...


class PartsService:
    """
    Part lifecycle: record writes go through the repo, files through the
    attachment service, in the order that keeps manifests and disk in step.
    """

    def __init__(self, parts: PartsRepo, attachments: AttachmentService, *, page_size: int = 5000):
        self._parts = parts
        self._attachments = attachments
        self._page_size = page_size

    # ------------------------------------------------------------------ reads
    def get_part(self, part_id: int) -> PartDTO:
        return row_to_part(self._require(part_id))

    def get_part_by_number(self, part_no: str) -> PartDTO:
        row = self._parts.get_part_by_no(part_no)
        if row is None:
            raise PartNotFoundError(f"Part {part_no!r} not found")
        return row_to_part(row)

    def list_parts(self, query: PartQuery | None = None) -> PaginatedResponse[PartDTO]:
        query = query or PartQuery()
        page = max(query.page, 1)
        limit = query.limit if query.limit and query.limit > 0 else self._page_size

        total = self._parts.count_parts(query.q)
        rows = self._parts.search_parts(
            query.q,
            sort=query.sort,
            order=query.order.value,
            limit=limit,
            offset=(page - 1) * limit,
        )
        meta = PageMeta(
            page=page,
            page_size=limit,
            total_items=total,
            total_pages=math.ceil(total / limit) if total else 0,
            has_more=page * limit < total,
        )
        return PaginatedResponse[PartDTO](items=[row_to_part(r) for r in rows], meta=meta)

    # ------------------------------------------------------------------ writes
    def create_part(self, data: PartInput, uploads: Uploads | None = None) -> PartDTO:
        part_no = self._require_part_no(data)
        if self._parts.part_no_exists(part_no):
            raise DuplicatePartError(f"Part number {part_no!r} already exists")
        self._require_free_directory(part_no)

        layout = self._attachments.layout
        tree_existed = layout.part_dir(part_no).exists()
        try:
            layout.ensure_part_tree(part_no)
        except OSError as exc:
            raise AttachmentStorageError(
                f"Cannot create attachment directory for {part_no!r}: {exc}"
            ) from exc

        ingested = {
            category: self._ingest(category, part_no, uploads) for category in AttachmentCategory
        }
        manifests = {
            category.column: merge_manifest(None, descriptors)
            for category, descriptors in ingested.items()
        }
        try:
            part_id = self._parts.insert_part(data.model_dump(), manifests)
        except sqlite3.IntegrityError as exc:
            self._undo_create(part_no, tree_existed, ingested)
            raise DuplicatePartError(f"Part number {part_no!r} already exists") from exc
        except sqlite3.Error:
            self._undo_create(part_no, tree_existed, ingested)
            raise

        log.info("Created part %r (id=%s)", part_no, part_id)
        return self.get_part(part_id)

    def update_part(self, part_id: int, data: PartInput, uploads: Uploads | None = None) -> PartDTO:
        row = self._require(part_id)
        new_part_no = self._require_part_no(data)
        old_part_no = row["part_no"]

        if new_part_no != old_part_no:
            owner = self._parts.get_part_by_no(new_part_no)
            if owner is not None and owner["id"] != part_id:
                raise DuplicatePartError(f"Part number {new_part_no!r} already exists")

        current = {category: row.get(category.column) for category in AttachmentCategory}
        moved = False
        if new_part_no != old_part_no:
            layout = self._attachments.layout
            old_dir, new_dir = layout.part_dir(old_part_no), layout.part_dir(new_part_no)
            if old_dir != new_dir:
                self._require_free_directory(new_part_no, exclude_id=part_id)
            moved = old_dir != new_dir and old_dir.exists()
            current = self._attachments.propagate_rename(old_part_no, new_part_no, current)

        ingested = {
            category: self._ingest(category, new_part_no, uploads) for category in AttachmentCategory
        }
        manifests = {
            category.column: merge_manifest(current[category], ingested[category])
            for category in AttachmentCategory
        }
        try:
            self._parts.update_part(part_id, data.model_dump(), manifests)
        except sqlite3.IntegrityError as exc:
            self._undo_update(old_part_no, new_part_no, moved, ingested)
            raise DuplicatePartError(f"Part number {new_part_no!r} already exists") from exc
        except sqlite3.Error:
            self._undo_update(old_part_no, new_part_no, moved, ingested)
            raise

        log.info("Updated part %r (id=%s)", new_part_no, part_id)
        return self.get_part(part_id)

    def remove_attachment(
        self, part_id: int, category: AttachmentCategory | str, filename: str
    ) -> list[AttachmentDescriptor]:
        """Remove one attachment by display name; returns the remaining manifest."""
        category = self._category(category)
        row = self._require(part_id)

        text, removed = self._attachments.remove(row.get(category.column), filename)
        self._parts.update_manifest(part_id, category.column, text)
        log.info(
            "Removed %s attachment %r from part %r", category.value, removed.name, row["part_no"]
        )
        return self.get_part(part_id).attachments(category)

    def delete_part(self, part_id: int) -> None:
        row = self._require(part_id)
        self._attachments.remove_all(row["part_no"])
        self._parts.delete_part(part_id)
        log.info("Deleted part %r (id=%s)", row["part_no"], part_id)

    # ------------------------------------------------------------------ helpers
    def _require(self, part_id: int) -> Mapping[str, Any]:
        row = self._parts.get_part(part_id)
        if row is None:
            raise PartNotFoundError(f"Part id={part_id} not found")
        return row

    def _require_free_directory(self, part_no: str, *, exclude_id: int | None = None) -> None:
        """Refuse a part number whose sanitized directory belongs to another record."""
        layout = self._attachments.layout
        target = layout.part_dir(part_no)
        for other_id, other_no in self._parts.part_numbers():
            if other_id != exclude_id and layout.part_dir(other_no) == target:
                raise DuplicatePartError(
                    f"Part number {part_no!r} would share the attachment directory "
                    f"{target.name!r} with part {other_no!r}"
                )

    def _discard(self, ingested: Mapping[AttachmentCategory, list[AttachmentDescriptor]]) -> None:
        for descriptors in ingested.values():
            for descriptor in descriptors:
                self._attachments.delete_file(descriptor)

    def _undo_create(
        self,
        part_no: str,
        tree_existed: bool,
        ingested: Mapping[AttachmentCategory, list[AttachmentDescriptor]],
    ) -> None:
        if tree_existed:
            self._discard(ingested)
        else:
            self._attachments.remove_all(part_no)

    def _undo_update(
        self,
        old_part_no: str,
        new_part_no: str,
        moved: bool,
        ingested: Mapping[AttachmentCategory, list[AttachmentDescriptor]],
    ) -> None:
        # new files live under the new name, so drop them before moving back
        self._discard(ingested)
        if moved:
            self._attachments.restore_location(old_part_no, new_part_no)

    @staticmethod
    def _require_part_no(data: PartInput) -> str:
        if not data.part_no:
            raise PartValidationError("Part number is required")
        return data.part_no

    @staticmethod
    def _category(value: AttachmentCategory | str) -> AttachmentCategory:
        try:
            return AttachmentCategory.from_any(value)
        except ValueError as exc:
            raise PartValidationError(f"Invalid attachment category {value!r}") from exc

    def _ingest(
        self, category: AttachmentCategory, part_no: str, uploads: Uploads | None
    ) -> list[AttachmentDescriptor]:
        if not uploads or category not in uploads:
            return []
        return self._attachments.ingest(category, part_no, uploads[category])
