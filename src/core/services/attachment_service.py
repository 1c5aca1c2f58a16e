from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import BinaryIO

from core.dtos import AttachmentDescriptor, IncomingFile
from core.enums import AttachmentCategory
from core.errors import (
    AttachmentNotFoundError,
    AttachmentStorageError,
    PartValidationError,
    RelocationError,
    TooManyCollisionsError,
)
from core.manifest import decode_manifest, encode_manifest, rewrite_leading_segment
from core.utils.common_functions import base_filename, format_file_size, sanitize_identifier
from infra.storage.attachment_layout import AttachmentLayout

log = logging.getLogger(__name__)

DEFAULT_MAX_COLLISIONS = 10000
_CHUNK = 1024 * 1024


class AttachmentService:
    """
    Keeps the attachment tree on disk and the manifests on the part record in step.

    The service never touches the database; callers persist the manifest text
    it returns.
    """

    def __init__(self, layout: AttachmentLayout, *, max_collisions: int = DEFAULT_MAX_COLLISIONS):
        self._layout = layout
        self._max_collisions = max_collisions

    @property
    def layout(self) -> AttachmentLayout:
        return self._layout

    # ------------------------------------------------------------------ ingest
    def ingest(
        self,
        category: AttachmentCategory,
        part_no: str,
        incoming: Iterable[IncomingFile],
    ) -> list[AttachmentDescriptor]:
        """Write uploads into the part's category directory.

        Files that fail are logged and skipped; the rest of the batch proceeds.
        """
        files = list(incoming)
        if not files:
            return []
        if not (part_no or "").strip():
            raise PartValidationError("Cannot store attachments: part number is required")

        try:
            target_dir = self._layout.ensure_category_dir(part_no, category)
        except OSError as exc:
            log.error(
                "Cannot create %s directory for part %r, skipping %d upload(s): %s",
                category.value,
                part_no,
                len(files),
                exc,
            )
            return []

        descriptors: list[AttachmentDescriptor] = []
        for upload in files:
            try:
                descriptors.append(self._store_one(category, part_no, target_dir, upload))
            except (OSError, ValueError, TooManyCollisionsError) as exc:
                log.warning(
                    "Skipping upload %r for part %r (%s): %s",
                    upload.filename,
                    part_no,
                    category.value,
                    exc,
                )
        return descriptors

    def _store_one(
        self,
        category: AttachmentCategory,
        part_no: str,
        target_dir: Path,
        upload: IncomingFile,
    ) -> AttachmentDescriptor:
        filename = base_filename(upload.filename)
        dest, handle = self._claim(target_dir, filename)
        try:
            with handle:
                written = _copy_stream(upload.stream, handle)
        except BaseException:
            dest.unlink(missing_ok=True)
            raise

        log.info("Stored %s upload %r for part %r at %s", category.value, dest.name, part_no, dest)
        return AttachmentDescriptor(
            name=dest.name,
            size=format_file_size(written),
            type=upload.content_type or "",
            path=self._layout.relative_path(part_no, category, dest.name),
        )

    def _claim(self, target_dir: Path, filename: str) -> tuple[Path, BinaryIO]:
        """Exclusively create ``filename`` or the first free ``stem(n).ext`` variant."""
        stem, ext = os.path.splitext(filename)
        candidate = target_dir / filename
        for counter in range(self._max_collisions + 1):
            if counter:
                candidate = target_dir / f"{stem}({counter}){ext}"
            try:
                return candidate, open(candidate, "xb")
            except FileExistsError:
                continue
        raise TooManyCollisionsError(
            f"Too many files named like {filename!r} in {target_dir} "
            f"(tried {self._max_collisions} alternatives)"
        )

    # ------------------------------------------------------------------ rename
    def relocate(self, old_part_no: str, new_part_no: str) -> bool:
        """Move a part's tree to its new sanitized name.

        Returns True when an existing tree was moved, False when a fresh tree was
        created instead (or both names map to the same directory).
        """
        old_dir = self._layout.part_dir(old_part_no)
        new_dir = self._layout.part_dir(new_part_no)
        try:
            if old_dir == new_dir or not old_dir.exists():
                self._layout.ensure_part_tree(new_part_no)
                return False
            if new_dir.exists():
                raise RelocationError(
                    f"Cannot rename attachments of {old_part_no!r} to {new_part_no!r}: "
                    f"{new_dir} already exists"
                )
            new_dir.parent.mkdir(parents=True, exist_ok=True)
            old_dir.rename(new_dir)
        except OSError as exc:
            raise RelocationError(
                f"Cannot rename attachments of {old_part_no!r} to {new_part_no!r}: {exc}"
            ) from exc

        log.info("Moved attachments of %r from %s to %s", new_part_no, old_dir, new_dir)
        return True

    def propagate_rename(
        self,
        old_part_no: str,
        new_part_no: str,
        manifests: Mapping[AttachmentCategory, str | None],
    ) -> dict[AttachmentCategory, str | None]:
        """Relocate the tree and point every manifest path at the new directory."""
        updated = dict(manifests)
        if not self.relocate(old_part_no, new_part_no):
            return updated

        new_token = sanitize_identifier(new_part_no)
        for category, text in updated.items():
            updated[category] = rewrite_leading_segment(text, new_token)
        return updated

    def restore_location(self, old_part_no: str, new_part_no: str) -> None:
        """Undo a successful :meth:`relocate` after the record update failed."""
        try:
            self._layout.part_dir(new_part_no).rename(self._layout.part_dir(old_part_no))
        except OSError as exc:
            log.error(
                "Could not move attachments back from %r to %r: %s", new_part_no, old_part_no, exc
            )
        else:
            log.info("Moved attachments back from %r to %r", new_part_no, old_part_no)

    # ------------------------------------------------------------------ removal
    def remove(self, manifest_text: str | None, filename: str) -> tuple[str, AttachmentDescriptor]:
        """Drop the first entry named ``filename`` and delete its file.

        Returns the new manifest text and the removed descriptor. The manifest is
        updated even if the file itself could not be deleted.
        """
        descriptors = decode_manifest(manifest_text).descriptors
        for index, descriptor in enumerate(descriptors):
            if descriptor.name == filename:
                break
        else:
            raise AttachmentNotFoundError(f"Attachment {filename!r} not found")

        removed = descriptors.pop(index)
        self.delete_file(removed)
        return encode_manifest(descriptors), removed

    def delete_file(self, descriptor: AttachmentDescriptor) -> bool:
        try:
            path = self._layout.resolve(descriptor.path)
        except ValueError as exc:
            log.error("Refusing to delete %r: %s", descriptor.name, exc)
            return False

        try:
            path.unlink()
        except FileNotFoundError:
            log.warning("Attachment file already gone: %s", path)
            return False
        except OSError as exc:
            log.error("Could not delete attachment file %s: %s", path, exc)
            return False
        log.info("Deleted attachment file %s", path)
        return True


    def remove_all(self, part_no: str) -> None:
        """Delete every attachment of a part; failures are fatal to the caller."""
        try:
            removed = self._layout.remove_part_tree(part_no)
        except OSError as exc:
            raise AttachmentStorageError(
                f"Cannot delete attachment directory of {part_no!r}: {exc}"
            ) from exc
        if removed:
            log.info("Deleted attachment directory of %r", part_no)


def _copy_stream(src: BinaryIO, dst: BinaryIO) -> int:
    written = 0
    while True:
        chunk = src.read(_CHUNK)
        if not chunk:
            return written
        dst.write(chunk)
        written += len(chunk)


__all__ = ["AttachmentService", "DEFAULT_MAX_COLLISIONS"]
