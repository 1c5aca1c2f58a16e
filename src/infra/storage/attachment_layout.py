"""
On-disk layout of part attachments.

    <upload_root>/
        <sanitized part_no>/
            photos/  drawings/  cad/  cnc/  invoice/

Paths stored in manifests are relative to ``upload_root`` and always use '/'.
"""

from __future__ import annotations

import shutil
from pathlib import Path, PurePosixPath

from core.enums import AttachmentCategory
from core.utils.common_functions import sanitize_identifier


class AttachmentLayout:
    def __init__(self, root: Path | str):
        self.root = Path(root)

    def part_dir(self, part_no: str) -> Path:
        return self.root / sanitize_identifier(part_no)

    def category_dir(self, part_no: str, category: AttachmentCategory) -> Path:
        return self.part_dir(part_no) / category.value

    def ensure_category_dir(self, part_no: str, category: AttachmentCategory) -> Path:
        path = self.category_dir(part_no, category)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def ensure_part_tree(self, part_no: str) -> Path:
        """Create the part directory with all category subdirectories (idempotent)."""
        for category in AttachmentCategory:
            self.ensure_category_dir(part_no, category)
        return self.part_dir(part_no)

    def relative_path(self, part_no: str, category: AttachmentCategory, filename: str) -> str:
        return str(PurePosixPath(sanitize_identifier(part_no), category.value, filename))

    def resolve(self, relative: str) -> Path:
        """Absolute path for a manifest path; refuses anything outside the root."""
        root = self.root.resolve()
        target = (root / relative.replace("\\", "/")).resolve()
        if target == root or not target.is_relative_to(root):
            raise ValueError(f"Attachment path {relative!r} escapes the upload root")
        return target

    def remove_part_tree(self, part_no: str) -> bool:
        """Delete the whole attachment tree of a part. Returns False if there was none."""
        path = self.part_dir(part_no)
        if not path.exists():
            return False
        shutil.rmtree(path)
        return True
