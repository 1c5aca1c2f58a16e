from collections.abc import Mapping

from core.dtos import PartDTO
from core.enums import AttachmentCategory
from core.manifest import decode_manifest


def row_to_part(row: Mapping) -> PartDTO:
    manifests = {
        category.value: decode_manifest(row.get(category.column)).descriptors
        for category in AttachmentCategory
    }
    return PartDTO(
        id=int(row.get("id") or 0),
        part_no=str(row.get("part_no") or ""),
        part_name=row.get("part_name") or "",
        description=row.get("description") or "",
        cost=str(row.get("cost") or ""),
        qty=int(row.get("qty") or 0),
        material=row.get("material") or "",
        material_size=row.get("material_size") or "",
        material_cost=row.get("material_cost") or "",
        finishing_type=row.get("finishing_type") or "",
        finishing_cost=row.get("finishing_cost") or "",
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        **manifests,
    )
