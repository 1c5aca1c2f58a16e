from dataclasses import dataclass
from io import BytesIO
from typing import BinaryIO, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from core.enums import AttachmentCategory, SortOrder


class DTOBase(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        alias_generator=lambda s: "".join(
            ["_" + c.lower() if c.isupper() else c for c in s]
        ).lstrip("_"),
        str_strip_whitespace=True,
        strict=True,
    )


class AttachmentDescriptor(DTOBase):
    """One stored file. ``path`` is relative to the upload root, '/'-separated."""

    # Filenames are stored verbatim, surrounding spaces included.
    model_config = ConfigDict(frozen=True, str_strip_whitespace=False)

    name: str
    size: str
    type: str = ""
    path: str


class PartInput(DTOBase):
    """Editable fields of a part, as submitted by a form or the CLI."""

    part_no: str
    part_name: str = ""
    description: str = ""
    cost: str = ""
    qty: int = 0
    material: str = ""
    material_size: str = ""
    material_cost: str = ""
    finishing_type: str = ""
    finishing_cost: str = ""

    @classmethod
    def from_form(cls, form) -> "PartInput":
        """Build from string form values; a non-numeric qty becomes 0."""

        def _text(key: str) -> str:
            value = form.get(key)
            return "" if value is None else str(value)

        try:
            qty = int(_text("qty").strip() or 0)
        except ValueError:
            qty = 0

        return cls(
            part_no=_text("part_no"),
            part_name=_text("part_name"),
            description=_text("description"),
            cost=_text("cost"),
            qty=qty,
            material=_text("material"),
            material_size=_text("material_size"),
            material_cost=_text("material_cost"),
            finishing_type=_text("finishing_type"),
            finishing_cost=_text("finishing_cost"),
        )


class PartDTO(PartInput):
    id: int
    photos: list[AttachmentDescriptor] = Field(default_factory=list)
    drawings: list[AttachmentDescriptor] = Field(default_factory=list)
    cad: list[AttachmentDescriptor] = Field(default_factory=list)
    cnc: list[AttachmentDescriptor] = Field(default_factory=list)
    invoice: list[AttachmentDescriptor] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    def attachments(self, category: AttachmentCategory) -> list[AttachmentDescriptor]:
        return getattr(self, category.value)


class PageMeta(DTOBase):
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_more: bool = False


class PartQuery(DTOBase):
    q: str | None = None
    sort: str | None = None
    order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: int | None = None


T = TypeVar("T")


class PaginatedResponse(DTOBase, Generic[T]):
    items: list[T]
    meta: PageMeta


@dataclass
class IncomingFile:
    """An uploaded file not yet written to the attachment tree."""

    filename: str
    stream: BinaryIO
    content_type: str = ""

    @classmethod
    def from_bytes(cls, filename: str, data: bytes, content_type: str = "") -> "IncomingFile":
        return cls(filename=filename, stream=BytesIO(data), content_type=content_type)
