from enum import Enum


class AttachmentCategory(Enum):
    PHOTOS = "photos"
    DRAWINGS = "drawings"
    CAD = "cad"
    CNC = "cnc"
    INVOICE = "invoice"

    @classmethod
    def from_any(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            # Column names and form labels seen in stored data
            legacy_map = {
                "drawing_2d": cls.DRAWINGS,
                "drawing": cls.DRAWINGS,
                "cad_3d": cls.CAD,
                "cnc_code": cls.CNC,
                "photo": cls.PHOTOS,
                "invoices": cls.INVOICE,
            }
            if normalized in legacy_map:
                return legacy_map[normalized]
            for member in cls:
                if member.value == normalized or member.name.lower() == normalized:
                    return member
        raise ValueError(f"Cannot parse {value!r} into {cls.__name__}")

    @property
    def column(self) -> str:
        """Name of the manifest column on the parts table."""
        return _CATEGORY_COLUMNS[self]


_CATEGORY_COLUMNS = {
    AttachmentCategory.PHOTOS: "photos",
    AttachmentCategory.DRAWINGS: "drawing_2d",
    AttachmentCategory.CAD: "cad_3d",
    AttachmentCategory.CNC: "cnc_code",
    AttachmentCategory.INVOICE: "invoice",
}


class SortOrder(Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def from_any(cls, value, default: "SortOrder | None" = None) -> "SortOrder":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return default or cls.DESC
