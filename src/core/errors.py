"""Domain errors raised by the parts and attachment services.

Messages name the operation and the part identifier involved so they can be
shown to an operator as-is; the underlying OS/DB error is chained.
"""

from __future__ import annotations


class PartsInventoryError(Exception):
    pass


class PartValidationError(PartsInventoryError):
    pass


class DuplicatePartError(PartValidationError):
    pass


class PartNotFoundError(PartsInventoryError):
    pass


class AttachmentNotFoundError(PartsInventoryError):
    pass


class AttachmentStorageError(PartsInventoryError):
    pass


class RelocationError(AttachmentStorageError):
    pass


class TooManyCollisionsError(AttachmentStorageError):
    pass
