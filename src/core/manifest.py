"""Encoding, decoding and merging of attachment manifests.

A manifest is the JSON text stored in one of the part's attachment columns:
an ordered array of ``{"name", "size", "type", "path"}`` objects. Older rows
may hold an empty string or ``null``; both mean "no attachments".
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from pydantic import TypeAdapter, ValidationError

from core.dtos import AttachmentDescriptor

log = logging.getLogger(__name__)

_MANIFEST = TypeAdapter(list[AttachmentDescriptor])


@dataclass
class DecodedManifest:
    descriptors: list[AttachmentDescriptor] = field(default_factory=list)
    warning: str | None = None

    @property
    def ok(self) -> bool:
        return self.warning is None


def decode_manifest(text: str | None) -> DecodedManifest:
    """Decode stored manifest text; unreadable text yields an empty list plus a warning."""
    if text is None or not text.strip() or text.strip() == "null":
        return DecodedManifest()
    try:
        return DecodedManifest(descriptors=_MANIFEST.validate_json(text))
    except ValidationError as exc:
        warning = f"unreadable attachment manifest ({exc.error_count()} errors): {text[:80]!r}"
        log.warning("Treating manifest as empty: %s", warning)
        return DecodedManifest(warning=warning)


def encode_manifest(descriptors: Iterable[AttachmentDescriptor]) -> str:
    return _MANIFEST.dump_json(list(descriptors)).decode("utf-8")


def merge_manifest(existing_text: str | None, new: Iterable[AttachmentDescriptor]) -> str:
    """Append ``new`` to the decoded ``existing_text`` and re-encode."""
    decoded = decode_manifest(existing_text)
    return encode_manifest([*decoded.descriptors, *new])


def rewrite_leading_segment(text: str | None, new_segment: str) -> str | None:
    """Point every descriptor path at ``new_segment``/... keeping the rest of the path.

    Text that cannot be decoded is returned unchanged.
    """
    if text is None or not text.strip() or text.strip() == "null":
        return text
    decoded = decode_manifest(text)
    if not decoded.ok:
        return text

    rewritten = []
    for d in decoded.descriptors:
        _, sep, rest = d.path.partition("/")
        new_path = f"{new_segment}/{rest}" if sep else new_segment
        rewritten.append(d.model_copy(update={"path": new_path}))
    return encode_manifest(rewritten)


__all__ = [
    "DecodedManifest",
    "decode_manifest",
    "encode_manifest",
    "merge_manifest",
    "rewrite_leading_segment",
]
