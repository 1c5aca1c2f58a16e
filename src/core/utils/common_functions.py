"""Small pure helpers shared by the attachment services and scripts."""

from __future__ import annotations

import re

FALLBACK_TOKEN = "file"
SIZE_UNITS = ("Bytes", "KB", "MB", "GB")

_UNSAFE_CHARS = re.compile(r"[^a-z0-9_-]")


def sanitize_identifier(value: str) -> str:
    """Turn a part number into a directory-safe token.

    Lowercases, replaces spaces with underscores and drops anything outside
    ``[a-z0-9_-]``. Never returns an empty string.
    """
    token = _UNSAFE_CHARS.sub("", (value or "").lower().replace(" ", "_"))
    return token or FALLBACK_TOKEN


def format_file_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 Bytes"

    size = float(num_bytes)
    unit = 0
    while size >= 1024 and unit < len(SIZE_UNITS) - 1:
        size /= 1024
        unit += 1
    return f"{size:.2f} {SIZE_UNITS[unit]}"


def base_filename(name: str) -> str:
    """Last path component of an uploaded filename, for either separator style."""
    base = (name or "").replace("\\", "/").rsplit("/", 1)[-1].strip()
    if base in ("", ".", ".."):
        return FALLBACK_TOKEN
    return base


__all__ = ["sanitize_identifier", "format_file_size", "base_filename", "FALLBACK_TOKEN"]
