"""Initialise the parts inventory package.

This package contains a SQLite-backed store for manufactured parts and
the attachment services that keep each part's photos, drawings, CAD, CNC
and invoice files on disk in step with the manifests stored on the part.
To work with it from a shell, run ``parts-inventory init-db`` and then
``parts-inventory add --part-no P-100 --photo ./a.jpg``.
"""

__all__ = []
