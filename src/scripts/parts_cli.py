"""
Command-line access to the parts inventory.

Examples:
    parts-inventory add --part-no P-100 --name "Bracket" --photo ./a.jpg
    parts-inventory update 1 --part-no P-200 --drawing ./bracket.pdf
    parts-inventory remove-file 1 photos a.jpg
    parts-inventory list -q bracket --sort part_no --order ASC
    parts-inventory delete 1

Options fall back to the APP_* settings (see app.settings).
"""

from __future__ import annotations

import argparse
import json
import mimetypes
import sys
from contextlib import ExitStack
from pathlib import Path

from app.di import get_parts_service
from app.settings import Settings, get_settings
from core.dtos import IncomingFile, PartInput, PartQuery
from core.enums import AttachmentCategory, SortOrder
from core.errors import PartsInventoryError

_FILE_OPTIONS = {
    "photo": AttachmentCategory.PHOTOS,
    "drawing": AttachmentCategory.DRAWINGS,
    "cad": AttachmentCategory.CAD,
    "cnc": AttachmentCategory.CNC,
    "invoice": AttachmentCategory.INVOICE,
}

_FIELD_OPTIONS = {
    "part_no": "--part-no",
    "part_name": "--name",
    "description": "--description",
    "cost": "--cost",
    "qty": "--qty",
    "material": "--material",
    "material_size": "--material-size",
    "material_cost": "--material-cost",
    "finishing_type": "--finishing-type",
    "finishing_cost": "--finishing-cost",
}


def _add_part_arguments(p: argparse.ArgumentParser, *, require_part_no: bool) -> None:
    for field, flag in _FIELD_OPTIONS.items():
        p.add_argument(flag, dest=field, required=require_part_no and field == "part_no")
    for option in _FILE_OPTIONS:
        p.add_argument(
            f"--{option}",
            action="append",
            type=Path,
            default=[],
            metavar="PATH",
            help=f"Attach a file as {option} (repeatable)",
        )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="parts-inventory", description=__doc__.split("\n")[1])
    ap.add_argument("--db", type=Path, default=None, help="Path to sqlite DB")
    ap.add_argument("--upload-dir", type=Path, default=None, help="Attachment root directory")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the database schema and upload root")

    add = sub.add_parser("add", help="Create a part")
    _add_part_arguments(add, require_part_no=True)

    upd = sub.add_parser("update", help="Edit a part; changing --part-no moves its files")
    upd.add_argument("part_id", type=int)
    _add_part_arguments(upd, require_part_no=False)

    rm = sub.add_parser("remove-file", help="Remove one attachment by name")
    rm.add_argument("part_id", type=int)
    rm.add_argument("category", choices=[c.value for c in AttachmentCategory])
    rm.add_argument("filename")

    dele = sub.add_parser("delete", help="Delete a part and all of its files")
    dele.add_argument("part_id", type=int)

    show = sub.add_parser("show", help="Show one part by part number")
    show.add_argument("part_no")

    ls = sub.add_parser("list", help="Search and list parts")
    ls.add_argument("-q", "--query", default=None)
    ls.add_argument("--sort", default=None)
    ls.add_argument("--order", default="DESC", type=str.upper, choices=["ASC", "DESC"])
    ls.add_argument("--page", type=int, default=1)
    ls.add_argument("--limit", type=int, default=None)
    return ap


def _settings_for(args: argparse.Namespace) -> Settings:
    base = get_settings()
    overrides = {}
    if args.db is not None:
        overrides["db_path"] = args.db.expanduser()
    if args.upload_dir is not None:
        overrides["upload_dir"] = args.upload_dir.expanduser()
    return base.model_copy(update=overrides) if overrides else base


def _form_from_args(args: argparse.Namespace, current: dict | None = None) -> PartInput:
    form = dict(current or {})
    for field in _FIELD_OPTIONS:
        value = getattr(args, field, None)
        if value is not None:
            form[field] = value
    return PartInput.from_form(form)


def _open_uploads(args: argparse.Namespace, stack: ExitStack) -> dict:
    uploads: dict[AttachmentCategory, list[IncomingFile]] = {}
    for option, category in _FILE_OPTIONS.items():
        for path in getattr(args, option, []):
            content_type, _ = mimetypes.guess_type(path.name)
            stream = stack.enter_context(open(path, "rb"))
            uploads.setdefault(category, []).append(
                IncomingFile(filename=path.name, stream=stream, content_type=content_type or "")
            )
    return uploads


def _emit(payload) -> None:
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(mode="json")
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def run(args: argparse.Namespace) -> int:
    settings = _settings_for(args)
    service, conn = get_parts_service(settings)
    try:
        if args.command == "init-db":
            _emit({"db_path": str(settings.db_path), "upload_dir": str(settings.upload_dir)})
        elif args.command == "add":
            with ExitStack() as stack:
                _emit(service.create_part(_form_from_args(args), _open_uploads(args, stack)))
        elif args.command == "update":
            current = service.get_part(args.part_id).model_dump(include=set(_FIELD_OPTIONS))
            with ExitStack() as stack:
                _emit(
                    service.update_part(
                        args.part_id, _form_from_args(args, current), _open_uploads(args, stack)
                    )
                )
        elif args.command == "remove-file":
            remaining = service.remove_attachment(args.part_id, args.category, args.filename)
            _emit([d.model_dump() for d in remaining])
        elif args.command == "delete":
            service.delete_part(args.part_id)
            _emit({"deleted": args.part_id})
        elif args.command == "show":
            _emit(service.get_part_by_number(args.part_no))
        elif args.command == "list":
            query = PartQuery(
                q=args.query,
                sort=args.sort,
                order=SortOrder.from_any(args.order),
                page=args.page,
                limit=args.limit,
            )
            _emit(service.list_parts(query))
    finally:
        conn.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except (PartsInventoryError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
