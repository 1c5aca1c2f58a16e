import sqlite3

import pytest

from core.dtos import PartInput, PartQuery
from core.enums import AttachmentCategory, SortOrder
from core.errors import (
    AttachmentNotFoundError,
    AttachmentStorageError,
    DuplicatePartError,
    PartNotFoundError,
    PartValidationError,
    RelocationError,
)

PHOTOS = AttachmentCategory.PHOTOS


def _input(part_no, **extra):
    return PartInput(part_no=part_no, **extra)


def _assert_consistent(part, upload_root):
    """Every manifest entry points at an existing file in its category dir."""
    for category in AttachmentCategory:
        for d in part.attachments(category):
            prefix, cat, _ = d.path.split("/", 2)
            assert cat == category.value
            assert (upload_root / d.path).is_file(), d.path


# ------------------------------------------------------------------ end-to-end


def test_part_lifecycle_end_to_end(service, upload_root, make_file):
    # 1. create with one photo
    part = service.create_part(
        _input("P-100", part_name="Bracket"),
        {PHOTOS: [make_file("a.jpg", b"\xff" * 10240, "image/jpeg")]},
    )
    (photo,) = part.photos
    assert (photo.name, photo.size, photo.path) == ("a.jpg", "10.00 KB", "p-100/photos/a.jpg")
    assert (upload_root / "p-100" / "photos" / "a.jpg").is_file()
    for category in AttachmentCategory:
        assert (upload_root / "p-100" / category.value).is_dir()

    # 2. rename the part
    part = service.update_part(part.id, _input("P-200", part_name="Bracket"))
    assert not (upload_root / "p-100").exists()
    assert (upload_root / "p-200" / "photos" / "a.jpg").is_file()
    assert [d.path for d in part.photos] == ["p-200/photos/a.jpg"]

    # 3. upload a second a.jpg
    part = service.update_part(
        part.id, _input("P-200"), {PHOTOS: [make_file("a.jpg", b"new", "image/jpeg")]}
    )
    assert [d.name for d in part.photos] == ["a.jpg", "a(1).jpg"]
    assert (upload_root / "p-200" / "photos" / "a.jpg").read_bytes() == b"\xff" * 10240
    assert (upload_root / "p-200" / "photos" / "a(1).jpg").read_bytes() == b"new"
    _assert_consistent(part, upload_root)

    # 4. delete
    service.delete_part(part.id)
    assert not (upload_root / "p-200").exists()
    with pytest.raises(PartNotFoundError):
        service.get_part(part.id)


# ------------------------------------------------------------------ create


def test_create_requires_part_number(service, upload_root):
    with pytest.raises(PartValidationError):
        service.create_part(_input("   "))
    assert list(upload_root.iterdir()) == []


def test_duplicate_create_does_not_touch_storage(service, upload_root, make_file):
    original = service.create_part(_input("P-1", part_name="first"), {PHOTOS: [make_file("a.jpg")]})

    with pytest.raises(DuplicatePartError):
        service.create_part(_input("P-1", part_name="second"), {PHOTOS: [make_file("b.jpg")]})

    assert service.get_part(original.id).part_name == "first"
    assert sorted(p.name for p in (upload_root / "p-1" / "photos").iterdir()) == ["a.jpg"]


def test_create_stores_all_categories(service, upload_root, make_file):
    uploads = {c: [make_file(f"{c.value}.bin")] for c in AttachmentCategory}
    part = service.create_part(_input("Multi 1", material="Steel", qty=3, cost="9.99"), uploads)

    assert part.qty == 3 and part.cost == "9.99" and part.material == "Steel"
    for category in AttachmentCategory:
        (d,) = part.attachments(category)
        assert d.path == f"multi_1/{category.value}/{category.value}.bin"
    _assert_consistent(part, upload_root)


def test_failed_insert_removes_new_tree(service, upload_root, make_file, monkeypatch):
    def _boom(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(service._parts, "insert_part", _boom)
    with pytest.raises(sqlite3.OperationalError):
        service.create_part(_input("P-1"), {PHOTOS: [make_file("a.jpg")]})
    assert not (upload_root / "p-1").exists()


def test_failed_insert_into_existing_tree_removes_only_new_files(
    service, upload_root, make_file, monkeypatch
):
    (upload_root / "p-1" / "photos").mkdir(parents=True)
    (upload_root / "p-1" / "photos" / "keep.txt").write_text("x")

    def _boom(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(service._parts, "insert_part", _boom)
    with pytest.raises(sqlite3.OperationalError):
        service.create_part(_input("P-1"), {PHOTOS: [make_file("a.jpg")]})
    assert sorted(p.name for p in (upload_root / "p-1" / "photos").iterdir()) == ["keep.txt"]


# ------------------------------------------------------------------ update


def test_update_missing_part(service):
    with pytest.raises(PartNotFoundError):
        service.update_part(42, _input("P-1"))


def test_update_to_taken_part_number_is_rejected(service, upload_root, make_file):
    a = service.create_part(_input("A-1"), {PHOTOS: [make_file("a.jpg")]})
    service.create_part(_input("B-1"))

    with pytest.raises(DuplicatePartError):
        service.update_part(a.id, _input("B-1"))
    assert service.get_part(a.id).part_no == "A-1"
    assert (upload_root / "a-1" / "photos" / "a.jpg").is_file()


def test_update_keeps_existing_manifests_and_fields(service, make_file):
    part = service.create_part(
        _input("P-1"), {AttachmentCategory.CAD: [make_file("m.step")]}
    )
    part = service.update_part(
        part.id, _input("P-1", part_name="renamed", qty=7), {PHOTOS: [make_file("p.png")]}
    )
    assert part.part_name == "renamed" and part.qty == 7
    assert [d.name for d in part.cad] == ["m.step"]
    assert [d.name for d in part.photos] == ["p.png"]


def test_rename_with_uploads_lands_in_new_directory(service, upload_root, make_file):
    part = service.create_part(_input("Old"), {PHOTOS: [make_file("a.jpg")]})
    part = service.update_part(part.id, _input("New"), {PHOTOS: [make_file("b.jpg")]})

    assert [d.path for d in part.photos] == ["new/photos/a.jpg", "new/photos/b.jpg"]
    assert not (upload_root / "old").exists()
    _assert_consistent(part, upload_root)


def test_rename_without_directory_creates_tree(service, upload_root):
    part = service.create_part(_input("P-1"))
    (upload_root / "p-1").rename(upload_root / "elsewhere")

    service.update_part(part.id, _input("P-2"))
    assert (upload_root / "p-2" / "invoice").is_dir()


def test_relocation_failure_blocks_record_update(service, upload_root, make_file):
    part = service.create_part(_input("P-1"), {PHOTOS: [make_file("a.jpg")]})
    (upload_root / "p-2").mkdir()
    (upload_root / "p-2" / "stray.txt").write_text("x")

    with pytest.raises(RelocationError):
        service.update_part(part.id, _input("P-2"), {PHOTOS: [make_file("b.jpg")]})

    stored = service.get_part(part.id)
    assert stored.part_no == "P-1"
    assert [d.path for d in stored.photos] == ["p-1/photos/a.jpg"]
    assert not (upload_root / "p-2" / "photos").exists()


def test_failed_update_moves_tree_back(service, upload_root, make_file, monkeypatch):
    part = service.create_part(_input("P-1"), {PHOTOS: [make_file("a.jpg")]})

    def _boom(*args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(service._parts, "update_part", _boom)
    with pytest.raises(sqlite3.OperationalError):
        service.update_part(part.id, _input("P-2"), {PHOTOS: [make_file("b.jpg")]})

    assert sorted(p.name for p in (upload_root / "p-1" / "photos").iterdir()) == ["a.jpg"]
    assert not (upload_root / "p-2").exists()
    _assert_consistent(service.get_part(part.id), upload_root)


def test_failed_update_discards_new_uploads(service, upload_root, make_file, monkeypatch):
    part = service.create_part(_input("P-1"), {PHOTOS: [make_file("a.jpg")]})

    def _boom(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(service._parts, "update_part", _boom)
    with pytest.raises(sqlite3.OperationalError):
        service.update_part(part.id, _input("P-1"), {PHOTOS: [make_file("a.jpg")]})
    monkeypatch.undo()

    assert sorted(p.name for p in (upload_root / "p-1" / "photos").iterdir()) == ["a.jpg"]
    part = service.update_part(part.id, _input("P-1"), {PHOTOS: [make_file("b.jpg")]})
    assert [d.name for d in part.photos] == ["a.jpg", "b.jpg"]


def test_update_integrity_error_is_duplicate(service, upload_root, make_file, monkeypatch):
    part = service.create_part(_input("P-1"))

    def _boom(*args, **kwargs):
        raise sqlite3.IntegrityError("UNIQUE constraint failed: parts.part_no")

    monkeypatch.setattr(service._parts, "update_part", _boom)
    with pytest.raises(DuplicatePartError):
        service.update_part(part.id, _input("P-1"), {PHOTOS: [make_file("a.jpg")]})
    assert list((upload_root / "p-1" / "photos").iterdir()) == []


# ------------------------------------------------------------------ shared directories


def test_create_refuses_part_sharing_a_directory(service, upload_root, make_file):
    first = service.create_part(_input("P 1"), {PHOTOS: [make_file("a.jpg")]})

    with pytest.raises(DuplicatePartError):
        service.create_part(_input("p_1"), {PHOTOS: [make_file("b.jpg")]})

    assert sorted(p.name for p in (upload_root / "p_1" / "photos").iterdir()) == ["a.jpg"]
    assert service.list_parts().meta.total_items == 1

    service.delete_part(first.id)
    service.create_part(_input("p_1"))
    assert (upload_root / "p_1" / "photos").is_dir()


def test_rename_refuses_directory_of_another_part(service, upload_root, make_file):
    service.create_part(_input("P 1"), {PHOTOS: [make_file("a.jpg")]})
    other = service.create_part(_input("Q-1"), {PHOTOS: [make_file("q.jpg")]})

    with pytest.raises(DuplicatePartError):
        service.update_part(other.id, _input("p_1"))

    # also when the renamed part has no tree of its own
    (upload_root / "q-1").rename(upload_root / "elsewhere")
    with pytest.raises(DuplicatePartError):
        service.update_part(other.id, _input("p_1"), {PHOTOS: [make_file("b.jpg")]})

    assert service.get_part(other.id).part_no == "Q-1"
    assert sorted(p.name for p in (upload_root / "p_1" / "photos").iterdir()) == ["a.jpg"]


def test_case_only_rename_keeps_own_directory(service, upload_root, make_file):
    part = service.create_part(_input("P-1"), {PHOTOS: [make_file("a.jpg")]})
    part = service.update_part(part.id, _input("p-1"))
    assert part.part_no == "p-1"
    assert [d.path for d in part.photos] == ["p-1/photos/a.jpg"]


# ------------------------------------------------------------------ remove attachment


def test_remove_attachment(service, upload_root, make_file):
    part = service.create_part(_input("P-1"), {PHOTOS: [make_file("x.png"), make_file("y.png")]})

    remaining = service.remove_attachment(part.id, "photos", "x.png")

    assert [d.name for d in remaining] == ["y.png"]
    assert [d.name for d in service.get_part(part.id).photos] == ["y.png"]
    assert not (upload_root / "p-1" / "photos" / "x.png").exists()
    assert (upload_root / "p-1" / "photos" / "y.png").exists()


def test_remove_unknown_attachment_leaves_manifest(service, make_file):
    part = service.create_part(_input("P-1"), {PHOTOS: [make_file("x.png"), make_file("y.png")]})

    with pytest.raises(AttachmentNotFoundError):
        service.remove_attachment(part.id, PHOTOS, "z.png")
    assert [d.name for d in service.get_part(part.id).photos] == ["x.png", "y.png"]


def test_remove_attachment_validates_inputs(service):
    part = service.create_part(_input("P-1"))
    with pytest.raises(PartValidationError):
        service.remove_attachment(part.id, "videos", "x.png")
    with pytest.raises(PartNotFoundError):
        service.remove_attachment(999, PHOTOS, "x.png")


def test_sequential_operations_keep_manifest_consistent(service, upload_root, make_file):
    part = service.create_part(_input("Seq"), {PHOTOS: [make_file("a.jpg"), make_file("b.jpg")]})
    part = service.update_part(part.id, _input("Seq"), {PHOTOS: [make_file("a.jpg")]})
    service.remove_attachment(part.id, PHOTOS, "b.jpg")
    part = service.update_part(part.id, _input("Seq 2"), {PHOTOS: [make_file("b.jpg")]})

    assert [d.name for d in part.photos] == ["a.jpg", "a(1).jpg", "b.jpg"]
    _assert_consistent(part, upload_root)
    on_disk = sorted(p.name for p in (upload_root / "seq_2" / "photos").iterdir())
    assert on_disk == ["a(1).jpg", "a.jpg", "b.jpg"]


# ------------------------------------------------------------------ delete


def test_delete_failure_keeps_record(service, make_file, monkeypatch):
    part = service.create_part(_input("P-1"), {PHOTOS: [make_file("a.jpg")]})

    def _boom(part_no):
        raise PermissionError("read-only")

    monkeypatch.setattr(service._attachments.layout, "remove_part_tree", _boom)
    with pytest.raises(AttachmentStorageError):
        service.delete_part(part.id)
    assert service.get_part(part.id).part_no == "P-1"


def test_delete_missing_part(service):
    with pytest.raises(PartNotFoundError):
        service.delete_part(1)


# ------------------------------------------------------------------ listing


def test_list_parts_search_sort_and_pages(service):
    for no, name in [("A-1", "alpha bracket"), ("B-1", "beta"), ("C-1", "gamma bracket")]:
        service.create_part(_input(no, part_name=name))

    result = service.list_parts(PartQuery(q="bracket", sort="part_no", order=SortOrder.ASC))
    assert [p.part_no for p in result.items] == ["A-1", "C-1"]
    assert result.meta.total_items == 2

    page = service.list_parts(PartQuery(sort="part_no", order=SortOrder.ASC, page=2, limit=2))
    assert [p.part_no for p in page.items] == ["C-1"]
    assert (page.meta.page, page.meta.total_pages, page.meta.has_more) == (2, 2, False)

    first = service.list_parts(PartQuery(sort="part_no", order=SortOrder.ASC, limit=2))
    assert first.meta.has_more is True


def test_get_part_by_number(service):
    created = service.create_part(_input("P-1"))
    assert service.get_part_by_number("P-1").id == created.id
    with pytest.raises(PartNotFoundError):
        service.get_part_by_number("P-404")
