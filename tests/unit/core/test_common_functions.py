import pytest

from core.utils.common_functions import base_filename, format_file_size, sanitize_identifier


@pytest.mark.parametrize(
    "value,expected",
    [
        ("P-100", "p-100"),
        ("Bracket Left 2", "bracket_left_2"),
        ("A/B\\C..D", "abcd"),
        ("Ünïcode part", "ncode_part"),
        ("  x  ", "__x__"),
        ("", "file"),
        ("!!!", "file"),
        (None, "file"),
    ],
)
def test_sanitize_identifier(value, expected):
    assert sanitize_identifier(value) == expected


@pytest.mark.parametrize("value", ["P-100", "Hello World", "###", "", "a b/c", "MiXeD_Case-1"])
def test_sanitize_is_idempotent_and_non_empty(value):
    once = sanitize_identifier(value)
    assert once
    assert sanitize_identifier(once) == once


@pytest.mark.parametrize(
    "num_bytes,expected",
    [
        (0, "0 Bytes"),
        (1, "1.00 Bytes"),
        (1023, "1023.00 Bytes"),
        (1024, "1.00 KB"),
        (10240, "10.00 KB"),
        (1536, "1.50 KB"),
        (1024 * 1024, "1.00 MB"),
        (5 * 1024**3, "5.00 GB"),
        (2048 * 1024**3, "2048.00 GB"),
    ],
)
def test_format_file_size(num_bytes, expected):
    assert format_file_size(num_bytes) == expected


@pytest.mark.parametrize(
    "name,expected",
    [
        ("a.jpg", "a.jpg"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\drawing.pdf", "drawing.pdf"),
        ("dir/", "file"),
        ("..", "file"),
        ("", "file"),
        ("my photo.png", "my photo.png"),
    ],
)
def test_base_filename_strips_directories(name, expected):
    assert base_filename(name) == expected
