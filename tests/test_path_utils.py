"""Tests for listed-path normalization and URL building."""

import pytest

from gallery.path_utils import (
    build_absolute_url,
    build_file_url,
    get_base_name,
    get_extension,
    normalize_listed_path,
    strip_dir_prefix,
    to_relative,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("https://img.example.com/file/photos/cats/a.jpg", "photos/cats/a.jpg"),
        ("HTTP://img.example.com/file/photos/a.jpg?v=2#top", "photos/a.jpg"),
        ("/file/photos/a.jpg", "photos/a.jpg"),
        ("///photos/a.jpg", "photos/a.jpg"),
        ("photos/a.jpg?x=1", "photos/a.jpg"),
        ("filed/a.jpg", "filed/a.jpg"),
        ("file", "file"),
        ("https://img.example.com/file/%E7%8C%AB/a.jpg", "猫/a.jpg"),
        ("  photos/a.jpg  ", "photos/a.jpg"),
    ],
)
def test_normalize_listed_path(raw, expected):
    assert normalize_listed_path(raw, "/file") == expected


@pytest.mark.parametrize("raw", [None, "", "   ", 42, {"name": "a.jpg"}])
def test_normalize_rejects_unusable_input(raw):
    assert normalize_listed_path(raw, "/file") == ""


def test_invalid_url_degrades_to_pass_through():
    assert normalize_listed_path("http://[::1/a.jpg", "/file") == "http://[::1/a.jpg"


def test_custom_and_empty_route_prefix():
    assert normalize_listed_path("/img/raw/a.jpg", "/img/raw/") == "a.jpg"
    assert normalize_listed_path("/file/a.jpg", "") == "file/a.jpg"


def test_strip_dir_prefix_whole_segment_only():
    assert strip_dir_prefix("photos/cats/a.jpg", "photos") == "cats/a.jpg"
    assert strip_dir_prefix("photoshop/a.jpg", "photos") == "photoshop/a.jpg"
    assert strip_dir_prefix("photos", "/photos/") == ""
    assert strip_dir_prefix("cats/a.jpg", "") == "cats/a.jpg"


def test_to_relative_combines_both_stages():
    assert to_relative("/file/photos/cats/a.jpg", "/file", "photos") == "cats/a.jpg"
    assert to_relative("/file/photos", "/file", "photos") == ""


@pytest.mark.parametrize(
    "path,ext",
    [
        ("a.jpg", ".jpg"),
        ("dir/a.b.PNG", ".PNG"),
        (".hidden", ""),
        ("dir.d/noext", ""),
        ("noext", ""),
    ],
)
def test_get_extension_uses_last_segment(path, ext):
    assert get_extension(path) == ext


def test_get_base_name():
    assert get_base_name("sub/photo.JPG", ".jpg") == "photo"
    assert get_base_name("sub/photo", "") == "photo"


def test_build_absolute_url():
    assert build_absolute_url("https://img.example.com/", "/api/manage/list") == (
        "https://img.example.com/api/manage/list"
    )
    assert build_absolute_url("https://img.example.com", "https://other.example.com/random") == (
        "https://other.example.com/random"
    )
    assert build_absolute_url("https://img.example.com", "") == ""


def test_build_file_url_quotes_like_encode_uri():
    url = build_file_url("https://img.example.com/", "/file", "猫 图/a(1).jpg")
    assert url == "https://img.example.com/file/%E7%8C%AB%20%E5%9B%BE/a(1).jpg"
    assert build_file_url("https://img.example.com", "", "a.jpg") == "https://img.example.com/a.jpg"
