import os

import pytest

from qaic_compute.paths import join_path, split_extension


def test_split_simple_extension():
    path = os.path.join("dir", "file.txt")
    assert split_extension(path) == (os.path.join("dir", "file"), ".txt")


def test_split_keeps_only_last_extension():
    assert split_extension("archive.tar.gz") == ("archive.tar", ".gz")


def test_split_without_extension():
    assert split_extension("Makefile") == ("Makefile", "")


@pytest.mark.parametrize("name", [".", ".."])
def test_split_dot_names_have_no_extension(name):
    assert split_extension(name) == (name, "")


def test_split_hidden_file_is_all_extension():
    assert split_extension(".bashrc") == ("", ".bashrc")


@pytest.mark.parametrize(
    "path",
    ["main.cpp", "lib.a", os.path.join("src", "module.c"), "noext"],
)
def test_split_round_trip(path):
    base, ext = split_extension(path)
    assert base + ext == path


def test_join_inserts_separators():
    assert join_path("a", "b", "c") == os.path.join("a", "b", "c")


def test_join_skips_empty_components():
    assert join_path("a", "", "b", "") == os.path.join("a", "b")


def test_join_only_base():
    assert join_path("a") == "a"


def test_join_empty_base():
    assert join_path("", "x") == "x"


def test_join_strips_leading_separator_after_trailing_one():
    assert join_path("a/", "/b") == "a/b"


def test_join_component_with_leading_separator():
    assert join_path("a", "/b") == "a/b"