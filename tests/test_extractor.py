"""Tests for formulary.core.extractor."""
from __future__ import annotations

import os
import zipfile

import pytest

from conftest import TODOR_FILES, build_tarball
from formulary.core.extractor import (
    ExtractionError,
    archive_root,
    cleanup_temp_dir,
    extract_archive,
    list_archive_members,
    make_executable,
)


def test_extract_tarball_with_release_folder(tmp_archive, tmp_path):
    dest = extract_archive(tmp_archive, tmp_path / "out")

    root = archive_root(dest)

    assert root.name.startswith("todor-v0.6.0")
    assert (root / "todor").read_bytes() == TODOR_FILES["todor"]
    assert (root / "complete" / "_todor").exists()


def test_archive_root_flat_archive(tmp_path):
    archive = build_tarball(tmp_path / "flat.tar.gz", TODOR_FILES)

    dest = extract_archive(archive, tmp_path / "out")

    assert archive_root(dest) == dest


def test_extract_to_temp_dir(tmp_archive):
    dest = extract_archive(tmp_archive)
    try:
        assert dest.name.startswith("formulary_")
    finally:
        cleanup_temp_dir(dest)
    assert not dest.exists()


def test_extract_zip(tmp_path):
    archive = tmp_path / "todor.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("todor", "binary")

    dest = extract_archive(archive, tmp_path / "out")

    assert (dest / "todor").read_text() == "binary"


def test_extract_corrupt_archive(tmp_path):
    archive = tmp_path / "broken.tar.gz"
    archive.write_bytes(b"not a tarball")

    with pytest.raises(ExtractionError, match="Failed to extract"):
        extract_archive(archive, tmp_path / "out")


def test_extract_unsupported_format(tmp_path):
    archive = tmp_path / "todor.rar"
    archive.write_bytes(b"rar")

    with pytest.raises(ExtractionError, match="Unsupported archive format"):
        extract_archive(archive, tmp_path / "out")


def test_list_members_strips_release_folder(tmp_archive):
    assert list_archive_members(tmp_archive) == set(TODOR_FILES)


def test_list_members_flat(tmp_path):
    archive = build_tarball(tmp_path / "flat.tar.gz", {"todor": b"x", "README.md": b"y"})

    assert list_archive_members(archive) == {"todor", "README.md"}


def test_list_members_single_file_at_root(tmp_path):
    """
    A lone file at the root is not a release folder and must not be stripped.
    """
    archive = build_tarball(tmp_path / "one.tar.gz", {"todor": b"x"})

    assert list_archive_members(archive) == {"todor"}


def test_make_executable(tmp_path):
    path = tmp_path / "todor"
    path.write_text("#!/bin/sh\n")
    path.chmod(0o644)

    make_executable(path)

    assert os.access(path, os.X_OK)
