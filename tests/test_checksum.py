"""Tests for formulary.core.checksum."""
from __future__ import annotations

import hashlib
import textwrap

import pytest

from formulary.core.checksum import (
    ChecksumError,
    calculate_sha256,
    is_sha256,
    parse_checksum_file,
    verify_sha256,
)

DIGEST = "80bf5e63811432cb29927bc3b9051a4123601e0fb749a0382829d73c55650c55"
OTHER = "3a43293c8576f2ac612fef2f28582f2cc93d7b473dab9cb03cb981a8f3fbc87e"


def test_calculate_sha256(tmp_path):
    path = tmp_path / "archive.tar.gz"
    path.write_bytes(b"x" * 20000)

    assert calculate_sha256(path) == hashlib.sha256(b"x" * 20000).hexdigest()


def test_verify_sha256_match(tmp_path):
    path = tmp_path / "archive.tar.gz"
    path.write_bytes(b"release")
    digest = hashlib.sha256(b"release").hexdigest()

    assert verify_sha256(path, digest.upper()) == digest


def test_verify_sha256_mismatch(tmp_path):
    path = tmp_path / "archive.tar.gz"
    path.write_bytes(b"tampered")

    with pytest.raises(ChecksumError, match="Checksum mismatch for archive.tar.gz"):
        verify_sha256(path, DIGEST)


def test_is_sha256():
    assert is_sha256(DIGEST)
    assert not is_sha256(DIGEST[:-1])
    assert not is_sha256("z" * 64)


class TestParseChecksumFile:

    def test_sha256sum_format(self):
        content = textwrap.dedent(f"""
            {OTHER}  todor-v0.6.0-x86_64-apple-darwin.tar.gz
            {DIGEST}  todor-v0.6.0-x86_64-unknown-linux-gnu.tar.gz
        """)

        assert parse_checksum_file(content, "todor-v0.6.0-x86_64-unknown-linux-gnu.tar.gz") == DIGEST

    def test_binary_marker_and_paths(self):
        content = f"{DIGEST.upper()} *./dist/todor.tar.gz\n"

        assert parse_checksum_file(content, "todor.tar.gz") == DIGEST

    def test_colon_format(self):
        content = f"todor.tar.gz: {DIGEST}\n"

        assert parse_checksum_file(content, "todor.tar.gz") == DIGEST

    def test_missing_entry(self):
        assert parse_checksum_file(f"{DIGEST}  other.tar.gz\n", "todor.tar.gz") is None
