"""Checksum verification for downloaded archives."""

import hashlib
import re
from pathlib import Path

from formulary.models.formula import SHA256_RE


class ChecksumError(Exception):
    """Checksum verification failed."""

    pass


def is_sha256(value: str) -> bool:
    """Check that a value looks like a hex SHA-256 digest."""
    return bool(SHA256_RE.match(value))


def calculate_sha256(file_path: Path) -> str:
    """Calculate SHA256 hash of a file."""
    sha256 = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


def verify_sha256(file_path: Path, expected: str, name: str | None = None) -> str:
    """Verify a file against its pinned digest.

    Returns the actual digest. Raises ChecksumError if it doesn't match.
    """
    actual = calculate_sha256(file_path)
    if actual != expected.lower():
        raise ChecksumError(
            f"Checksum mismatch for {name or file_path.name}:\n"
            f"  Expected: {expected.lower()}\n"
            f"  Got:      {actual}"
        )
    return actual


def parse_checksum_file(content: str, target_filename: str) -> str | None:
    """Parse a checksum file and find the hash for target file.

    Supports formats:
    - <hash>  <filename>
    - <hash> *<filename>
    - <filename>: <hash>
    """
    target_filename_lower = target_filename.lower()

    for line in content.strip().split("\n"):
        line = line.strip()
        if not line:
            continue

        # Format: hash  filename or hash *filename
        match = re.match(r"([a-fA-F0-9]{64})\s+\*?(.+)", line)
        if match:
            hash_value, filename = match.groups()
            # Some tools write paths, e.g. ./dist/<file>
            if filename.strip().split("/")[-1].lower() == target_filename_lower:
                return hash_value.lower()

        # Format: filename: hash
        match = re.match(r"(.+?):\s*([a-fA-F0-9]{64})", line)
        if match:
            filename, hash_value = match.groups()
            if filename.strip().split("/")[-1].lower() == target_filename_lower:
                return hash_value.lower()

    return None
