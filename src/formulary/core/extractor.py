"""Archive extraction and inspection."""

from pathlib import Path, PurePosixPath
import tarfile
import zipfile
import shutil
import stat
import tempfile


class ExtractionError(Exception):
    """Error during extraction."""

    pass


def _tar_mode(name: str) -> str | None:
    if name.endswith(".tar.gz") or name.endswith(".tgz"):
        return "r:gz"
    if name.endswith(".tar.xz"):
        return "r:xz"
    if name.endswith(".tar"):
        return "r:"
    return None


def make_executable(path: Path) -> None:
    """Make a file executable."""
    current = path.stat().st_mode
    path.chmod(current | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def extract_archive(archive_path: Path, dest_dir: Path | None = None) -> Path:
    """Extract an archive to a temporary directory.

    Returns the directory containing extracted files.
    """
    if dest_dir is None:
        dest_dir = Path(tempfile.mkdtemp(prefix="formulary_"))
    else:
        dest_dir.mkdir(parents=True, exist_ok=True)

    name = archive_path.name.lower()
    mode = _tar_mode(name)

    try:
        if mode is not None:
            with tarfile.open(archive_path, mode) as tar:
                tar.extractall(dest_dir, filter="data")

        elif name.endswith(".zip"):
            with zipfile.ZipFile(archive_path, "r") as zf:
                zf.extractall(dest_dir)

        else:
            raise ExtractionError(f"Unsupported archive format: {archive_path.name}")

    except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
        raise ExtractionError(f"Failed to extract {archive_path}: {e}")

    return dest_dir


def archive_root(directory: Path) -> Path:
    """Descend into the single top-level directory of an extracted archive.

    Release tarballs usually wrap their files in a folder named after the
    release; mapping sources are relative to that folder.
    """
    entries = list(directory.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return directory


def list_archive_members(archive_path: Path) -> set[str]:
    """List regular files in an archive relative to its root, without extracting."""
    name = archive_path.name.lower()
    mode = _tar_mode(name)

    try:
        if mode is not None:
            with tarfile.open(archive_path, mode) as tar:
                members = [m.name for m in tar.getmembers() if m.isfile()]
        elif name.endswith(".zip"):
            with zipfile.ZipFile(archive_path, "r") as zf:
                members = [i.filename for i in zf.infolist() if not i.is_dir()]
        else:
            raise ExtractionError(f"Unsupported archive format: {archive_path.name}")
    except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
        raise ExtractionError(f"Failed to read {archive_path}: {e}")

    paths = [PurePosixPath(m[2:] if m.startswith("./") else m) for m in members]

    # Strip a single shared top-level directory, mirroring archive_root()
    tops = {p.parts[0] for p in paths if p.parts}
    if len(tops) == 1 and all(len(p.parts) > 1 for p in paths):
        return {str(PurePosixPath(*p.parts[1:])) for p in paths}
    return {str(p) for p in paths}


def cleanup_temp_dir(temp_dir: Path) -> None:
    """Clean up a temporary directory."""
    if temp_dir.exists():
        shutil.rmtree(temp_dir, ignore_errors=True)
