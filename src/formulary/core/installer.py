"""Verified installation of formula archives."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import logging
import os
import shutil

from formulary.core.checksum import ChecksumError, verify_sha256
from formulary.core.config import FormularyConfig, get_config
from formulary.core.extractor import (
    archive_root,
    cleanup_temp_dir,
    extract_archive,
    make_executable,
)
from formulary.core.manifest import Manifest
from formulary.models.formula import FileMapping, Formula, Variant, is_safe_relative
from formulary.models.package import InstalledPackage

logger = logging.getLogger(__name__)


class InstallError(Exception):
    """Error while placing files."""

    pass


class ConflictError(Exception):
    """Installing would clobber another package or an unmanaged file."""

    pass


@dataclass(frozen=True)
class Placement:
    """A planned copy from the extracted archive to its install location."""

    mapping: FileMapping
    source: Path
    dest: Path


def plan_install(
    formula: Formula,
    source_dir: Path,
    config: FormularyConfig | None = None,
) -> list[Placement]:
    """Resolve every install mapping against an extracted archive.

    Raises InstallError if a source is missing or two mappings target the
    same destination. Nothing is touched on disk.
    """
    if config is None:
        config = get_config()

    root = archive_root(source_dir)
    plan = []
    seen: dict[Path, str] = {}

    for mapping in formula.install:
        if not is_safe_relative(mapping.source):
            raise InstallError(f"Refusing to install from unsafe path: {mapping.source}")

        source = root / mapping.source
        if not source.is_file():
            raise InstallError(
                f"{formula.name} {formula.version}: archive has no file {mapping.source}"
            )

        dest = config.dir_for(mapping.kind) / mapping.dest_name
        if dest in seen:
            raise InstallError(
                f"{mapping.source} and {seen[dest]} would both install to {dest}"
            )
        seen[dest] = mapping.source
        plan.append(Placement(mapping=mapping, source=source, dest=dest))

    return plan


def check_conflicts(
    plan: list[Placement],
    formula: Formula,
    manifest: Manifest,
    force: bool = False,
) -> None:
    """Refuse to overwrite files that belong to someone else.

    Files owned by another installed package are never overwritten. Unmanaged
    files already at a destination are only replaced with force.
    """
    for other in formula.conflicts_with:
        if other != formula.name and manifest.has(other):
            raise ConflictError(
                f"{formula.name} conflicts with installed package '{other}'; "
                f"uninstall it first"
            )

    current = manifest.get(formula.name)
    own_files = set(current.files) if current else set()

    for placement in plan:
        owner = manifest.owner_of(placement.dest)
        if owner is not None and owner != formula.name:
            raise ConflictError(f"{placement.dest} belongs to installed package '{owner}'")

        if placement.dest.exists() and str(placement.dest) not in own_files and not force:
            raise ConflictError(
                f"{placement.dest} already exists and is not managed by formulary. "
                f"Use --force to overwrite."
            )


def _backup_path(dest: Path) -> Path:
    return dest.with_name(f".{dest.name}.formulary-backup")


def place_files(plan: list[Placement]) -> list[str]:
    """Copy planned files into place.

    Existing destinations are moved aside first. If any copy fails, the files
    placed so far are removed and the moved-aside files are restored before
    the error propagates.
    """
    placed: list[Path] = []
    backups: dict[Path, Path] = {}
    try:
        for placement in plan:
            placement.dest.parent.mkdir(parents=True, exist_ok=True)
            if placement.dest.exists() or placement.dest.is_symlink():
                backup = _backup_path(placement.dest)
                os.replace(placement.dest, backup)
                backups[placement.dest] = backup
            placed.append(placement.dest)
            shutil.copy2(placement.source, placement.dest)
            if placement.mapping.kind == "bin":
                make_executable(placement.dest)
            logger.debug("Installed %s -> %s", placement.mapping.source, placement.dest)
    except OSError as e:
        for path in placed:
            path.unlink(missing_ok=True)
        for dest, backup in backups.items():
            os.replace(backup, dest)
            logger.debug("Restored %s", dest)
        raise InstallError(f"Failed to install {placement.dest}: {e}")

    for backup in backups.values():
        backup.unlink(missing_ok=True)
    return [str(p) for p in placed]


def remove_files(files: list[str]) -> list[str]:
    """Remove installed files. Returns the ones that were actually present."""
    removed = []
    for name in files:
        path = Path(name)
        if path.exists() or path.is_symlink():
            path.unlink()
            removed.append(name)
        else:
            logger.debug("Already gone: %s", path)
    return removed


def install_archive(
    formula: Formula,
    variant: Variant,
    archive_path: Path,
    manifest: Manifest,
    config: FormularyConfig | None = None,
    force: bool = False,
) -> InstalledPackage:
    """Verify, extract and install a downloaded archive.

    The checksum is checked before anything is extracted; a mismatching
    archive is deleted and ChecksumError propagates. Files left over from a
    previously installed version of the same formula are removed once the
    new files are in place.
    """
    if config is None:
        config = get_config()

    try:
        verify_sha256(archive_path, variant.sha256, archive_path.name)
    except ChecksumError:
        archive_path.unlink(missing_ok=True)
        raise
    logger.debug("Checksum verified for %s", archive_path.name)

    temp_dir = extract_archive(archive_path)
    try:
        plan = plan_install(formula, temp_dir, config)
        check_conflicts(plan, formula, manifest, force=force)
        files = place_files(plan)
    finally:
        cleanup_temp_dir(temp_dir)

    previous = manifest.get(formula.name)
    if previous is not None:
        stale = [f for f in previous.files if f not in files]
        remove_files(stale)

    package = InstalledPackage(
        name=formula.name,
        version=formula.version,
        target=variant.target,
        installed_at=datetime.now(),
        files=files,
        archive=archive_path.name,
    )
    manifest.add(package)
    return package


def uninstall_package(package: InstalledPackage, manifest: Manifest) -> list[str]:
    """Remove exactly the files a package's receipt lists."""
    removed = remove_files(package.files)
    manifest.remove(package.name)
    return removed
