"""Integrity checks for formula records."""

from dataclasses import dataclass
from pathlib import Path
import logging
import tempfile

import httpx

from formulary.core.checksum import calculate_sha256, is_sha256
from formulary.core.downloader import DownloadError, download_file
from formulary.core.extractor import ExtractionError, cleanup_temp_dir, list_archive_members
from formulary.core.formulary import version_key
from formulary.models.formula import (
    VERSION_RE,
    Formula,
    FormulaError,
    archive_name,
    expected_archive_name,
    is_safe_relative,
)

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class Problem:
    """A single audit finding."""

    severity: str
    message: str

    def __str__(self) -> str:
        return f"{self.severity}: {self.message}"


def has_errors(problems: list[Problem]) -> bool:
    return any(p.severity == ERROR for p in problems)


def audit_formula(
    formula: Formula,
    online: bool = False,
    client: httpx.Client | None = None,
) -> list[Problem]:
    """Check a single record.

    Offline checks look at the record alone. With online=True every archive
    is downloaded to verify its digest and that each install source exists
    inside it.
    """
    problems: list[Problem] = []

    def error(message: str) -> None:
        problems.append(Problem(ERROR, message))

    def warning(message: str) -> None:
        problems.append(Problem(WARNING, message))

    if not VERSION_RE.match(formula.version):
        error(f"version '{formula.version}' is not a semantic version")

    if not formula.variants:
        error("no platform variants declared")

    platforms = set()
    for variant in formula.variants:
        key = (variant.os, variant.arch)
        if key in platforms:
            error(f"more than one variant for {variant.os}/{variant.arch}")
        platforms.add(key)

        if not is_sha256(variant.sha256):
            error(f"{variant.target}: sha256 '{variant.sha256}' is not a 64 character hex digest")

        try:
            url = formula.url_for(variant)
        except FormulaError as e:
            error(str(e))
            continue

        if formula.version not in url:
            error(f"{variant.target}: URL does not mention version {formula.version}: {url}")

        expected = expected_archive_name(formula.name, formula.version, variant.target)
        if archive_name(url) != expected:
            warning(f"{variant.target}: archive is named {archive_name(url)}, expected {expected}")

    if formula.name in formula.conflicts_with:
        warning("formula declares a conflict with itself")

    if not any(m.kind == "bin" for m in formula.install):
        error("no executable is installed (no 'bin' entry)")

    destinations = {}
    for mapping in formula.install:
        if not is_safe_relative(mapping.source):
            error(f"install source {mapping.source} escapes the archive")
        if "/" in mapping.dest_name or mapping.dest_name in ("", ".", ".."):
            error(f"install name '{mapping.dest_name}' is not a plain file name")
        key = (mapping.kind, mapping.dest_name)
        if key in destinations:
            error(
                f"{mapping.source} and {destinations[key]} both install to "
                f"{mapping.kind}/{mapping.dest_name}"
            )
        destinations[key] = mapping.source

    if online and not has_errors(problems):
        problems.extend(audit_archives(formula, client=client))

    return problems


def audit_archives(formula: Formula, client: httpx.Client | None = None) -> list[Problem]:
    """Download every variant's archive and compare it with the record."""
    problems: list[Problem] = []
    workdir = Path(tempfile.mkdtemp(prefix="formulary_audit_"))

    try:
        for variant in formula.variants:
            url = formula.url_for(variant)
            logger.debug("Auditing %s", url)
            try:
                path = download_file(
                    url,
                    dest=workdir,
                    filename=archive_name(url),
                    show_progress=False,
                    client=client,
                )
            except DownloadError as e:
                problems.append(Problem(ERROR, f"{variant.target}: {e}"))
                continue

            actual = calculate_sha256(path)
            if actual != variant.sha256:
                problems.append(Problem(
                    ERROR,
                    f"{variant.target}: checksum mismatch (pinned {variant.sha256}, "
                    f"archive {actual})",
                ))
                continue

            try:
                members = list_archive_members(path)
            except ExtractionError as e:
                problems.append(Problem(ERROR, f"{variant.target}: {e}"))
                continue

            for mapping in formula.install:
                if mapping.source not in members:
                    problems.append(Problem(
                        ERROR,
                        f"{variant.target}: archive has no file {mapping.source}",
                    ))
    finally:
        cleanup_temp_dir(workdir)

    return problems


def audit_history(records: list[Formula]) -> list[Problem]:
    """Checks across all versions of one formula.

    Versions must be distinct and every archive digest must belong to exactly
    one record, since a published record is never edited in place.
    """
    problems: list[Problem] = []
    ordered = sorted(records, key=lambda f: version_key(f.version))

    seen_versions = set()
    for formula in ordered:
        if formula.version in seen_versions:
            problems.append(Problem(ERROR, f"version {formula.version} is recorded twice"))
        seen_versions.add(formula.version)

    digests: dict[str, str] = {}
    for formula in ordered:
        for variant in formula.variants:
            first = digests.get(variant.sha256)
            if first is not None and first != formula.version:
                problems.append(Problem(
                    ERROR,
                    f"{formula.version} ({variant.target}) reuses the archive digest "
                    f"of {first}",
                ))
            digests.setdefault(variant.sha256, formula.version)

    return problems
