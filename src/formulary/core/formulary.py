"""Versioned formula record store."""

from pathlib import Path
import logging

import yaml

from formulary.core.config import get_config
from formulary.models.formula import Formula, FormulaError

logger = logging.getLogger(__name__)


class FormulaNotFoundError(Exception):
    """No record for the requested formula or version."""

    pass


class RecordExistsError(Exception):
    """A different record is already published for this version."""

    pass


def version_key(version: str) -> tuple:
    """Sort key for semantic version strings.

    Release segments compare numerically and a pre-release sorts before the
    release it precedes (0.6.0-rc.1 < 0.6.0). Build metadata is ignored.
    """
    version = version.lstrip("v").split("+", 1)[0]
    release, _, prerelease = version.partition("-")

    def segment(part: str) -> tuple[int, int | str]:
        return (0, int(part)) if part.isdigit() else (1, part)

    release_key = tuple(segment(p) for p in release.split("."))
    if prerelease:
        return (release_key, 0, tuple(segment(p) for p in prerelease.split(".")))
    return (release_key, 1, ())


def load_file(path: Path) -> Formula:
    """Load one formula record from a YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise FormulaError(f"Invalid formula record {path}: {e}")
    try:
        return Formula.from_dict(data)
    except FormulaError as e:
        raise FormulaError(f"{path}: {e}")


def dump_formula(formula: Formula) -> str:
    """Serialize a formula record to YAML."""
    return yaml.dump(formula.to_dict(), default_flow_style=False, sort_keys=False)


class Formulary:
    """Formula records laid out as <dir>/<name>/<version>.yaml.

    Directories are searched in order; the first one is where new records
    are published.
    """

    def __init__(self, dirs: list[Path] | None = None):
        self.dirs = list(dirs) if dirs is not None else list(get_config().formula_dirs)

    def _record_path(self, name: str, version: str) -> Path | None:
        for directory in self.dirs:
            path = directory / name / f"{version}.yaml"
            if path.exists():
                return path
        return None

    def names(self) -> list[str]:
        """All formula names with at least one record."""
        found = set()
        for directory in self.dirs:
            if not directory.is_dir():
                continue
            for entry in directory.iterdir():
                if entry.is_dir() and any(entry.glob("*.yaml")):
                    found.add(entry.name)
        return sorted(found)

    def versions(self, name: str) -> list[str]:
        """Published versions of a formula, oldest first."""
        found = set()
        for directory in self.dirs:
            formula_dir = directory / name
            if formula_dir.is_dir():
                found.update(p.stem for p in formula_dir.glob("*.yaml"))
        return sorted(found, key=version_key)

    def get(self, name: str, version: str | None = None) -> Formula:
        """Get a formula record (the latest version when version is None)."""
        if version is None:
            versions = self.versions(name)
            if not versions:
                raise FormulaNotFoundError(f"No formula named '{name}'")
            version = versions[-1]

        version = version.lstrip("v")
        path = self._record_path(name, version)
        if path is None:
            known = ", ".join(self.versions(name)) or "none"
            raise FormulaNotFoundError(
                f"No record for {name} {version} (known versions: {known})"
            )

        formula = load_file(path)
        if formula.name != name or formula.version != version:
            raise FormulaError(
                f"{path} declares {formula.name} {formula.version}, "
                f"expected {name} {version}"
            )
        return formula

    def history(self, name: str) -> list[Formula]:
        """All records of a formula, oldest first."""
        return [self.get(name, v) for v in self.versions(name)]

    def publish(self, formula: Formula) -> Path:
        """Write a new record.

        Published records are immutable: publishing a version that already
        exists is a no-op when the content is identical and an error otherwise.
        """
        existing_path = self._record_path(formula.name, formula.version)
        if existing_path is not None:
            existing = load_file(existing_path)
            if existing == formula:
                logger.debug("%s %s already published at %s", formula.name, formula.version, existing_path)
                return existing_path
            raise RecordExistsError(
                f"{formula.name} {formula.version} is already published with "
                f"different content ({existing_path}); release a new version instead"
            )

        path = self.dirs[0] / formula.name / f"{formula.version}.yaml"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_formula(formula))
        logger.debug("Published %s %s to %s", formula.name, formula.version, path)
        return path
