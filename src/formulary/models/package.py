"""Installed package receipt."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class InstalledPackage:
    """Represents an installed formula and the files it placed."""

    name: str
    version: str
    target: str
    installed_at: datetime
    files: list[str] = field(default_factory=list)  # absolute installed paths
    archive: str = ""  # The archive filename that was installed

    def to_dict(self) -> dict:
        """Convert to dictionary for YAML serialization."""
        return {
            "version": self.version,
            "target": self.target,
            "installed_at": self.installed_at.isoformat(),
            "files": self.files,
            "archive": self.archive,
        }

    @classmethod
    def from_dict(cls, name: str, data: dict) -> "InstalledPackage":
        """Create InstalledPackage from dictionary."""
        installed_at = data.get("installed_at")
        if isinstance(installed_at, str):
            installed_at = datetime.fromisoformat(installed_at)
        elif installed_at is None:
            installed_at = datetime.now()

        return cls(
            name=name,
            version=str(data["version"]),
            target=data.get("target", ""),
            installed_at=installed_at,
            files=data.get("files", []),
            archive=data.get("archive", ""),
        )
