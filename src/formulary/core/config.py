"""Configuration and path management for formulary."""

from pathlib import Path
from dataclasses import dataclass, field
import logging
import os

import yaml

logger = logging.getLogger(__name__)

# Records shipped with the package
BUNDLED_FORMULA_DIR = Path(__file__).resolve().parent.parent / "data" / "formula"


class ConfigError(Exception):
    """Invalid configuration file."""

    pass


@dataclass
class FormularyConfig:
    """Configuration for formulary.

    Installation directories follow the Homebrew prefix layout so that
    shells pick up completions from their usual vendor locations.
    """

    base_dir: Path
    prefix: Path
    cache_dir: Path
    manifest_path: Path
    formula_dirs: list[Path] = field(default_factory=list)

    @property
    def bin_dir(self) -> Path:
        return self.prefix / "bin"

    @property
    def bash_completion_dir(self) -> Path:
        return self.prefix / "etc" / "bash_completion.d"

    @property
    def fish_completion_dir(self) -> Path:
        return self.prefix / "share" / "fish" / "vendor_completions.d"

    @property
    def zsh_completion_dir(self) -> Path:
        return self.prefix / "share" / "zsh" / "site-functions"

    def dir_for(self, kind: str) -> Path:
        """Installation directory for a file mapping kind."""
        dirs = {
            "bin": self.bin_dir,
            "bash_completion": self.bash_completion_dir,
            "fish_completion": self.fish_completion_dir,
            "zsh_completion": self.zsh_completion_dir,
        }
        try:
            return dirs[kind]
        except KeyError:
            raise ConfigError(f"Unknown install kind: {kind}")

    @classmethod
    def default(cls) -> "FormularyConfig":
        """Create config with default paths, applying config.yaml if present."""
        base = Path(os.environ.get("FORMULARY_HOME", Path.home() / ".formulary"))
        config = cls(
            base_dir=base,
            prefix=base,
            cache_dir=base / "cache",
            manifest_path=base / "manifest.yaml",
            formula_dirs=[base / "formula", BUNDLED_FORMULA_DIR],
        )
        config_file = base / "config.yaml"
        if config_file.exists():
            config.apply_file(config_file)
        return config

    def apply_file(self, path: Path) -> None:
        """Override paths from a YAML config file.

        Recognised keys: prefix, cache_dir, formula_dirs (searched after the
        user formula directory and before the bundled records).
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid config file {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config file {path}: expected a mapping")

        logger.debug("Loading config overrides from %s", path)
        try:
            if "prefix" in data:
                self.prefix = Path(data["prefix"]).expanduser()
            if "cache_dir" in data:
                self.cache_dir = Path(data["cache_dir"]).expanduser()
            extra = [Path(p).expanduser() for p in data.get("formula_dirs") or []]
        except TypeError as e:
            raise ConfigError(f"Invalid config file {path}: {e}")
        if extra:
            self.formula_dirs = self.formula_dirs[:1] + extra + self.formula_dirs[1:]

    def ensure_dirs(self) -> None:
        """Ensure all required directories exist."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.bin_dir.mkdir(parents=True, exist_ok=True)


# Global config instance
_config: FormularyConfig | None = None


def get_config() -> FormularyConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = FormularyConfig.default()
    return _config


def set_config(config: FormularyConfig | None) -> None:
    """Set a custom configuration (useful for testing)."""
    global _config
    _config = config
