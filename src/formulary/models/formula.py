"""Formula record data models."""

from dataclasses import dataclass, field
import posixpath
import re


# Installation kinds and the directory each one lands in (see FormularyConfig)
INSTALL_KINDS = ("bin", "bash_completion", "fish_completion", "zsh_completion")

SHA256_RE = re.compile(r"^[a-f0-9]{64}$")
VERSION_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z.-]+))?(?:\+([0-9A-Za-z.-]+))?$"
)


class FormulaError(Exception):
    """Invalid formula record."""

    pass


class UnsupportedPlatformError(Exception):
    """No variant of a formula matches the host platform."""

    pass


def render_url(template: str, version: str, target: str) -> str:
    """Interpolate {version} and {target} into a URL template."""
    return template.replace("{version}", version).replace("{target}", target)


def archive_name(url: str) -> str:
    """Get the archive filename from a download URL."""
    return url.rstrip("/").split("/")[-1]


def expected_archive_name(name: str, version: str, target: str) -> str:
    """Release archive naming convention: <name>-v<version>-<target>.tar.gz"""
    return f"{name}-v{version}-{target}.tar.gz"


def is_safe_relative(path: str) -> bool:
    """Check that an archive path is relative and stays inside the archive."""
    if not path or path.startswith("/") or "\\" in path:
        return False
    normalized = posixpath.normpath(path)
    return not (normalized == ".." or normalized.startswith("../"))


@dataclass(frozen=True)
class Variant:
    """One platform build of a release."""

    os: str  # darwin, linux, windows
    target: str  # target triple, e.g. x86_64-apple-darwin
    sha256: str
    url: str = ""  # literal URL; empty means use the formula's url_template
    arch: str = "amd64"

    def to_dict(self) -> dict:
        data = {"os": self.os, "arch": self.arch, "target": self.target}
        if self.url:
            data["url"] = self.url
        data["sha256"] = self.sha256
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Variant":
        try:
            return cls(
                os=data["os"],
                arch=data.get("arch", "amd64"),
                target=data["target"],
                url=data.get("url", ""),
                sha256=str(data["sha256"]).lower(),
            )
        except KeyError as e:
            raise FormulaError(f"Variant is missing field {e}")


@dataclass(frozen=True)
class FileMapping:
    """A file copied from the archive into an installation directory."""

    source: str  # relative path inside the archive
    kind: str  # one of INSTALL_KINDS
    rename: str = ""

    @property
    def dest_name(self) -> str:
        """Installed file name."""
        return self.rename or posixpath.basename(self.source)

    def to_dict(self) -> dict:
        data = {"source": self.source, "kind": self.kind}
        if self.rename:
            data["rename"] = self.rename
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "FileMapping":
        try:
            mapping = cls(
                source=data["source"],
                kind=data["kind"],
                rename=data.get("rename", ""),
            )
        except KeyError as e:
            raise FormulaError(f"Install entry is missing field {e}")
        if mapping.kind not in INSTALL_KINDS:
            raise FormulaError(
                f"Unknown install kind '{mapping.kind}' "
                f"(expected one of {', '.join(INSTALL_KINDS)})"
            )
        return mapping


@dataclass(frozen=True)
class Formula:
    """One released version of a package.

    Records are immutable: a new release gets a new Formula rather than an
    edit to an existing one.
    """

    name: str
    version: str
    variants: tuple[Variant, ...]
    install: tuple[FileMapping, ...]
    desc: str = ""
    homepage: str = ""
    url_template: str = ""
    conflicts_with: tuple[str, ...] = field(default_factory=tuple)

    def url_for(self, variant: Variant) -> str:
        """Resolve the download URL of a variant."""
        if variant.url:
            return variant.url
        if not self.url_template:
            raise FormulaError(
                f"{self.name} {self.version}: variant {variant.target} has no URL"
            )
        return render_url(self.url_template, self.version, variant.target)

    def variant_for(self, platform_info) -> Variant:
        """Select the variant for a platform.

        Raises UnsupportedPlatformError if no variant matches.
        """
        for variant in self.variants:
            if variant.os == platform_info.os and variant.arch == platform_info.arch:
                return variant

        supported = ", ".join(f"{v.os}/{v.arch}" for v in self.variants) or "none"
        raise UnsupportedPlatformError(
            f"{self.name} {self.version} has no build for "
            f"{platform_info.os}/{platform_info.arch} (available: {supported})"
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for YAML serialization."""
        data = {"name": self.name, "version": self.version}
        if self.desc:
            data["desc"] = self.desc
        if self.homepage:
            data["homepage"] = self.homepage
        if self.url_template:
            data["url"] = self.url_template
        data["variants"] = [v.to_dict() for v in self.variants]
        data["install"] = [m.to_dict() for m in self.install]
        if self.conflicts_with:
            data["conflicts_with"] = list(self.conflicts_with)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Formula":
        """Create Formula from dictionary."""
        if not isinstance(data, dict):
            raise FormulaError("Formula record must be a mapping")
        for key in ("name", "version", "variants", "install"):
            if key not in data:
                raise FormulaError(f"Formula record is missing '{key}'")

        return cls(
            name=data["name"],
            # YAML reads an unquoted 1.0 as a float
            version=str(data["version"]),
            desc=data.get("desc", ""),
            homepage=data.get("homepage", ""),
            url_template=data.get("url", ""),
            variants=tuple(Variant.from_dict(v) for v in data["variants"]),
            install=tuple(FileMapping.from_dict(m) for m in data["install"]),
            conflicts_with=tuple(data.get("conflicts_with", [])),
        )
