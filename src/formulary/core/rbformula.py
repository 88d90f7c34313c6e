"""Homebrew Ruby formula interchange.

Only the subset used by binary-release formulae is understood: a version,
OS-conditional url/sha256 pairs, conflicts_with and an install block made of
``bin.install`` and ``*_completion.install`` calls.
"""

import logging
import re

from formulary.core.platform import PlatformInfo, TRIPLE_OS, target_triple
from formulary.models.formula import FileMapping, Formula, Variant


logger = logging.getLogger(__name__)


class FormulaSyntaxError(Exception):
    """Ruby formula could not be understood."""

    pass


_STRING = r"""(?:"((?:[^"\\]|\\.)*)"|'([^']*)')"""

CLASS_RE = re.compile(r"^class\s+(\w+)\s*<\s*Formula\b")
FIELD_RE = re.compile(rf"^(version|desc|homepage|url|sha256)\s*\(?\s*{_STRING}")
OS_RE = re.compile(r"^(?:if|elsif)\s+OS\.(mac|linux)\?")
ON_OS_RE = re.compile(r"^on_(macos|linux)\s+do\b")
CONFLICTS_RE = re.compile(rf"^conflicts_with\s+{_STRING}")
INSTALL_RE = re.compile(
    rf"^(bin|bash_completion|fish_completion|zsh_completion)\.install\s+{_STRING}"
    rf"(?:\s*=>\s*{_STRING})?"
)

RUBY_OS = {"mac": "darwin", "macos": "darwin", "linux": "linux"}
RUBY_CONDITION = {"darwin": "OS.mac?", "linux": "OS.linux?"}


def _string(match: re.Match, index: int) -> str | None:
    """Value of the index-th quoted string in a match (either quote style)."""
    double, single = match.group(index), match.group(index + 1)
    if double is not None:
        return re.sub(r"\\(.)", r"\1", double)
    return single


def class_to_name(class_name: str) -> str:
    """Formula name for a Ruby class name."""
    return class_name.lower()


def name_to_class(name: str) -> str:
    """Ruby class name for a formula name (todo-r -> TodoR)."""
    return "".join(part.capitalize() for part in re.split(r"[-_@.]", name) if part)


def _find_target(url: str, os_name: str) -> str:
    """Target triple embedded in a release URL, or the default for the OS."""
    for arch in ("x86_64", "aarch64", "i686"):
        for suffix in TRIPLE_OS.values():
            triple = f"{arch}-{suffix}"
            if triple in url:
                return triple
    return target_triple(PlatformInfo(os=os_name, arch="amd64"))


def parse_ruby_formula(text: str, name: str | None = None) -> Formula:
    """Parse a Homebrew formula into a Formula record.

    Commented-out lines are ignored, so completions disabled with ``#`` are
    not installed.
    """
    fields: dict[str, str] = {}
    urls: dict[str, str] = {}
    digests: dict[str, str] = {}
    conflicts: list[str] = []
    install: list[FileMapping] = []
    class_name = None
    current_os = None
    in_install = False

    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        match = CLASS_RE.match(line)
        if match:
            class_name = match.group(1)
            continue

        if line.startswith("def install"):
            in_install = True
            continue

        if in_install:
            if line == "end":
                in_install = False
                continue
            match = INSTALL_RE.match(line)
            if match is None:
                raise FormulaSyntaxError(f"line {lineno}: unsupported install step: {line}")
            kind = match.group(1)
            source = _string(match, 2)
            rename = _string(match, 4) or ""
            install.append(FileMapping(source=source, kind=kind, rename=rename))
            continue

        match = OS_RE.match(line) or ON_OS_RE.match(line)
        if match:
            current_os = RUBY_OS[match.group(1)]
            continue

        if line == "end":
            current_os = None
            continue

        match = CONFLICTS_RE.match(line)
        if match:
            conflicts.append(_string(match, 1))
            continue

        match = FIELD_RE.match(line)
        if match:
            key, value = match.group(1), _string(match, 2)
            if key in ("url", "sha256"):
                if current_os is None:
                    raise FormulaSyntaxError(
                        f"line {lineno}: {key} outside an OS block; "
                        f"prebuilt archives must be platform specific"
                    )
                (urls if key == "url" else digests)[current_os] = value
            else:
                fields[key] = value
            continue

    if class_name is None:
        raise FormulaSyntaxError("no 'class ... < Formula' declaration found")
    if "version" not in fields:
        raise FormulaSyntaxError("formula does not declare a version")
    if not urls:
        raise FormulaSyntaxError("formula declares no download URL")

    version = fields["version"]
    variants = []
    templates = set()
    for os_name, url in urls.items():
        if os_name not in digests:
            raise FormulaSyntaxError(f"no sha256 for the {os_name} archive")
        rendered = url.replace("#{version}", version)
        target = _find_target(rendered, os_name)
        templates.add(url.replace("#{version}", "{version}").replace(target, "{target}"))
        variants.append(Variant(os=os_name, target=target, url=rendered, sha256=digests[os_name].lower()))

    url_template = ""
    if len(templates) == 1 and "{target}" in next(iter(templates)):
        url_template = templates.pop()
        variants = [
            Variant(os=v.os, arch=v.arch, target=v.target, sha256=v.sha256)
            for v in variants
        ]

    return Formula(
        name=name or class_to_name(class_name),
        version=version,
        desc=fields.get("desc", ""),
        homepage=fields.get("homepage", ""),
        url_template=url_template,
        variants=tuple(variants),
        install=tuple(install),
        conflicts_with=tuple(conflicts),
    )


def _quote(text: str) -> str:
    """Double-quoted Ruby string literal without interpolation."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("#{", "\\#{")
    return f'"{escaped}"'


def render_ruby_formula(formula: Formula) -> str:
    """Render a record as a Homebrew formula."""
    lines = [f"class {name_to_class(formula.name)} < Formula"]
    lines.append(f"  version '{formula.version}'")
    if formula.desc:
        lines.append(f"  desc {_quote(formula.desc)}")
    if formula.homepage:
        lines.append(f"  homepage {_quote(formula.homepage)}")
    lines.append("")

    keyword = "if"
    for variant in formula.variants:
        condition = RUBY_CONDITION.get(variant.os)
        if condition is None:
            logger.warning(
                "%s %s: no Homebrew condition for %s, skipping %s",
                formula.name, formula.version, variant.os, variant.target,
            )
            continue
        if variant.url:
            url = variant.url.replace(formula.version, "#{version}")
        else:
            url = formula.url_template.replace("{version}", "#{version}").replace(
                "{target}", variant.target
            )
        lines.append(f"  {keyword} {condition}")
        lines.append(f'      url "{url}"')
        lines.append(f'      sha256 "{variant.sha256}"')
        keyword = "elsif"
    if keyword == "elsif":
        lines.append("  end")
        lines.append("")

    for other in formula.conflicts_with:
        lines.append(f'  conflicts_with "{other}"')
    if formula.conflicts_with:
        lines.append("")

    lines.append("  def install")
    previous_kind = None
    for mapping in formula.install:
        if previous_kind == "bin" and mapping.kind != "bin":
            lines.append("")
        previous_kind = mapping.kind
        step = f'    {mapping.kind}.install "{mapping.source}"'
        if mapping.rename:
            step += f' => "{mapping.rename}"'
        lines.append(step)
    lines.append("  end")
    lines.append("end")
    return "\n".join(lines) + "\n"
