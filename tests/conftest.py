"""
Shared pytest fixtures for the formulary test suite.

Fixture Naming Convention:
- tmp_* : Fixtures that create temporary directories/files
- sample_* : Fixtures that provide sample content
"""
from __future__ import annotations

import hashlib
import io
import tarfile
import textwrap
from pathlib import Path

import pytest

from formulary.core.config import FormularyConfig, set_config
from formulary.core.manifest import Manifest
from formulary.core.platform import PlatformInfo
from formulary.models.formula import FileMapping, Formula, Variant

LINUX = PlatformInfo(os="linux", arch="amd64")
LINUX_TARGET = "x86_64-unknown-linux-gnu"
DARWIN_TARGET = "x86_64-apple-darwin"

URL_TEMPLATE = (
    "https://github.com/lavifb/todo_r/releases/download/"
    "v{version}/todor-v{version}-{target}.tar.gz"
)

TODOR_FILES = {
    "todor": b"#!/bin/sh\necho todor\n",
    "complete/todor.bash-completion": b"complete -F _todor todor\n",
    "complete/todor.fish": b"complete -c todor\n",
    "complete/_todor": b"#compdef todor\n",
}

TODOR_INSTALL = (
    FileMapping(source="todor", kind="bin"),
    FileMapping(source="complete/todor.bash-completion", kind="bash_completion"),
    FileMapping(source="complete/todor.fish", kind="fish_completion"),
    FileMapping(source="complete/_todor", kind="zsh_completion"),
)


def build_tarball(path: Path, files: dict[str, bytes], top: str | None = None) -> Path:
    """Write a .tar.gz with the given members, optionally under a top-level folder."""
    with tarfile.open(path, "w:gz") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(f"{top}/{name}" if top else name)
            info.size = len(data)
            info.mode = 0o755 if name == "todor" else 0o644
            tar.addfile(info, io.BytesIO(data))
    return path


def sha256_of(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def make_formula(
    version: str = "0.6.0",
    linux_sha: str = "0" * 64,
    darwin_sha: str = "1" * 64,
    install: tuple[FileMapping, ...] = TODOR_INSTALL,
    name: str = "todor",
    conflicts_with: tuple[str, ...] = (),
) -> Formula:
    return Formula(
        name=name,
        version=version,
        desc="Find all your TODO notes with one command!",
        homepage="https://github.com/lavifb/todo_r",
        url_template=URL_TEMPLATE.replace("todor-", f"{name}-"),
        variants=(
            Variant(os="darwin", target=DARWIN_TARGET, sha256=darwin_sha),
            Variant(os="linux", target=LINUX_TARGET, sha256=linux_sha),
        ),
        install=install,
        conflicts_with=conflicts_with,
    )


@pytest.fixture
def tmp_config(tmp_path: Path):
    """A FormularyConfig rooted in a temporary directory, installed globally."""
    base = tmp_path / "home"
    config = FormularyConfig(
        base_dir=base,
        prefix=base,
        cache_dir=base / "cache",
        manifest_path=base / "manifest.yaml",
        formula_dirs=[base / "formula"],
    )
    config.ensure_dirs()
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def tmp_manifest(tmp_config: FormularyConfig) -> Manifest:
    return Manifest(tmp_config.manifest_path)


@pytest.fixture
def tmp_archive(tmp_path: Path) -> Path:
    """A todor 0.6.0 linux release archive with a top-level release folder."""
    name = f"todor-v0.6.0-{LINUX_TARGET}.tar.gz"
    return build_tarball(tmp_path / name, TODOR_FILES, top=f"todor-v0.6.0-{LINUX_TARGET}")


@pytest.fixture
def sample_formula(tmp_archive: Path) -> Formula:
    """todor 0.6.0 whose linux digest matches tmp_archive."""
    return make_formula(linux_sha=sha256_of(tmp_archive))


@pytest.fixture
def sample_ruby_formula() -> str:
    """Homebrew formula for todor 0.6.0."""
    return textwrap.dedent('''
        class Todor < Formula
          version '0.6.0'
          desc "Find all your TODO notes with one command!"
          homepage "https://github.com/lavifb/todo_r"

          if OS.mac?
              url "https://github.com/lavifb/todo_r/releases/download/v#{version}/todor-v#{version}-x86_64-apple-darwin.tar.gz"
              sha256 "3a43293c8576f2ac612fef2f28582f2cc93d7b473dab9cb03cb981a8f3fbc87e"
          elsif OS.linux?
              url "https://github.com/lavifb/todo_r/releases/download/v#{version}/todor-v#{version}-x86_64-unknown-linux-gnu.tar.gz"
              sha256 "80bf5e63811432cb29927bc3b9051a4123601e0fb749a0382829d73c55650c55"
          end

          conflicts_with "todor"

          def install
            bin.install "todor"

            bash_completion.install "complete/todor.bash-completion"
            fish_completion.install "complete/todor.fish"
            zsh_completion.install "complete/_todor"
          end
        end
    ''')
