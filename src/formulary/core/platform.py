"""Platform detection and target triples."""

import platform
from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformInfo:
    """Current platform information."""

    os: str  # darwin, linux, windows
    arch: str  # amd64, arm64, 386

    @classmethod
    def detect(cls) -> "PlatformInfo":
        """Detect current platform."""
        return cls(
            os=normalize_os(platform.system()),
            arch=normalize_arch(platform.machine()),
        )


def normalize_os(system: str) -> str:
    """Normalize an OS name (platform.system() or a formula alias)."""
    system = system.lower()
    if system in ("darwin", "macos", "mac", "osx"):
        return "darwin"
    if system == "linux":
        return "linux"
    if system in ("windows", "win32", "win"):
        return "windows"
    return system


def normalize_arch(machine: str) -> str:
    """Normalize an architecture name."""
    machine = machine.lower()
    if machine in ("x86_64", "amd64", "x64"):
        return "amd64"
    if machine in ("arm64", "aarch64"):
        return "arm64"
    if machine in ("i386", "i686", "x86"):
        return "386"
    return machine


# Architecture part of a Rust-style target triple
TRIPLE_ARCH = {
    "amd64": "x86_64",
    "arm64": "aarch64",
    "386": "i686",
}

# Vendor/OS/ABI part of a target triple
TRIPLE_OS = {
    "darwin": "apple-darwin",
    "linux": "unknown-linux-gnu",
    "windows": "pc-windows-msvc",
}


def target_triple(platform_info: PlatformInfo) -> str:
    """Target triple for a platform, e.g. x86_64-unknown-linux-gnu."""
    arch = TRIPLE_ARCH.get(platform_info.arch, platform_info.arch)
    system = TRIPLE_OS.get(platform_info.os, platform_info.os)
    return f"{arch}-{system}"


def get_platform_info() -> PlatformInfo:
    """Get current platform information."""
    return PlatformInfo.detect()
