"""Data models for formulary."""

from formulary.models.formula import (
    FileMapping,
    Formula,
    FormulaError,
    UnsupportedPlatformError,
    Variant,
)
from formulary.models.package import InstalledPackage

__all__ = [
    "FileMapping",
    "Formula",
    "FormulaError",
    "InstalledPackage",
    "UnsupportedPlatformError",
    "Variant",
]
