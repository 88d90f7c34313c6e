"""formulary - install prebuilt release binaries from versioned formula records."""

__version__ = "0.1.0"
