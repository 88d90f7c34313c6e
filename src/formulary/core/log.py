"""Logging setup for the CLI."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False) -> None:
    """Route formulary's loggers to stderr through rich.

    Only warnings are shown unless verbose is set.
    """
    logger = logging.getLogger("formulary")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    # Avoid duplicate handlers if called more than once (tests invoke main repeatedly)
    for handler in list(logger.handlers):
        if getattr(handler, "_formulary", False):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler._formulary = True
    logger.addHandler(handler)
