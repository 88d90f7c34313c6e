"""CLI entry point for formulary."""

import click
from rich.console import Console

from formulary import __version__
from formulary.commands import (
    audit,
    brew,
    bump,
    fetch,
    info,
    install,
    list_cmd,
    outdated,
    uninstall,
    upgrade,
)
from formulary.core.config import ConfigError, get_config
from formulary.core.log import configure_logging

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="formulary")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def main(verbose: bool):
    """Formulary - install prebuilt release binaries from formula records.

    Each formula record pins one released version: a download URL and
    SHA-256 digest per platform, plus the files to copy into place.

    Examples:

        formulary install todor

        formulary install todor --version 0.5.1

        formulary audit --online todor

        formulary bump todor 0.6.1 --checksums SHA256SUMS
    """
    configure_logging(verbose)

    try:
        get_config()
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)


# Register commands
main.add_command(install.install)
main.add_command(uninstall.uninstall)
main.add_command(upgrade.upgrade)
main.add_command(upgrade.upgrade_all)
main.add_command(list_cmd.list_packages)
main.add_command(outdated.outdated)
main.add_command(info.info)
main.add_command(fetch.fetch)
main.add_command(audit.audit)
main.add_command(bump.bump)
main.add_command(brew.import_formula)
main.add_command(brew.export_formula)


if __name__ == "__main__":
    main()
