"""Outdated command implementation."""

import click
from rich.console import Console
from rich.table import Table

from formulary.core.formulary import Formulary, version_key
from formulary.core.manifest import Manifest

console = Console()


def find_outdated(manifest: Manifest, formulary: Formulary) -> list[tuple[str, str, str]]:
    """Installed packages with a newer record, as (name, current, latest)."""
    outdated_packages = []
    for package in manifest.list_packages():
        versions = formulary.versions(package.name)
        if not versions:
            # Record removed from every formula directory
            continue
        latest = versions[-1]
        if version_key(latest) > version_key(package.version):
            outdated_packages.append((package.name, package.version, latest))
    return outdated_packages


@click.command()
def outdated():
    """List packages with newer formula records."""
    manifest = Manifest()

    if not manifest.list_packages():
        console.print("No packages installed")
        raise SystemExit(0)

    outdated_packages = find_outdated(manifest, Formulary())

    if not outdated_packages:
        console.print("[green]All packages are up to date![/green]")
        raise SystemExit(0)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Package")
    table.add_column("Current")
    table.add_column("Latest")

    for name, current, latest in outdated_packages:
        table.add_row(name, current, f"[green]{latest}[/green]")

    console.print(table)
    console.print(f"\n{len(outdated_packages)} package(s) can be upgraded")
    console.print("[dim]Run 'formulary upgrade-all' to upgrade all packages[/dim]")
