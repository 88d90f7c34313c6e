"""Uninstall command implementation."""

import click
from rich.console import Console

from formulary.core.installer import uninstall_package
from formulary.core.manifest import Manifest

console = Console()


@click.command()
@click.argument("name")
def uninstall(name: str):
    """Uninstall a package.

    Only the files recorded when NAME was installed are removed.
    """
    manifest = Manifest()

    package = manifest.get(name)
    if package is None:
        console.print(f"[red]Error:[/red] Package '{name}' is not installed")
        raise SystemExit(1)

    console.print(f"[blue]Uninstalling[/blue] {name} {package.version}...")

    removed = uninstall_package(package, manifest)
    for path in removed:
        console.print(f"  Removed {path}")
    missing = len(package.files) - len(removed)
    if missing:
        console.print(f"  [dim]{missing} file(s) were already gone[/dim]")

    console.print(f"\n[green]✓[/green] Successfully uninstalled [bold]{name}[/bold]")
