"""List command implementation."""

import click
from rich.console import Console
from rich.table import Table

from formulary.core.manifest import Manifest

console = Console()


@click.command("list")
def list_packages():
    """List all installed packages."""
    manifest = Manifest()
    packages = manifest.list_packages()

    if not packages:
        console.print("No packages installed")
        console.print("\nInstall packages with: formulary install <name>")
        raise SystemExit(0)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Package")
    table.add_column("Version")
    table.add_column("Target")
    table.add_column("Installed")
    table.add_column("Files", justify="right")

    for pkg in sorted(packages, key=lambda p: p.name):
        table.add_row(
            pkg.name,
            pkg.version,
            pkg.target,
            pkg.installed_at.strftime("%Y-%m-%d %H:%M"),
            str(len(pkg.files)),
        )

    console.print(table)
