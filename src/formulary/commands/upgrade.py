"""Upgrade command implementation."""

import click
from rich.console import Console

from formulary.commands.install import install_formula
from formulary.core.config import get_config
from formulary.core.formulary import Formulary, FormulaNotFoundError, version_key
from formulary.core.manifest import Manifest
from formulary.models.formula import FormulaError
from formulary.models.package import InstalledPackage

console = Console()


def upgrade_package(
    package: InstalledPackage,
    manifest: Manifest,
    formulary: Formulary,
    force: bool = False,
) -> bool | None:
    """Upgrade a single package to its latest record.

    Returns True if upgraded, False if already up to date and None if the
    upgrade failed (the error has been printed).
    """
    try:
        formula = formulary.get(package.name)
    except (FormulaNotFoundError, FormulaError) as e:
        console.print(f"  [red]Error:[/red] {e}")
        return None

    if version_key(formula.version) <= version_key(package.version) and not force:
        console.print(f"  [green]{package.name}[/green] is up to date ({package.version})")
        return False

    console.print(
        f"  [blue]Upgrading[/blue] {package.name}: {package.version} → {formula.version}"
    )

    # The old files stay in place until the new ones are installed
    upgraded = install_formula(formula, manifest, get_config())
    if upgraded is None:
        return None

    console.print(f"    [green]✓[/green] Upgraded to {upgraded.version}")
    return True


@click.command()
@click.argument("name")
@click.option("--force", "-f", is_flag=True, help="Reinstall even if up to date")
def upgrade(name: str, force: bool):
    """Upgrade a package to the latest formula record."""
    config = get_config()
    config.ensure_dirs()

    manifest = Manifest()

    package = manifest.get(name)
    if package is None:
        console.print(f"[red]Error:[/red] Package '{name}' is not installed")
        raise SystemExit(1)

    upgraded = upgrade_package(package, manifest, Formulary(), force)
    if upgraded is None:
        raise SystemExit(1)
    if not upgraded:
        raise SystemExit(0)

    console.print(f"\n[green]✓[/green] Successfully upgraded [bold]{name}[/bold]")


@click.command("upgrade-all")
def upgrade_all():
    """Upgrade all installed packages to their latest formula records."""
    config = get_config()
    config.ensure_dirs()

    manifest = Manifest()
    packages = manifest.list_packages()

    if not packages:
        console.print("No packages installed")
        raise SystemExit(0)

    console.print(f"[blue]Checking {len(packages)} packages for upgrades...[/blue]\n")

    formulary = Formulary()
    upgraded_count = 0
    failed = []
    for package in packages:
        result = upgrade_package(package, manifest, formulary)
        if result is None:
            failed.append(package.name)
        elif result:
            upgraded_count += 1

    console.print(f"\n[green]✓[/green] Upgraded {upgraded_count} package(s)")
    if failed:
        console.print(f"[red]Error:[/red] Failed to upgrade: {', '.join(failed)}")
        raise SystemExit(1)
