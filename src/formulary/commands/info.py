"""Info command implementation."""

import click
from rich.console import Console
from rich.panel import Panel

from formulary.core.config import get_config
from formulary.core.formulary import Formulary, FormulaNotFoundError
from formulary.core.manifest import Manifest
from formulary.models.formula import FormulaError

console = Console()


@click.command()
@click.argument("name")
@click.option("--version", "-v", "version", help="Show a specific version")
def info(name: str, version: str | None):
    """Show details of a formula and its installed state."""
    formulary = Formulary()
    try:
        formula = formulary.get(name, version)
    except (FormulaNotFoundError, FormulaError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    config = get_config()
    lines = [
        f"[bold]Name:[/bold] {formula.name}",
        f"[bold]Version:[/bold] {formula.version}",
    ]
    if formula.desc:
        lines.append(f"[bold]Description:[/bold] {formula.desc}")
    if formula.homepage:
        lines.append(f"[bold]Homepage:[/bold] {formula.homepage}")
    if formula.conflicts_with:
        lines.append(f"[bold]Conflicts with:[/bold] {', '.join(formula.conflicts_with)}")

    lines.append("[bold]Archives:[/bold]")
    for variant in formula.variants:
        lines.append(f"  {variant.os}/{variant.arch}: {formula.url_for(variant)}")
        lines.append(f"    [dim]sha256 {variant.sha256}[/dim]")

    lines.append("[bold]Installs:[/bold]")
    for mapping in formula.install:
        dest = config.dir_for(mapping.kind) / mapping.dest_name
        lines.append(f"  {mapping.source} → {dest}")

    console.print(Panel("\n".join(lines), title=f"[green]{formula.name}[/green]"))

    package = Manifest().get(name)
    if package:
        console.print(
            f"\n[bold]Installed:[/bold] {package.version} ({package.target}) on "
            f"{package.installed_at.strftime('%Y-%m-%d %H:%M')}"
        )

    console.print("\n[bold]Versions:[/bold]")
    for known in reversed(formulary.versions(name)):
        marker = ""
        if package and known == package.version:
            marker = " [green](installed)[/green]"
        console.print(f"  • {known}{marker}")
