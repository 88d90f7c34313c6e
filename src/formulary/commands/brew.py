"""Homebrew formula import/export commands."""

from pathlib import Path

import click
from rich.console import Console

from formulary.core.audit import ERROR, audit_formula
from formulary.core.formulary import Formulary, FormulaNotFoundError, RecordExistsError, dump_formula
from formulary.core.rbformula import FormulaSyntaxError, parse_ruby_formula, render_ruby_formula
from formulary.models.formula import FormulaError

console = Console()


@click.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", "-n", help="Formula name (defaults to the file name)")
@click.option("--dry-run", is_flag=True, help="Print the record instead of publishing it")
def import_formula(path: Path, name: str | None, dry_run: bool):
    """Import a Homebrew Ruby formula as a new record."""
    try:
        formula = parse_ruby_formula(path.read_text(), name=name or path.stem)
    except (FormulaSyntaxError, FormulaError) as e:
        console.print(f"[red]Error:[/red] {path}: {e}")
        raise SystemExit(1)

    for problem in audit_formula(formula):
        color = "red" if problem.severity == ERROR else "yellow"
        console.print(f"[{color}]{problem.severity}:[/{color}] {problem.message}")

    if dry_run:
        click.echo(dump_formula(formula), nl=False)
        return

    try:
        record = Formulary().publish(formula)
    except (RecordExistsError, FormulaError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    console.print(
        f"[green]✓[/green] Imported [bold]{formula.name}[/bold] {formula.version} → {record}"
    )


@click.command("export")
@click.argument("name")
@click.option("--version", "-v", "version", help="Specific version to export")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write to a file instead of stdout",
)
def export_formula(name: str, version: str | None, output: Path | None):
    """Render a record as a Homebrew Ruby formula."""
    try:
        formula = Formulary().get(name, version)
    except (FormulaNotFoundError, FormulaError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    text = render_ruby_formula(formula)
    if output is None:
        click.echo(text, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text)
    console.print(f"[green]✓[/green] Wrote {output}")
