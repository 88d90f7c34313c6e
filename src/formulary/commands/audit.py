"""Audit command implementation."""

from pathlib import Path

import click
from rich.console import Console

from formulary.core.audit import ERROR, audit_formula, audit_history, has_errors
from formulary.core.downloader import new_client
from formulary.core.formulary import Formulary, FormulaNotFoundError, load_file
from formulary.models.formula import FormulaError

console = Console()


def report(label: str, problems: list) -> None:
    if not problems:
        console.print(f"[green]✓[/green] {label}")
        return
    console.print(f"[bold]{label}[/bold]")
    for problem in problems:
        color = "red" if problem.severity == ERROR else "yellow"
        console.print(f"  [{color}]{problem.severity}:[/{color}] {problem.message}")


@click.command()
@click.argument("names", nargs=-1)
@click.option("--online", is_flag=True, help="Download archives to verify digests and contents")
@click.option(
    "--file",
    "files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Audit a record file instead of the formula directories",
)
def audit(names: tuple[str, ...], online: bool, files: tuple[Path, ...]):
    """Check formula records for integrity problems.

    Audits every known formula when no NAMES are given. Exits with status 1
    if any error is found.
    """
    failed = False
    client = new_client() if online else None

    try:
        for path in files:
            try:
                formula = load_file(path)
            except FormulaError as e:
                console.print(f"[red]Error:[/red] {e}")
                failed = True
                continue
            problems = audit_formula(formula, online=online, client=client)
            report(f"{path} ({formula.name} {formula.version})", problems)
            failed = failed or has_errors(problems)

        if files and not names:
            raise SystemExit(1 if failed else 0)

        formulary = Formulary()
        for name in names or formulary.names():
            try:
                records = formulary.history(name)
            except (FormulaNotFoundError, FormulaError) as e:
                console.print(f"[red]Error:[/red] {e}")
                failed = True
                continue
            if not records:
                console.print(f"[red]Error:[/red] No formula named '{name}'")
                failed = True
                continue

            for formula in records:
                problems = audit_formula(formula, online=online, client=client)
                report(f"{name} {formula.version}", problems)
                failed = failed or has_errors(problems)

            problems = audit_history(records)
            if problems:
                report(f"{name} history", problems)
                failed = failed or has_errors(problems)
    finally:
        if client is not None:
            client.close()

    if failed:
        raise SystemExit(1)
