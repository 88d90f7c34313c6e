"""Fetch command implementation."""

import click
from rich.console import Console

from formulary.core.checksum import ChecksumError, verify_sha256
from formulary.core.config import get_config
from formulary.core.downloader import DownloadError, download_file
from formulary.core.formulary import Formulary, FormulaNotFoundError
from formulary.core.platform import get_platform_info
from formulary.models.formula import FormulaError, UnsupportedPlatformError, archive_name

console = Console()


@click.command()
@click.argument("name")
@click.option("--version", "-v", "version", help="Specific version to fetch")
@click.option("--all-platforms", "-a", is_flag=True, help="Fetch the archive of every variant")
def fetch(name: str, version: str | None, all_platforms: bool):
    """Download and verify a formula's archive without installing it.

    Verified archives are kept in the cache directory.
    """
    config = get_config()
    config.ensure_dirs()

    try:
        formula = Formulary().get(name, version)
        if all_platforms:
            variants = list(formula.variants)
        else:
            variants = [formula.variant_for(get_platform_info())]
    except (FormulaNotFoundError, FormulaError, UnsupportedPlatformError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    failed = False
    for variant in variants:
        url = formula.url_for(variant)
        try:
            path = download_file(url, dest=config.cache_dir, filename=archive_name(url))
        except DownloadError as e:
            console.print(f"[red]Error:[/red] {e}")
            failed = True
            continue

        try:
            verify_sha256(path, variant.sha256, path.name)
        except ChecksumError as e:
            path.unlink(missing_ok=True)
            console.print(f"[red]Error:[/red] {e}")
            failed = True
            continue

        console.print(f"[green]✓[/green] {path}")

    if failed:
        raise SystemExit(1)
