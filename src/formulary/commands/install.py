"""Install command implementation."""

import click
from rich.console import Console

from formulary.core.config import FormularyConfig, get_config
from formulary.core.checksum import ChecksumError
from formulary.core.downloader import download_file, DownloadError
from formulary.core.extractor import ExtractionError
from formulary.core.formulary import Formulary, FormulaNotFoundError
from formulary.core.installer import ConflictError, InstallError, install_archive
from formulary.core.manifest import Manifest
from formulary.core.platform import get_platform_info
from formulary.models.formula import Formula, FormulaError, UnsupportedPlatformError, archive_name
from formulary.models.package import InstalledPackage

console = Console()


def fetch_archive(formula: Formula, config: FormularyConfig) -> tuple:
    """Select the host variant and download its archive into the cache.

    Returns (variant, archive_path).
    """
    platform_info = get_platform_info()
    variant = formula.variant_for(platform_info)
    url = formula.url_for(variant)

    console.print(f"  Platform: {platform_info.os}/{platform_info.arch} ({variant.target})")
    archive_path = download_file(url, dest=config.cache_dir, filename=archive_name(url))
    return variant, archive_path


def install_formula(
    formula: Formula,
    manifest: Manifest,
    config: FormularyConfig,
    force: bool = False,
) -> InstalledPackage | None:
    """Download, verify and install a formula. Returns None on failure."""
    try:
        variant, archive_path = fetch_archive(formula, config)
    except (UnsupportedPlatformError, FormulaError, DownloadError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return None

    try:
        package = install_archive(formula, variant, archive_path, manifest, config, force=force)
    except ChecksumError as e:
        console.print(f"[red]Error:[/red] {e}")
        console.print("[red]Installation aborted; nothing was installed[/red]")
        return None
    except (ExtractionError, InstallError, ConflictError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return None
    finally:
        archive_path.unlink(missing_ok=True)

    console.print("  [green]✓[/green] Checksum verified")
    for path in package.files:
        console.print(f"  Installed {path}")
    return package


@click.command()
@click.argument("name")
@click.option("--version", "-v", "version", help="Specific version to install")
@click.option("--force", "-f", is_flag=True, help="Reinstall, and overwrite unmanaged files")
def install(name: str, version: str | None, force: bool):
    """Install a formula.

    NAME is the formula name (see 'formulary info NAME' for versions).
    """
    config = get_config()
    config.ensure_dirs()

    try:
        formula = Formulary().get(name, version)
    except (FormulaNotFoundError, FormulaError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    manifest = Manifest()

    # Check if already installed
    current = manifest.get(name)
    if current is not None and not force:
        if current.version == formula.version:
            console.print(
                f"[yellow]{name}[/yellow] {current.version} is already installed. "
                f"Use --force to reinstall."
            )
        else:
            console.print(
                f"[yellow]{name}[/yellow] {current.version} is installed. "
                f"Use 'formulary upgrade {name}' or --force to install {formula.version}."
            )
        raise SystemExit(0)

    console.print(f"[blue]Installing[/blue] {name} {formula.version}...")

    package = install_formula(formula, manifest, config, force=force)
    if package is None:
        raise SystemExit(1)

    console.print(
        f"\n[green]✓[/green] Successfully installed [bold]{name}[/bold] {package.version}"
    )
    console.print(f"\n[dim]Make sure {config.bin_dir} is in your PATH[/dim]")
