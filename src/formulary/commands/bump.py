"""Bump command: author the record for a new release."""

from dataclasses import replace
from pathlib import Path
import tempfile

import click
from rich.console import Console

from formulary.core.audit import ERROR, audit_formula, has_errors
from formulary.core.checksum import calculate_sha256, is_sha256, parse_checksum_file
from formulary.core.downloader import DownloadError, download_file
from formulary.core.extractor import cleanup_temp_dir
from formulary.core.formulary import (
    Formulary,
    FormulaNotFoundError,
    RecordExistsError,
    dump_formula,
    version_key,
)
from formulary.models.formula import Formula, FormulaError, Variant, archive_name

console = Console()


class BumpError(Exception):
    """The new record could not be assembled."""

    pass


def bump_formula(previous: Formula, version: str, digests: dict[str, str]) -> Formula:
    """Derive the record for a new version from the previous one.

    digests maps an OS name or target triple to the new archive's SHA-256.
    Every variant needs a new digest; literal URLs have the old version
    replaced by the new one.
    """
    version = version.lstrip("v")
    if version_key(version) <= version_key(previous.version):
        raise BumpError(f"{version} is not newer than {previous.version}")

    variants = []
    for variant in previous.variants:
        digest = digests.get(variant.target) or digests.get(variant.os)
        if digest is None:
            raise BumpError(f"No sha256 given for {variant.target}")
        if not is_sha256(digest.lower()):
            raise BumpError(f"{variant.target}: '{digest}' is not a SHA-256 digest")
        url = variant.url.replace(previous.version, version) if variant.url else ""
        variants.append(replace(variant, url=url, sha256=digest.lower()))

    return replace(previous, version=version, variants=tuple(variants))


def parse_digest_options(values: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated --sha256 PLATFORM=HASH options."""
    digests = {}
    for value in values:
        key, sep, digest = value.partition("=")
        if not sep or not key or not digest:
            raise click.BadParameter(f"expected PLATFORM=HASH, got '{value}'", param_hint="--sha256")
        digests[key.strip()] = digest.strip()
    return digests


def digests_from_file(formula: Formula, version: str, content: str) -> dict[str, str]:
    """Look up each variant's new archive in a SHA256SUMS-style file."""
    digests = {}
    for variant in formula.variants:
        url = _new_url(formula, variant, version)
        digest = parse_checksum_file(content, archive_name(url))
        if digest is not None:
            digests[variant.target] = digest
    return digests


def compute_digests(formula: Formula, version: str) -> dict[str, str]:
    """Download each new archive and hash it."""
    digests = {}
    workdir = Path(tempfile.mkdtemp(prefix="formulary_bump_"))
    try:
        for variant in formula.variants:
            url = _new_url(formula, variant, version)
            path = download_file(url, dest=workdir, filename=archive_name(url))
            digests[variant.target] = calculate_sha256(path)
    finally:
        cleanup_temp_dir(workdir)
    return digests


def _new_url(formula: Formula, variant: Variant, version: str) -> str:
    placeholder = replace(formula, version=version.lstrip("v"))
    if variant.url:
        return variant.url.replace(formula.version, placeholder.version)
    return placeholder.url_for(variant)


@click.command()
@click.argument("name")
@click.argument("version")
@click.option("--sha256", "sha256_values", multiple=True, metavar="PLATFORM=HASH",
              help="Digest for an OS (darwin, linux) or target triple; repeatable")
@click.option("--checksums", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Read digests from a SHA256SUMS-style file")
@click.option("--compute", is_flag=True, help="Download the new archives and hash them")
@click.option("--dry-run", is_flag=True, help="Print the record instead of publishing it")
def bump(name: str, version: str, sha256_values: tuple[str, ...], checksums: Path | None,
         compute: bool, dry_run: bool):
    """Publish a record for a new VERSION of NAME.

    The latest record is used as the starting point. Published records are
    never edited; each release gets its own record.
    """
    formulary = Formulary()
    try:
        previous = formulary.get(name)
    except (FormulaNotFoundError, FormulaError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    digests = parse_digest_options(sha256_values)
    try:
        if checksums is not None:
            digests = {**digests_from_file(previous, version, checksums.read_text()), **digests}
        if compute:
            console.print(f"[blue]Hashing[/blue] {name} {version} archives...")
            digests = {**compute_digests(previous, version), **digests}
        formula = bump_formula(previous, version, digests)
    except (BumpError, DownloadError, FormulaError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    problems = audit_formula(formula)
    for problem in problems:
        color = "red" if problem.severity == ERROR else "yellow"
        console.print(f"[{color}]{problem.severity}:[/{color}] {problem.message}")
    if has_errors(problems):
        raise SystemExit(1)

    if dry_run:
        click.echo(dump_formula(formula), nl=False)
        return

    try:
        path = formulary.publish(formula)
    except RecordExistsError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    console.print(
        f"[green]✓[/green] Published [bold]{name}[/bold] {previous.version} → {formula.version} ({path})"
    )
