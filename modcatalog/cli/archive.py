from pathlib import Path
from typing import Optional

import click
import msgspec

from modcatalog.cli.common import CliContext, pass_cli_context, reported_errors
from modcatalog.controllers.import_controller import ArchiveImporter


@click.command("analyze")
@click.argument("archive", type=click.Path(dir_okay=False, path_type=Path))
@pass_cli_context
def analyze(ctx: CliContext, archive: Path) -> None:
    """Analyze a zip archive and print the result as JSON."""
    with reported_errors():
        result = ArchiveImporter(ctx.catalog).analyze(archive)
    click.echo(msgspec.json.format(msgspec.json.encode(result)).decode("utf-8"))


@click.command("import")
@click.argument("archive", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--entity", "target_entity", required=True, help="Target entity slug.")
@click.option("--name", required=True, help="Display name of the mod.")
@click.option(
    "--root",
    "internal_root",
    default="",
    help="Archive folder to extract (default: the whole archive).",
)
@click.option("--description", default=None)
@click.option("--author", default=None)
@click.option("--category-tag", default=None)
@click.option(
    "--preview",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Image to use as preview.png.",
)
@pass_cli_context
def import_archive(
    ctx: CliContext,
    archive: Path,
    target_entity: str,
    name: str,
    internal_root: str,
    description: Optional[str],
    author: Optional[str],
    category_tag: Optional[str],
    preview: Optional[Path],
) -> None:
    """Extract an archive folder into the mods folder and catalog it."""
    with reported_errors():
        asset = ArchiveImporter(ctx.catalog).import_archive(
            archive,
            target_entity,
            internal_root,
            name,
            description=description,
            author=author,
            category_tag=category_tag,
            preview_path=preview,
        )
    click.echo(asset.relative_path)


@click.command("read-entry")
@click.argument("archive", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("internal_path")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to this file instead of stdout.",
)
def read_entry(archive: Path, internal_path: str, output: Optional[Path]) -> None:
    """Dump the raw bytes of one archive entry."""
    with reported_errors():
        data = ArchiveImporter.read_archive_entry(archive, internal_path)
    if output is not None:
        output.write_bytes(data)
    else:
        click.get_binary_stream("stdout").write(data)
