"""
Main CLI entry point for ModCatalog.

This module defines the Click command group and registers all subcommands.
"""

from pathlib import Path
from typing import Optional

import click

from modcatalog.cli.archive import analyze, import_archive, read_entry
from modcatalog.cli.assets import assets, count, delete, image_path, toggle, update
from modcatalog.cli.common import CliContext
from modcatalog.cli.scan import scan
from modcatalog.cli.settings import get_setting, open_root, set_root, set_setting
from modcatalog.cli.taxonomy import categories, entities, entity
from modcatalog.utils.app_info import AppInfo
from modcatalog.utils.constants import DATA_DIR_ENV_VAR


@click.group()
@click.version_option(version=AppInfo().app_version, prog_name="ModCatalog")
@click.option(
    "--data-dir",
    envvar=DATA_DIR_ENV_VAR,
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help=f"Folder holding the catalog database. Can also be set via {DATA_DIR_ENV_VAR}.",
)
@click.option(
    "--taxonomy",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Taxonomy definition (TOML). Defaults to the bundled one.",
)
@click.pass_context
def cli(ctx: click.Context, data_dir: Optional[Path], taxonomy: Optional[Path]) -> None:
    """ModCatalog - catalog and manage mod folders

    Keeps a catalog of the mods inside a managed folder, enables and
    disables them by renaming, and imports new ones from zip archives.
    """
    ctx.obj = CliContext(data_dir, taxonomy)


# Register subcommands
for command in (
    set_root,
    get_setting,
    set_setting,
    open_root,
    categories,
    entities,
    entity,
    assets,
    toggle,
    image_path,
    count,
    scan,
    update,
    delete,
    analyze,
    import_archive,
    read_entry,
):
    cli.add_command(command)


if __name__ == "__main__":
    cli()
