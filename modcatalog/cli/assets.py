from pathlib import Path
from typing import Optional

import click

from modcatalog.cli.common import CliContext, pass_cli_context, reported_errors
from modcatalog.controllers.asset_controller import AssetController
from modcatalog.utils.exception import CancelledError


@click.command("assets")
@click.argument("entity_slug")
@pass_cli_context
def assets(ctx: CliContext, entity_slug: str) -> None:
    """List the mods of an entity with their current state."""
    with reported_errors():
        views = AssetController(ctx.catalog).list_assets(entity_slug)
    for view in views:
        state = "enabled" if view.is_enabled else "disabled"
        click.echo(f"{view.id}\t{state}\t{view.name}\t{view.folder_name}")


@click.command("toggle")
@click.argument("asset_id", type=int)
@pass_cli_context
def toggle(ctx: CliContext, asset_id: int) -> None:
    """Enable a disabled mod or disable an enabled one."""
    with reported_errors():
        enabled = AssetController(ctx.catalog).toggle(asset_id)
    click.echo("enabled" if enabled else "disabled")


@click.command("image-path")
@click.argument("asset_id", type=int)
@pass_cli_context
def image_path(ctx: CliContext, asset_id: int) -> None:
    """Print the absolute path of a mod's preview image."""
    with reported_errors():
        path = AssetController(ctx.catalog).get_asset_image_path(asset_id)
    click.echo(str(path) if path is not None else "")


@click.command("count")
@pass_cli_context
def count(ctx: CliContext) -> None:
    """Print the total number of cataloged mods."""
    with reported_errors():
        total = AssetController(ctx.catalog).total_asset_count()
    click.echo(str(total))


@click.command("update")
@click.argument("asset_id", type=int)
@click.option("--name", required=True, help="Display name.")
@click.option("--description", default=None)
@click.option("--author", default=None)
@click.option("--category-tag", default=None)
@click.option(
    "--image",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Image copied into the mod folder as preview.png.",
)
@click.option(
    "--entity", "target_entity", default=None, help="Move the mod to this entity."
)
@pass_cli_context
def update(
    ctx: CliContext,
    asset_id: int,
    name: str,
    description: Optional[str],
    author: Optional[str],
    category_tag: Optional[str],
    image: Optional[Path],
    target_entity: Optional[str],
) -> None:
    """Update a mod's metadata, relocating it when --entity differs."""
    with reported_errors():
        asset = AssetController(ctx.catalog).update_asset(
            asset_id,
            name,
            description=description,
            author=author,
            category_tag=category_tag,
            image_path=image,
            target_entity_slug=target_entity,
        )
    click.echo(asset.relative_path)


@click.command("delete")
@click.argument("asset_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@pass_cli_context
def delete(ctx: CliContext, asset_id: int, yes: bool) -> None:
    """Delete a mod's folder and catalog entry."""
    with reported_errors():
        if not yes and not click.confirm("Delete the mod folder and its catalog entry?"):
            raise CancelledError("Deletion cancelled.")
        AssetController(ctx.catalog).delete_asset(asset_id)
