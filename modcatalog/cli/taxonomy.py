import click
import msgspec

from modcatalog.cli.common import CliContext, pass_cli_context, reported_errors


@click.command("categories")
@pass_cli_context
def categories(ctx: CliContext) -> None:
    """List categories."""
    with reported_errors():
        rows = ctx.catalog.list_categories()
    for category in rows:
        click.echo(f"{category.slug}\t{category.name}")


@click.command("entities")
@click.argument("category_slug")
@click.option("--counts", is_flag=True, help="Include the number of mods per entity.")
@pass_cli_context
def entities(ctx: CliContext, category_slug: str, counts: bool) -> None:
    """List the entities of a category."""
    with reported_errors():
        rows = ctx.catalog.list_entities(category_slug, with_counts=counts)
    for entity in rows:
        line = f"{entity.slug}\t{entity.name}"
        if counts:
            line += f"\t{entity.mod_count}"
        click.echo(line)


@click.command("entity")
@click.argument("entity_slug")
@pass_cli_context
def entity(ctx: CliContext, entity_slug: str) -> None:
    """Show one entity as JSON."""
    with reported_errors():
        view = ctx.catalog.get_entity(entity_slug)
    click.echo(msgspec.json.format(msgspec.json.encode(view)).decode("utf-8"))
