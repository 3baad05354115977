"""
Shared plumbing for the command-line boundary.

Every command boots the catalog the same way (schema plus idempotent
taxonomy seed) and reports failures as a single red line with exit status 1.
"""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click
from loguru import logger

from modcatalog.controllers.catalog_db_controller import CatalogDbController
from modcatalog.models.taxonomy import read_taxonomy_definition
from modcatalog.utils.app_info import AppInfo
from modcatalog.utils.constants import DB_NAME
from modcatalog.utils.exception import ModCatalogError


@contextmanager
def reported_errors() -> Iterator[None]:
    try:
        yield
    except ModCatalogError as e:
        logger.error(e.message)
        click.secho(f"Error: {e.message}", fg="red", err=True)
        sys.exit(1)


def boot_catalog(
    data_dir: Path | None = None, taxonomy_file: Path | None = None
) -> CatalogDbController:
    """
    Open the catalog and make sure schema and taxonomy are in place.

    :param data_dir: Folder holding the catalog database. Defaults to the
        application storage folder.
    :param taxonomy_file: Taxonomy definition. Defaults to the bundled one.
    :raises ConfigError: If the taxonomy definition cannot be read.
    :raises PersistenceError: If the catalog cannot be created.
    """
    db_path = data_dir / DB_NAME if data_dir is not None else AppInfo().catalog_db
    definitions = read_taxonomy_definition(taxonomy_file or AppInfo().base_taxonomy_file)
    catalog = CatalogDbController(db_path)
    catalog.create_schema()
    catalog.seed_taxonomy(definitions)
    logger.debug(f"Catalog ready at {db_path}")
    return catalog


class CliContext:
    def __init__(self, data_dir: Path | None, taxonomy_file: Path | None) -> None:
        self.data_dir = data_dir
        self.taxonomy_file = taxonomy_file
        self._catalog: CatalogDbController | None = None

    @property
    def catalog(self) -> CatalogDbController:
        if self._catalog is None:
            with reported_errors():
                self._catalog = boot_catalog(self.data_dir, self.taxonomy_file)
            click.get_current_context().call_on_close(self._catalog.dispose)
        return self._catalog


pass_cli_context = click.make_pass_decorator(CliContext)
