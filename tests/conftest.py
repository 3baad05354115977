import zipfile
from pathlib import Path
from typing import Callable, Generator

import pytest
from PySide6.QtCore import QCoreApplication

from modcatalog.controllers.catalog_db_controller import CatalogDbController
from modcatalog.models.taxonomy import (
    CategoryDefinition,
    EntityDefinition,
    TaxonomyDefinition,
)
from modcatalog.utils.constants import DB_NAME, SETTINGS_KEY_MODS_FOLDER

DEFAULT_INI = "[Mod]\nName=Test\nAuthor=Abc\n"

MakeMod = Callable[..., Path]
MakeZip = Callable[..., Path]


def sample_taxonomy() -> TaxonomyDefinition:
    return {
        "characters": CategoryDefinition(
            name="Characters",
            entities=[
                EntityDefinition(name="Raiden", slug="raiden-shogun"),
                EntityDefinition(
                    name="Nahida",
                    slug="nahida",
                    description="Dendro Archon",
                    details={"element": "Dendro"},
                ),
            ],
        ),
        "weapons": CategoryDefinition(
            name="Weapons",
            entities=[EntityDefinition(name="Swords", slug="swords")],
        ),
    }


@pytest.fixture()
def taxonomy() -> TaxonomyDefinition:
    return sample_taxonomy()


@pytest.fixture()
def catalog(
    tmp_path: Path, taxonomy: TaxonomyDefinition
) -> Generator[CatalogDbController, None, None]:
    controller = CatalogDbController(tmp_path / "data" / DB_NAME)
    controller.create_schema()
    controller.seed_taxonomy(taxonomy)
    yield controller
    controller.dispose()


@pytest.fixture()
def mods_root(tmp_path: Path, catalog: CatalogDbController) -> Path:
    root = tmp_path / "mods"
    root.mkdir()
    catalog.set_setting(SETTINGS_KEY_MODS_FOLDER, str(root))
    return root


@pytest.fixture()
def make_mod() -> MakeMod:
    """Create a mod folder with a descriptor and optional extra files."""

    def _make_mod(
        folder: Path,
        ini_text: str | None = DEFAULT_INI,
        ini_name: str = "mod.ini",
        files: dict[str, bytes] | None = None,
    ) -> Path:
        folder.mkdir(parents=True, exist_ok=True)
        if ini_text is not None:
            (folder / ini_name).write_text(ini_text, encoding="utf-8")
        for name, data in (files or {}).items():
            target = folder / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        return folder

    return _make_mod


@pytest.fixture()
def make_zip(tmp_path: Path) -> MakeZip:
    """Create a zip archive from {entry name: bytes}; names ending in / are directories."""

    def _make_zip(name: str, entries: dict[str, bytes]) -> Path:
        archive = tmp_path / "archives" / name
        archive.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive, "w") as zf:
            for entry_name, data in entries.items():
                if entry_name.endswith("/"):
                    zf.writestr(zipfile.ZipInfo(entry_name), b"")
                else:
                    zf.writestr(entry_name, data)
        return archive

    return _make_zip


@pytest.fixture(scope="function")
def qapp() -> Generator[QCoreApplication, None, None]:
    """Create a QCoreApplication instance for Qt tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app
