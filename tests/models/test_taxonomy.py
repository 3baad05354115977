from pathlib import Path

import pytest

from modcatalog.models.taxonomy import (
    EntityDefinition,
    TaxonomyStore,
    other_entity_slug,
    read_taxonomy_definition,
)
from modcatalog.utils.exception import ConfigError

BUNDLED_TAXONOMY = (
    Path(__file__).resolve().parents[2] / "modcatalog" / "data" / "base_entities.toml"
)


def test_read_bundled_taxonomy() -> None:
    definitions = read_taxonomy_definition(BUNDLED_TAXONOMY)
    assert "characters" in definitions
    characters = definitions["characters"]
    assert characters.name == "Characters"
    slugs = [entity.slug for entity in characters.entities]
    assert "raiden-shogun" in slugs


def test_read_taxonomy_preserves_document_order(tmp_path: Path) -> None:
    path = tmp_path / "taxonomy.toml"
    path.write_text(
        '[zeta]\nname = "Zeta"\n\n[alpha]\nname = "Alpha"\n'
        '[[alpha.entities]]\nname = "One"\nslug = "one"\nbase_image = "one.png"\n'
    )
    definitions = read_taxonomy_definition(path)
    assert list(definitions) == ["zeta", "alpha"]
    assert definitions["zeta"].entities == []
    assert definitions["alpha"].entities[0].base_image == "one.png"


def test_read_taxonomy_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        read_taxonomy_definition(tmp_path / "nope.toml")


def test_read_taxonomy_malformed(tmp_path: Path) -> None:
    path = tmp_path / "bad.toml"
    path.write_text("[characters]\nname = 42\n")
    with pytest.raises(ConfigError):
        read_taxonomy_definition(path)

    path.write_text("this is not toml [")
    with pytest.raises(ConfigError):
        read_taxonomy_definition(path)


def test_entity_details_as_text() -> None:
    assert EntityDefinition(name="A", slug="a").details_as_text() == "{}"
    assert EntityDefinition(name="A", slug="a", details='{"x": 1}').details_as_text() == '{"x": 1}'
    assert (
        EntityDefinition(name="A", slug="a", details={"x": 1}).details_as_text()
        == '{"x":1}'
    )


def test_other_entity_slug() -> None:
    assert other_entity_slug("weapons") == "weapons-other"


def test_store_matching() -> None:
    store = TaxonomyStore(
        [(1, "characters", "Characters")],
        [(1, "raiden-shogun", "Raiden"), (2, "nahida", "Nahida")],
    )
    assert store.match_entity("nahida") == "nahida"
    assert store.match_entity("RAIDEN") == "raiden-shogun"
    assert store.match_entity("Raiden-Shogun") is None
    assert store.match_category("CHARACTERS") == "characters"
    assert store.match_category("weapons") is None
    assert store.entity_id("nahida") == 2
    assert store.entity_id("missing") is None
    assert store.has_category("characters")


def test_store_name_collision_last_wins() -> None:
    store = TaxonomyStore([], [(1, "a", "Same"), (2, "b", "same")])
    assert store.match_entity("SAME") == "b"
