from pathlib import Path
from typing import Any

import msgspec
from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from modcatalog.models.catalog_db import Category, Entity
from modcatalog.utils.constants import DEFAULT_ENTITY_DETAILS, OTHER_ENTITY_SUFFIX
from modcatalog.utils.exception import ConfigError


class EntityDefinition(msgspec.Struct, omit_defaults=True):
    name: str
    slug: str
    description: str | None = None
    details: str | dict[str, Any] | None = None
    base_image: str | None = None

    def details_as_text(self) -> str:
        """The details blob as stored in the catalog (JSON text)."""
        if self.details is None:
            return DEFAULT_ENTITY_DETAILS
        if isinstance(self.details, str):
            return self.details
        return msgspec.json.encode(self.details).decode("utf-8")


class CategoryDefinition(msgspec.Struct):
    name: str
    entities: list[EntityDefinition] = msgspec.field(default_factory=list)


# category slug -> definition, in document order
TaxonomyDefinition = dict[str, CategoryDefinition]


def read_taxonomy_definition(path: Path) -> TaxonomyDefinition:
    """
    Read the taxonomy definition from a TOML file.

    :param path: The path to the definition file.
    :return: The parsed definition.
    :raises ConfigError: If the file is missing or malformed.
    """
    if not path.exists() or not path.is_file():
        raise ConfigError(f"Taxonomy definition not found at path: {path}")

    try:
        definitions = msgspec.toml.decode(path.read_bytes(), type=TaxonomyDefinition)
    except (msgspec.DecodeError, msgspec.ValidationError) as e:
        logger.error(f"Failed to parse taxonomy definition {path}: {e}")
        raise ConfigError(f"Failed to parse {path.name}: {e}") from e

    logger.info(f"Loaded {len(definitions)} categories from {path}")
    return definitions


def other_entity_slug(category_slug: str) -> str:
    return f"{category_slug}{OTHER_ENTITY_SUFFIX}"


class TaxonomyStore:
    """
    Lookup tables over the seeded taxonomy.

    Built once per operation batch from the catalog and never refreshed; a
    scan or an analysis works against the taxonomy as it was when it started.
    """

    def __init__(
        self,
        categories: list[tuple[int, str, str]],
        entities: list[tuple[int, str, str]],
    ) -> None:
        """
        :param categories: (id, slug, name) rows
        :param entities: (id, slug, name) rows
        """
        self.category_slug_to_id: dict[str, int] = {}
        self.lowercase_category_name_to_slug: dict[str, str] = {}
        for category_id, slug, name in categories:
            self.category_slug_to_id[slug] = category_id
            self.lowercase_category_name_to_slug[name.lower()] = slug

        self.entity_slug_to_id: dict[str, int] = {}
        self.lowercase_entity_name_to_slug: dict[str, str] = {}
        for entity_id, slug, name in entities:
            self.entity_slug_to_id[slug] = entity_id
            # Case-insensitive name collisions: the last entity wins
            self.lowercase_entity_name_to_slug[name.lower()] = slug

    @classmethod
    def from_session(cls, session: Session) -> "TaxonomyStore":
        categories = [
            (row.id, row.slug, row.name)
            for row in session.execute(
                select(Category.id, Category.slug, Category.name)
            )
        ]
        entities = [
            (row.id, row.slug, row.name)
            for row in session.execute(select(Entity.id, Entity.slug, Entity.name))
        ]
        store = cls(categories, entities)
        logger.debug(
            f"Taxonomy store loaded ({len(categories)} categories, {len(entities)} entities)"
        )
        return store

    def match_entity(self, token: str) -> str | None:
        """Exact slug match, then case-insensitive name match."""
        if token in self.entity_slug_to_id:
            return token
        return self.lowercase_entity_name_to_slug.get(token.lower())

    def match_category(self, token: str) -> str | None:
        """Exact slug match, then case-insensitive name match."""
        if token in self.category_slug_to_id:
            return token
        return self.lowercase_category_name_to_slug.get(token.lower())

    def entity_id(self, slug: str) -> int | None:
        return self.entity_slug_to_id.get(slug)

    def has_category(self, slug: str) -> bool:
        return slug in self.category_slug_to_id

    @property
    def category_slugs(self) -> list[str]:
        return sorted(self.category_slug_to_id)
