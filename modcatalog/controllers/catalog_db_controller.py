from contextlib import contextmanager
from pathlib import Path
from threading import RLock
from typing import Any, Iterator

from loguru import logger
from sqlalchemy import case, create_engine, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from modcatalog.models.catalog_db import Asset, Base, Category, Entity, Setting
from modcatalog.models.structures import CategoryView, EntityView
from modcatalog.models.taxonomy import (
    TaxonomyDefinition,
    TaxonomyStore,
    other_entity_slug,
)
from modcatalog.utils.constants import (
    DEFAULT_ENTITY_DETAILS,
    DEFAULT_FALLBACK_CATEGORY,
    OTHER_ENTITY_DESCRIPTION,
    OTHER_ENTITY_NAME,
    OTHER_ENTITY_SUFFIX,
    SETTINGS_KEY_DEFAULT_CATEGORY,
    SETTINGS_KEY_MODS_FOLDER,
)
from modcatalog.utils.exception import (
    ConfigError,
    ConflictError,
    NotFoundError,
    PersistenceError,
)


class CatalogDbController:
    """
    Owner of one catalog handle.

    All access goes through locked_session(), which serializes callers on a
    single re-entrant lock. A worker that must not hold that lock for long
    (the scanner) opens its own handle with open_private_handle().
    """

    def __init__(self, db: Path | str) -> None:
        # Ensure parent directory exists before opening SQLite file
        self.db_path = Path(db) if not isinstance(db, Path) else db
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                f"Failed to create database directory for {self.db_path}: {e}"
            ) from e

        self.engine = create_engine(f"sqlite+pysqlite:///{self.db_path}")
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._lock = RLock()

    @contextmanager
    def locked_session(self) -> Iterator[Session]:
        """
        Acquire the handle lock and yield a session.

        The session is committed when the block exits cleanly and rolled
        back otherwise. Store failures are raised as PersistenceError, and
        constraint violations as ConflictError.
        """
        with self._lock:
            session = self.Session()
            try:
                yield session
                session.commit()
            except IntegrityError as e:
                session.rollback()
                logger.warning(f"Catalog constraint violated: {e.orig}")
                raise ConflictError(f"Duplicate catalog entry: {e.orig}") from e
            except SQLAlchemyError as e:
                session.rollback()
                logger.exception(f"Catalog operation failed: {e}")
                raise PersistenceError(f"Catalog operation failed: {e}") from e
            except BaseException:
                session.rollback()
                raise
            finally:
                session.close()

    def open_private_handle(self) -> "CatalogDbController":
        """A new, independent handle on the same database file."""
        return CatalogDbController(self.db_path)

    def dispose(self) -> None:
        self.engine.dispose()

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create catalog schema: {e}") from e

    def seed_taxonomy(self, definitions: TaxonomyDefinition) -> None:
        """
        Insert categories and entities that are not yet in the catalog.

        Existing rows are never updated or removed. Every category gets its
        synthetic "other" entity.

        :param definitions: The parsed taxonomy definition.
        """
        added_categories = 0
        added_entities = 0
        with self.locked_session() as session:
            for category_slug, definition in definitions.items():
                category = session.scalars(
                    select(Category).where(Category.slug == category_slug)
                ).first()
                if category is None:
                    category = Category(name=definition.name, slug=category_slug)
                    session.add(category)
                    session.flush()
                    added_categories += 1

                existing = set(
                    session.scalars(
                        select(Entity.slug).where(Entity.category_id == category.id)
                    )
                )
                other_slug = other_entity_slug(category_slug)
                if other_slug not in existing:
                    session.add(
                        Entity(
                            category_id=category.id,
                            name=OTHER_ENTITY_NAME,
                            slug=other_slug,
                            description=OTHER_ENTITY_DESCRIPTION,
                            details=DEFAULT_ENTITY_DETAILS,
                        )
                    )
                    existing.add(other_slug)
                    added_entities += 1

                for entity in definition.entities:
                    if entity.slug in existing:
                        continue
                    # Slugs are global; an entity seeded under another category stays there
                    if session.scalars(
                        select(Entity.id).where(Entity.slug == entity.slug)
                    ).first():
                        logger.warning(
                            f"Entity slug '{entity.slug}' already exists outside '{category_slug}', skipping"
                        )
                        continue
                    session.add(
                        Entity(
                            category_id=category.id,
                            name=entity.name,
                            slug=entity.slug,
                            description=entity.description,
                            details=entity.details_as_text(),
                            base_image=entity.base_image,
                        )
                    )
                    existing.add(entity.slug)
                    added_entities += 1

        logger.info(
            f"Taxonomy seeded: {added_categories} new categories, {added_entities} new entities"
        )

    def taxonomy_store(self) -> TaxonomyStore:
        with self.locked_session() as session:
            return TaxonomyStore.from_session(session)

    # Settings

    def get_setting(self, key: str) -> str | None:
        with self.locked_session() as session:
            setting = session.get(Setting, key)
            return setting.value if setting is not None else None

    def set_setting(self, key: str, value: str) -> None:
        with self.locked_session() as session:
            session.merge(Setting(key=key, value=value))
        logger.info(f"Setting '{key}' updated to '{value}'")

    def get_mods_root(self) -> Path:
        """
        :raises ConfigError: If the managed root has not been configured.
        """
        value = self.get_setting(SETTINGS_KEY_MODS_FOLDER)
        if value is None or not value.strip():
            raise ConfigError("Mods folder path not set in settings.")
        return Path(value.strip())

    def get_default_category(self) -> str:
        value = self.get_setting(SETTINGS_KEY_DEFAULT_CATEGORY)
        if value is None or not value.strip():
            return DEFAULT_FALLBACK_CATEGORY
        return value.strip()

    # Taxonomy reads

    def list_categories(self) -> list[CategoryView]:
        with self.locked_session() as session:
            rows = session.scalars(select(Category).order_by(Category.name))
            return [CategoryView(id=c.id, name=c.name, slug=c.slug) for c in rows]

    def _category_id(self, session: Session, category_slug: str) -> int:
        category_id = session.scalars(
            select(Category.id).where(Category.slug == category_slug)
        ).first()
        if category_id is None:
            raise NotFoundError(f"Category '{category_slug}' not found")
        return category_id

    def list_entities(
        self, category_slug: str, with_counts: bool = False
    ) -> list[EntityView]:
        """
        Entities of a category, "other" entities first, then by name.

        :param category_slug: The category to list.
        :param with_counts: Include details and the number of cataloged mods.
        :raises NotFoundError: If the category does not exist.
        """
        other_first = case(
            (Entity.slug.like(f"%{OTHER_ENTITY_SUFFIX}"), 0), else_=1
        )
        with self.locked_session() as session:
            category_id = self._category_id(session, category_slug)
            if not with_counts:
                rows = session.scalars(
                    select(Entity)
                    .where(Entity.category_id == category_id)
                    .order_by(other_first, Entity.name)
                )
                return [
                    EntityView(
                        id=e.id, category_id=e.category_id, name=e.name, slug=e.slug
                    )
                    for e in rows
                ]

            counted = session.execute(
                select(Entity, func.count(Asset.id))
                .outerjoin(Asset, Asset.entity_id == Entity.id)
                .where(Entity.category_id == category_id)
                .group_by(Entity.id)
                .order_by(other_first, Entity.name)
            )
            return [self._entity_view(e, count) for e, count in counted]

    @staticmethod
    def _entity_view(entity: Entity, mod_count: int) -> EntityView:
        return EntityView(
            id=entity.id,
            category_id=entity.category_id,
            name=entity.name,
            slug=entity.slug,
            description=entity.description,
            details=entity.details,
            base_image=entity.base_image,
            mod_count=mod_count,
        )

    def get_entity(self, entity_slug: str) -> EntityView:
        """
        :raises NotFoundError: If the entity does not exist.
        """
        with self.locked_session() as session:
            row = session.execute(
                select(Entity, func.count(Asset.id))
                .outerjoin(Asset, Asset.entity_id == Entity.id)
                .where(Entity.slug == entity_slug)
                .group_by(Entity.id)
            ).first()
            if row is None:
                raise NotFoundError(f"Entity '{entity_slug}' not found")
            return self._entity_view(row[0], row[1])

    def get_entity_target(self, entity_slug: str) -> tuple[int, str]:
        """
        Where mods of an entity live.

        :return: (entity id, owning category slug)
        :raises NotFoundError: If the entity does not exist.
        """
        with self.locked_session() as session:
            row = session.execute(
                select(Entity.id, Category.slug)
                .join(Category, Entity.category_id == Category.id)
                .where(Entity.slug == entity_slug)
            ).first()
            if row is None:
                raise NotFoundError(f"Target entity '{entity_slug}' not found.")
            return row[0], row[1]

    def find_category_slug(self, token: str) -> str | None:
        """Case-insensitive slug or name match."""
        lowered = token.strip().lower()
        with self.locked_session() as session:
            return session.scalars(
                select(Category.slug)
                .where(
                    (func.lower(Category.slug) == lowered)
                    | (func.lower(Category.name) == lowered)
                )
                .limit(1)
            ).first()

    def find_entity_slug_in_category(self, category_slug: str, token: str) -> str | None:
        """Case-insensitive slug or name match, limited to one category."""
        lowered = token.strip().lower()
        with self.locked_session() as session:
            return session.scalars(
                select(Entity.slug)
                .join(Category, Entity.category_id == Category.id)
                .where(Category.slug == category_slug)
                .where(
                    (func.lower(Entity.slug) == lowered)
                    | (func.lower(Entity.name) == lowered)
                )
                .limit(1)
            ).first()

    # Assets

    def get_asset(self, asset_id: int) -> Asset:
        """
        :raises NotFoundError: If no asset has this id.
        """
        with self.locked_session() as session:
            asset = session.get(Asset, asset_id)
            if asset is None:
                raise NotFoundError(f"Asset with ID {asset_id} not found.")
            return asset

    @staticmethod
    def find_asset(session: Session, entity_id: int, relative_path: str) -> Asset | None:
        return session.scalars(
            select(Asset).where(
                Asset.entity_id == entity_id, Asset.relative_path == relative_path
            )
        ).first()

    def list_assets_for_entity(self, entity_slug: str) -> list[Asset]:
        """
        :raises NotFoundError: If the entity does not exist.
        """
        with self.locked_session() as session:
            entity_id = session.scalars(
                select(Entity.id).where(Entity.slug == entity_slug)
            ).first()
            if entity_id is None:
                raise NotFoundError(f"Entity '{entity_slug}' not found")
            return list(
                session.scalars(
                    select(Asset).where(Asset.entity_id == entity_id).order_by(Asset.name)
                )
            )

    def add_asset(self, **fields: Any) -> Asset:
        """
        Insert an asset row.

        :raises ConflictError: If the entity already has an asset at this path.
        """
        with self.locked_session() as session:
            if self.find_asset(session, fields["entity_id"], fields["relative_path"]):
                raise ConflictError(
                    f"A mod already exists at path '{fields['relative_path']}' for this entity."
                )
            asset = Asset(**fields)
            session.add(asset)
            session.flush()
        logger.info(f"Cataloged {asset}")
        return asset

    def update_asset(self, asset_id: int, **fields: Any) -> Asset:
        """
        :raises NotFoundError: If no asset has this id.
        """
        with self.locked_session() as session:
            asset = session.get(Asset, asset_id)
            if asset is None:
                raise NotFoundError(f"Asset with ID {asset_id} not found.")
            for key, value in fields.items():
                setattr(asset, key, value)
        logger.info(f"Updated {asset}")
        return asset

    def delete_asset(self, asset_id: int) -> bool:
        """
        :return: True if a row was removed.
        """
        with self.locked_session() as session:
            asset = session.get(Asset, asset_id)
            if asset is None:
                return False
            session.delete(asset)
        logger.info(f"Removed catalog row for asset {asset_id}")
        return True

    def count_assets(self) -> int:
        with self.locked_session() as session:
            return session.scalar(select(func.count(Asset.id))) or 0
