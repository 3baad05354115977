from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String, unique=True, nullable=False)

    entities: Mapped[list["Entity"]] = relationship(back_populates="category")

    def __repr__(self) -> str:
        return f"Category: {self.slug} ({self.name})"


class Entity(Base):
    __tablename__ = "entities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Opaque JSON blob from the taxonomy definition
    details: Mapped[str | None] = mapped_column(Text, default="{}", nullable=True)
    base_image: Mapped[str | None] = mapped_column(String, nullable=True)

    category: Mapped[Category] = relationship(back_populates="entities")
    assets: Mapped[list["Asset"]] = relationship(back_populates="entity")

    def __repr__(self) -> str:
        return f"Entity: {self.slug} ({self.name}), Category ID: {self.category_id}"


class Asset(Base):
    __tablename__ = "assets"
    __table_args__ = (
        UniqueConstraint("entity_id", "relative_path", name="uq_asset_entity_path"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_id: Mapped[int] = mapped_column(ForeignKey("entities.id"), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Canonical path: no DISABLED_ prefix, forward slashes
    relative_path: Mapped[str] = mapped_column(String, nullable=False)
    image_filename: Mapped[str | None] = mapped_column(String, nullable=True)
    author: Mapped[str | None] = mapped_column(String, nullable=True)
    category_tag: Mapped[str | None] = mapped_column(String, nullable=True)

    entity: Mapped[Entity] = relationship(back_populates="assets")

    def __repr__(self) -> str:
        return f"Asset: {self.id} '{self.name}', Path: {self.relative_path}"


class Setting(Base):
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(String, nullable=False)

    def __repr__(self) -> str:
        return f"Setting: {self.key}={self.value}"
