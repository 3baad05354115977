import shutil
from pathlib import Path, PurePosixPath

from loguru import logger

from modcatalog.controllers.catalog_db_controller import CatalogDbController
from modcatalog.models import mod_state
from modcatalog.models.catalog_db import Asset
from modcatalog.models.structures import AssetView
from modcatalog.utils.constants import TARGET_IMAGE_FILENAME
from modcatalog.utils.event_bus import EventBus
from modcatalog.utils.exception import (
    ConflictError,
    InvalidInputError,
    ModCatalogError,
    NotFoundError,
)
from modcatalog.utils.generic import platform_specific_open, rmtree
from modcatalog.utils.saga import Saga


class AssetController:
    """
    Operations on cataloged mods.

    Enabled state and on-disk folder names are always re-derived from the
    filesystem; nothing here trusts an earlier answer.
    """

    def __init__(self, catalog: CatalogDbController) -> None:
        self.catalog = catalog

    def list_assets(self, entity_slug: str) -> list[AssetView]:
        """
        Mods of an entity, annotated with their current on-disk state.

        Mods whose folder is missing in both forms are left out.
        """
        root = self.catalog.get_mods_root()
        views: list[AssetView] = []
        for asset in self.catalog.list_assets_for_entity(entity_slug):
            folder_name = mod_state.current_folder_name(root, asset.relative_path)
            if folder_name is None:
                logger.warning(
                    f"Mod folder for asset ID {asset.id} not found on disk ({asset.relative_path}). Skipping asset."
                )
                continue
            views.append(
                AssetView(
                    id=asset.id,
                    entity_id=asset.entity_id,
                    name=asset.name,
                    folder_name=folder_name,
                    # Only the enabled form matches the canonical path
                    is_enabled=folder_name == asset.relative_path,
                    description=asset.description,
                    image_filename=asset.image_filename,
                    author=asset.author,
                    category_tag=asset.category_tag,
                )
            )
        return views

    def toggle(self, asset_id: int) -> bool:
        """
        Flip a mod between enabled and disabled.

        :return: The new enabled state.
        :raises NotFoundError: If the asset or its folder is missing.
        """
        asset = self.catalog.get_asset(asset_id)
        root = self.catalog.get_mods_root()
        logger.info(f"USER ACTION: toggling asset {asset_id} ({asset.relative_path})")
        return mod_state.toggle(root, asset.relative_path)

    def get_asset_image_path(self, asset_id: int) -> Path | None:
        """
        Absolute path of a mod's preview image in its current folder.

        :return: The image path, or None if the mod has no usable image.
        :raises NotFoundError: If the asset or its folder is missing.
        """
        asset = self.catalog.get_asset(asset_id)
        root = self.catalog.get_mods_root()
        folder = mod_state.resolve_existing(root, asset.relative_path).path
        if not asset.image_filename:
            return None
        image = folder / asset.image_filename  # type: ignore[operator]
        if not image.is_file():
            logger.warning(f"Image file '{asset.image_filename}' not found in {folder}")
            return None
        return image

    def update_asset(
        self,
        asset_id: int,
        name: str,
        description: str | None = None,
        author: str | None = None,
        category_tag: str | None = None,
        image_path: str | Path | None = None,
        target_entity_slug: str | None = None,
    ) -> Asset:
        """
        Update a mod's metadata, moving it when a different entity is given.

        The folder keeps its enabled/disabled form when moved. A new image is
        copied to the mod's final folder as preview.png.

        :raises InvalidInputError: If name is empty.
        :raises NotFoundError: If the asset, its folder, the target entity or
            the image is missing.
        :raises ConflictError: If the relocation destination already exists.
        :raises CompensationError: If moving the folder back also failed.
        """
        if not name.strip():
            raise InvalidInputError("Mod Name cannot be empty.")
        image_source = Path(image_path) if image_path else None
        if image_source is not None and not image_source.is_file():
            raise NotFoundError(f"Selected image file does not exist: {image_source}")

        asset = self.catalog.get_asset(asset_id)
        root = self.catalog.get_mods_root()
        current_path = asset.relative_path
        final_entity_id = asset.entity_id
        final_path = current_path

        saga = Saga("update asset")
        if target_entity_slug:
            new_entity_id, category_slug = self.catalog.get_entity_target(target_entity_slug)
            if new_entity_id != asset.entity_id:
                leaf = PurePosixPath(current_path).name
                final_entity_id = new_entity_id
                final_path = f"{category_slug}/{target_entity_slug}/{leaf}"
                with self.catalog.locked_session() as session:
                    if CatalogDbController.find_asset(session, new_entity_id, final_path):
                        raise ConflictError(
                            f"A mod already exists at path '{final_path}' for this entity."
                        )
                logger.info(
                    f"USER ACTION: relocating asset {asset_id} from {current_path} to {final_path}"
                )
                saga.add_step(
                    "move folder",
                    lambda: mod_state.move_to_new_location(root, current_path, final_path),
                    lambda: mod_state.move_to_new_location(root, final_path, current_path),
                )

        image_filename = asset.image_filename
        # (written path, previous bytes or None if the file did not exist)
        replaced_image: tuple[Path, bytes | None] | None = None

        def apply_image() -> None:
            nonlocal image_filename, replaced_image
            if image_source is None:
                return
            target = mod_state.resolve_existing(root, final_path).path / TARGET_IMAGE_FILENAME  # type: ignore[operator]
            previous = target.read_bytes() if target.is_file() else None
            shutil.copyfile(image_source, target)
            replaced_image = (target, previous)
            image_filename = TARGET_IMAGE_FILENAME

        def restore_image() -> None:
            if replaced_image is None:
                return
            target, previous = replaced_image
            if previous is None:
                target.unlink(missing_ok=True)
            else:
                target.write_bytes(previous)
            logger.info(f"Restored previous preview image at {target}")

        saga.add_step("apply image", apply_image, restore_image)
        saga.add_step(
            "update catalog row",
            lambda: self.catalog.update_asset(
                asset_id,
                name=name.strip(),
                description=description,
                author=author,
                category_tag=category_tag,
                image_filename=image_filename,
                entity_id=final_entity_id,
                relative_path=final_path,
            ),
        )
        try:
            updated: Asset = saga.run()[-1]
        except OSError as e:
            raise ModCatalogError(f"Failed to update asset {asset_id}: {e}") from e

        EventBus().catalog_changed.emit()
        return updated

    def delete_asset(self, asset_id: int) -> None:
        """
        Delete a mod's folder (whichever form exists) and its catalog row.

        A folder that is already gone is not an error.

        :raises NotFoundError: If no asset has this id.
        """
        asset = self.catalog.get_asset(asset_id)
        root = self.catalog.get_mods_root()
        resolved = mod_state.resolve(root, asset.relative_path)
        logger.info(f"USER ACTION: deleting asset {asset_id} ({asset.relative_path})")
        if resolved.path is None:
            logger.warning(
                f"Mod folder not found on disk for asset ID {asset_id}. Proceeding with catalog deletion."
            )
        else:
            try:
                rmtree(resolved.path)
            except OSError as e:
                raise ModCatalogError(
                    f"Failed to delete mod folder '{resolved.path}': {e}"
                ) from e

        self.catalog.delete_asset(asset_id)
        EventBus().catalog_changed.emit()

    def open_mods_folder(self) -> None:
        """
        :raises NotFoundError: If the managed root is not a directory.
        """
        root = self.catalog.get_mods_root()
        if not root.is_dir():
            raise NotFoundError(
                f"Configured mods folder does not exist or is not a directory: {root}"
            )
        platform_specific_open(root)

    @staticmethod
    def read_binary_file(path: str | Path) -> bytes:
        path = Path(path)
        if not path.is_file():
            raise NotFoundError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise ModCatalogError(f"Failed to read file: {e}") from e

    def total_asset_count(self) -> int:
        return self.catalog.count_assets()
