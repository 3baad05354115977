import shutil
from pathlib import Path, PurePosixPath

from loguru import logger

from modcatalog.controllers.catalog_db_controller import CatalogDbController
from modcatalog.models import mod_state
from modcatalog.models.catalog_db import Asset
from modcatalog.models.deduction import clean_mod_name, is_descriptor_name, parse_descriptor
from modcatalog.models.structures import ArchiveAnalysisResult, ArchiveEntry
from modcatalog.utils.constants import ARCHIVE_PREVIEW_CANDIDATES, TARGET_IMAGE_FILENAME
from modcatalog.utils.event_bus import EventBus
from modcatalog.utils.exception import (
    ConflictError,
    InvalidInputError,
    ModCatalogError,
    NotFoundError,
)
from modcatalog.utils.generic import rmtree, sanitize_folder_name
from modcatalog.utils.saga import Saga
from modcatalog.utils.zip_extractor import (
    extract_subtree,
    iter_archive_entries,
    open_archive,
)
from modcatalog.utils.zip_extractor import read_archive_entry as read_zip_entry


def _parent_of(path: str) -> str:
    parent = str(PurePosixPath(path).parent)
    return "" if parent == "." else parent


class ArchiveImporter:
    """
    Analyze zip archives and import a chosen subtree into the managed root.

    analyze() never mutates anything; its result is meant to be confirmed
    (and corrected) by the user before import_archive() is called.
    """

    def __init__(self, catalog: CatalogDbController) -> None:
        self.catalog = catalog

    def analyze(self, archive_path: str | Path) -> ArchiveAnalysisResult:
        """
        List an archive's entries and guess what it contains.

        :param archive_path: Path to the zip file.
        :return: Annotated entries plus best-effort deductions.
        :raises NotFoundError: If the archive does not exist.
        :raises ArchiveError: If the archive cannot be read.
        """
        archive_path = Path(archive_path)
        logger.info(f"Analyzing archive: {archive_path}")

        entries: list[ArchiveEntry] = []
        descriptors: dict[str, str] = {}
        with open_archive(archive_path) as zipobj:
            for path, is_dir, info in iter_archive_entries(zipobj):
                if not is_dir and is_descriptor_name(path):
                    try:
                        with zipobj.open(info) as src:
                            descriptors[path] = src.read().decode("utf-8-sig", errors="replace")
                    except (OSError, RuntimeError) as e:
                        logger.warning(f"Failed to read content of INI file '{path}': {e}")
                entries.append(ArchiveEntry(path=path, is_dir=is_dir))
        logger.debug(f"Found {len(entries)} entries, {len(descriptors)} INI files")

        dir_index = {entry.path: i for i, entry in enumerate(entries) if entry.is_dir}
        for descriptor_path in descriptors:
            parent = _parent_of(descriptor_path)
            if not parent:
                continue
            index = dir_index.get(parent)
            if index is None:
                logger.warning(
                    f"No directory entry for '{parent}' (parent of '{descriptor_path}'), not marking it as a mod root"
                )
                continue
            entries[index].is_likely_mod_root = True

        files = {entry.path.lower(): entry.path for entry in entries if not entry.is_dir}
        result = ArchiveAnalysisResult(file_path=str(archive_path), entries=entries)

        first_root = next((entry for entry in entries if entry.is_likely_mod_root), None)
        if first_root is not None:
            logger.debug(f"Deducing from first mod root: {first_root.path}")
            result.detected_preview_internal_path = self._find_preview(
                first_root.path, files
            )
            self._deduce_from_root(first_root.path, descriptors, result)

        if not result.deduced_mod_name:
            stem = archive_path.stem
            result.deduced_mod_name = clean_mod_name(stem, stem)

        logger.info(
            f"Analysis of {archive_path.name}: name={result.deduced_mod_name}, "
            f"category={result.deduced_category_slug}, entity={result.deduced_entity_slug}, "
            f"preview={result.detected_preview_internal_path}"
        )
        return result

    @staticmethod
    def _find_preview(root_path: str, files: dict[str, str]) -> str | None:
        for candidate in ARCHIVE_PREVIEW_CANDIDATES:
            match = files.get(f"{root_path}/{candidate}".lower())
            if match is not None:
                return match
        return None

    def _deduce_from_root(
        self, root_path: str, descriptors: dict[str, str], result: ArchiveAnalysisResult
    ) -> None:
        own = sorted(path for path in descriptors if _parent_of(path) == root_path)
        if not own:
            return
        metadata = parse_descriptor(descriptors[own[0]])

        if metadata.name:
            result.deduced_mod_name = clean_mod_name(metadata.name, "") or None
        result.deduced_author = metadata.author
        result.raw_ini_type = metadata.type
        result.raw_ini_target = metadata.target

        if metadata.type:
            result.deduced_category_slug = self.catalog.find_category_slug(metadata.type)
        if metadata.target and result.deduced_category_slug:
            result.deduced_entity_slug = self.catalog.find_entity_slug_in_category(
                result.deduced_category_slug, metadata.target
            )

    def import_archive(
        self,
        archive_path: str | Path,
        target_entity_slug: str,
        selected_internal_root: str,
        name: str,
        description: str | None = None,
        author: str | None = None,
        category_tag: str | None = None,
        preview_path: str | Path | None = None,
    ) -> Asset:
        """
        Extract one archive subtree into the managed root and catalog it.

        The mod lands at <root>/<category>/<entity>/<folder name>. Every
        completed step is undone if a later one fails.

        :param archive_path: Path to the zip file.
        :param target_entity_slug: Entity the mod is filed under.
        :param selected_internal_root: Archive folder whose contents become
            the mod folder; empty for the whole archive.
        :param name: Display name, also the source of the folder name.
        :param preview_path: Image copied in as the mod's preview.
        :return: The new catalog row.
        :raises InvalidInputError: If name or target is empty.
        :raises NotFoundError: If the archive, entity or preview is missing.
        :raises ConflictError: If the mod already exists.
        :raises CompensationError: If cleanup after a failure also failed.
        """
        if not name.strip():
            raise InvalidInputError("Mod Name cannot be empty.")
        if not target_entity_slug.strip():
            raise InvalidInputError("Target Entity must be selected.")
        archive_path = Path(archive_path)
        if not archive_path.is_file():
            raise NotFoundError(f"Archive file not found: {archive_path}")
        preview_source = Path(preview_path) if preview_path else None
        if preview_source is not None and not preview_source.is_file():
            raise NotFoundError(f"Preview image not found: {preview_source}")

        root = self.catalog.get_mods_root()
        entity_id, category_slug = self.catalog.get_entity_target(target_entity_slug)
        folder_name = sanitize_folder_name(name)
        if not folder_name:
            raise InvalidInputError("Mod Name results in invalid folder name after cleaning.")

        relative_path = f"{category_slug}/{target_entity_slug}/{folder_name}"
        destination = root / category_slug / target_entity_slug / folder_name
        with self.catalog.locked_session() as session:
            existing = CatalogDbController.find_asset(session, entity_id, relative_path)
        if existing is not None:
            raise ConflictError(
                f"A mod already exists at path '{relative_path}' for this entity."
            )
        on_disk = mod_state.resolve(root, relative_path).path
        if on_disk is not None or destination.exists():
            raise ConflictError(
                f"Target folder '{on_disk or destination}' already exists on disk."
            )

        logger.info(
            f"USER ACTION: importing '{archive_path}' ({selected_internal_root or '<whole archive>'}) to {destination}"
        )
        image_filename: str | None = None

        def create_destination() -> None:
            destination.mkdir(parents=True)

        def remove_destination() -> None:
            rmtree(destination)

        def extract() -> int:
            return extract_subtree(archive_path, selected_internal_root, destination)

        def apply_preview() -> None:
            nonlocal image_filename
            target_image = destination / TARGET_IMAGE_FILENAME
            if preview_source is not None:
                shutil.copyfile(preview_source, target_image)
                image_filename = TARGET_IMAGE_FILENAME
            elif target_image.is_file():
                image_filename = TARGET_IMAGE_FILENAME
            else:
                logger.debug(f"No preview image for {destination}")

        def insert() -> Asset:
            return self.catalog.add_asset(
                entity_id=entity_id,
                name=name.strip(),
                description=description,
                relative_path=relative_path,
                image_filename=image_filename,
                author=author,
                category_tag=category_tag,
            )

        saga = (
            Saga("import")
            .add_step("create destination", create_destination, remove_destination)
            .add_step("extract archive", extract)
            .add_step("apply preview", apply_preview)
            .add_step("catalog insert", insert)
        )
        try:
            asset: Asset = saga.run()[-1]
        except OSError as e:
            raise ModCatalogError(f"Import into '{destination}' failed: {e}") from e

        EventBus().catalog_changed.emit()
        logger.info(f"Imported '{asset.name}' as {relative_path}")
        return asset

    @staticmethod
    def read_archive_entry(archive_path: str | Path, internal_path: str) -> bytes:
        """Raw bytes of one archive entry, e.g. a preview image shown before import."""
        return read_zip_entry(archive_path, internal_path)
