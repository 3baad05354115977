import os
from pathlib import Path
from typing import Callable

from loguru import logger
from PySide6.QtCore import QThread

from modcatalog.controllers.catalog_db_controller import CatalogDbController
from modcatalog.models.catalog_db import Asset
from modcatalog.models.deduction import deduce, is_descriptor_name
from modcatalog.models.mod_state import canonical_relative_path
from modcatalog.models.structures import ScanProgress, ScanSummary
from modcatalog.models.taxonomy import TaxonomyStore
from modcatalog.utils.constants import DEFAULT_FALLBACK_CATEGORY, SCAN_STARTING_MESSAGE
from modcatalog.utils.event_bus import EventBus
from modcatalog.utils.exception import ModCatalogError, NotFoundError

ProgressCallback = Callable[[ScanProgress], None]


def is_mod_root(filenames: list[str]) -> bool:
    return any(is_descriptor_name(name) for name in filenames)


class ModScanner:
    """
    Walks a managed root and catalogs every mod root it finds.

    A mod root is a directory that directly contains a descriptor file. Its
    subtree is package payload and is never searched for further mods.
    Existing catalog rows are left untouched; only new (entity, path) pairs
    are inserted.
    """

    def __init__(
        self,
        root: Path,
        catalog: CatalogDbController,
        store: TaxonomyStore,
        default_category: str = DEFAULT_FALLBACK_CATEGORY,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.root = root
        self.catalog = catalog
        self.store = store
        self.default_category = default_category
        self.on_progress = on_progress

    def _emit(self, progress: ScanProgress) -> None:
        if self.on_progress is not None:
            self.on_progress(progress)

    def count_mod_roots(self) -> int:
        """Sizing pass: every directory below the root that holds a descriptor."""
        total = 0
        for dirpath, _dirnames, filenames in os.walk(self.root):
            if Path(dirpath) != self.root and is_mod_root(filenames):
                total += 1
        return total

    def scan(self) -> ScanSummary:
        """
        Run both passes.

        :return: Counts of processed mod roots, inserted rows and errors.
        :raises NotFoundError: If the managed root is not a directory.
        """
        if not self.root.is_dir():
            raise NotFoundError(
                f"Mods folder path '{self.root}' is not a valid directory."
            )

        total = self.count_mod_roots()
        logger.info(f"Scanning {self.root}: {total} mod folders found")
        self._emit(ScanProgress(0, total, None, SCAN_STARTING_MESSAGE))

        summary = ScanSummary()
        visited: set[Path] = set()

        def on_walk_error(error: OSError) -> None:
            logger.warning(f"Could not read {error.filename}: {error}")
            summary.errors += 1

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=on_walk_error):
            path = Path(dirpath)
            if path == self.root or not is_mod_root(filenames):
                continue
            # Mod contents are payload, not scan targets
            dirnames.clear()
            if path in visited:
                continue
            visited.add(path)

            summary.processed += 1
            self._emit(
                ScanProgress(
                    summary.processed, total, str(path), f"Processing: {path.name}"
                )
            )
            try:
                if self._process_mod_root(path):
                    summary.added += 1
            except ModCatalogError as e:
                logger.error(f"Failed to catalog {path}: {e.message}")
                summary.errors += 1
            except OSError as e:
                logger.error(f"Failed to read {path}: {e}")
                summary.errors += 1

        logger.info(
            f"Scan finished. Processed: {summary.processed}, Added: {summary.added}, Errors: {summary.errors}"
        )
        return summary

    def _process_mod_root(self, path: Path) -> bool:
        """
        :return: True if a new catalog row was inserted.
        """
        if not path.is_dir():
            raise NotFoundError(f"Mod folder '{path}' is not a directory")

        info = deduce(path, self.root, self.store, self.default_category)
        entity_id = self.store.entity_id(info.entity_slug)
        if entity_id is None:
            raise NotFoundError(
                f"Deduced entity slug '{info.entity_slug}' not found in taxonomy"
            )
        relative_path = canonical_relative_path(path, self.root)

        with self.catalog.locked_session() as session:
            if CatalogDbController.find_asset(session, entity_id, relative_path):
                logger.debug(f"Already cataloged: {relative_path}")
                return False
            session.add(
                Asset(
                    entity_id=entity_id,
                    name=info.mod_name,
                    description=info.description,
                    relative_path=relative_path,
                    image_filename=info.image_filename,
                    author=info.author,
                    category_tag=info.mod_type_tag,
                )
            )
        logger.debug(f"Added new mod: {relative_path} -> {info.entity_slug}")
        return True


class ScanWorker(QThread):
    """worker thread for scanning the managed root"""

    def __init__(
        self,
        root: Path,
        catalog: CatalogDbController,
        store: TaxonomyStore,
        default_category: str = DEFAULT_FALLBACK_CATEGORY,
    ) -> None:
        """
        :param catalog: A private handle, owned and disposed by the worker.
        """
        super().__init__()
        self.root = root
        self.catalog = catalog
        self.store = store
        self.default_category = default_category
        self.summary: ScanSummary | None = None
        self.error_message: str | None = None

    def run(self) -> None:
        event_bus = EventBus()
        scanner = ModScanner(
            self.root,
            self.catalog,
            self.store,
            self.default_category,
            on_progress=event_bus.scan_progress.emit,
        )
        try:
            self.summary = scanner.scan()
        except ModCatalogError as e:
            logger.error(f"Scan failed: {e.message}")
            self.error_message = e.message
            event_bus.scan_error.emit(e.message)
        except Exception as e:
            logger.exception(f"Scan failed unexpectedly: {e}")
            self.error_message = str(e)
            event_bus.scan_error.emit(str(e))
        else:
            event_bus.scan_finished.emit(self.summary)
            event_bus.catalog_changed.emit()
        finally:
            self.catalog.dispose()


def start_scan(catalog: CatalogDbController) -> ScanWorker:
    """
    Validate the managed root and start a background scan.

    Progress, completion and failure are published on the EventBus.

    :return: The running worker.
    :raises ConfigError: If the managed root is not configured.
    :raises NotFoundError: If the managed root is not a directory.
    """
    root = catalog.get_mods_root()
    if not root.is_dir():
        raise NotFoundError(f"Mods folder path '{root}' is not a valid directory.")

    store = catalog.taxonomy_store()
    worker = ScanWorker(
        root, catalog.open_private_handle(), store, catalog.get_default_category()
    )
    logger.info(f"USER ACTION: starting scan of {root}")
    worker.start()
    return worker
