from pathlib import Path
from typing import Callable

import pytest
from PySide6.QtCore import QCoreApplication

from modcatalog.controllers.catalog_db_controller import CatalogDbController
from modcatalog.controllers.scan_controller import ModScanner, ScanWorker, start_scan
from modcatalog.models.structures import ScanProgress, ScanSummary
from modcatalog.models.taxonomy import TaxonomyStore
from modcatalog.utils.constants import SETTINGS_KEY_MODS_FOLDER
from modcatalog.utils.event_bus import EventBus
from modcatalog.utils.exception import ConfigError, NotFoundError

MakeMod = Callable[..., Path]

RAIDEN_INI = "[Mod]\nName=Test\nAuthor=Abc\nTarget=Raiden\n"


def _scan(
    root: Path, catalog: CatalogDbController, events: list[ScanProgress] | None = None
) -> ScanSummary:
    scanner = ModScanner(
        root,
        catalog,
        catalog.taxonomy_store(),
        on_progress=events.append if events is not None else None,
    )
    return scanner.scan()


def test_scan_empty_root(mods_root: Path, catalog: CatalogDbController) -> None:
    assert _scan(mods_root, catalog) == ScanSummary(processed=0, added=0, errors=0)


def test_scan_single_mod(
    mods_root: Path, catalog: CatalogDbController, make_mod: MakeMod
) -> None:
    make_mod(mods_root / "MyMod", RAIDEN_INI)

    summary = _scan(mods_root, catalog)

    assert summary == ScanSummary(processed=1, added=1, errors=0)
    assets = catalog.list_assets_for_entity("raiden-shogun")
    assert len(assets) == 1
    assert assets[0].name == "Test"
    assert assets[0].author == "Abc"
    assert assets[0].relative_path.endswith("MyMod")


def test_scan_falls_back_to_other(
    mods_root: Path, catalog: CatalogDbController, make_mod: MakeMod
) -> None:
    make_mod(mods_root / "weapons" / "Blade", "[Mod]\nName=Blade\n")
    make_mod(mods_root / "Unknown", "[Mod]\nTarget=Nobody\n")

    assert _scan(mods_root, catalog).added == 2
    assert [a.relative_path for a in catalog.list_assets_for_entity("weapons-other")] == [
        "weapons/Blade"
    ]
    assert [a.name for a in catalog.list_assets_for_entity("characters-other")] == [
        "Unknown"
    ]


def test_rescan_adds_nothing(
    mods_root: Path, catalog: CatalogDbController, make_mod: MakeMod
) -> None:
    make_mod(mods_root / "MyMod", RAIDEN_INI)
    _scan(mods_root, catalog)

    # Descriptor changes are not picked up by a rescan
    (mods_root / "MyMod" / "mod.ini").write_text(RAIDEN_INI.replace("Test", "Changed"))
    summary = _scan(mods_root, catalog)

    assert summary == ScanSummary(processed=1, added=0, errors=0)
    assert catalog.count_assets() == 1
    assert catalog.list_assets_for_entity("raiden-shogun")[0].name == "Test"


def test_scan_disabled_folder_uses_canonical_path(
    mods_root: Path, catalog: CatalogDbController, make_mod: MakeMod
) -> None:
    make_mod(mods_root / "characters" / "DISABLED_Outfit")

    _scan(mods_root, catalog)
    (asset,) = catalog.list_assets_for_entity("characters-other")
    assert asset.relative_path == "characters/Outfit"
    assert asset.name == "Test"

    # Enabling it later must not produce a second row
    (mods_root / "characters" / "DISABLED_Outfit").rename(mods_root / "characters" / "Outfit")
    assert _scan(mods_root, catalog).added == 0


def test_scan_does_not_descend_into_mods(
    mods_root: Path, catalog: CatalogDbController, make_mod: MakeMod
) -> None:
    make_mod(
        mods_root / "Outer",
        files={"Inner/inner.ini": b"[Mod]\nName=Inner\n", "Inner/x.txt": b""},
    )
    make_mod(mods_root / "group" / "Second")

    events: list[ScanProgress] = []
    summary = _scan(mods_root, catalog, events)

    assert summary.processed == 2
    assert summary.added == 2
    # Sizing pass does not prune
    assert events[0].total_count == 3
    assert catalog.count_assets() == 2


def test_scan_progress_notifications(
    mods_root: Path, catalog: CatalogDbController, make_mod: MakeMod
) -> None:
    make_mod(mods_root / "A")
    make_mod(mods_root / "B")

    events: list[ScanProgress] = []
    _scan(mods_root, catalog, events)

    assert events[0] == ScanProgress(0, 2, None, "Starting scan...")
    assert [e.processed_count for e in events[1:]] == [1, 2]
    assert {e.message for e in events[1:]} == {"Processing: A", "Processing: B"}
    assert all(e.current_path is not None for e in events[1:])


def test_scan_counts_unresolvable_entity(
    mods_root: Path, catalog: CatalogDbController, make_mod: MakeMod
) -> None:
    make_mod(mods_root / "A")
    scanner = ModScanner(mods_root, catalog, TaxonomyStore([], []))

    assert scanner.scan() == ScanSummary(processed=1, added=0, errors=1)
    assert catalog.count_assets() == 0


def test_scan_invalid_root(tmp_path: Path, catalog: CatalogDbController) -> None:
    events: list[ScanProgress] = []
    with pytest.raises(NotFoundError):
        _scan(tmp_path / "missing", catalog, events)
    assert events == []


def test_start_scan_requires_root(catalog: CatalogDbController, tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        start_scan(catalog)
    catalog.set_setting(SETTINGS_KEY_MODS_FOLDER, str(tmp_path / "missing"))
    with pytest.raises(NotFoundError):
        start_scan(catalog)


def test_scan_worker_publishes_on_event_bus(
    qapp: QCoreApplication, mods_root: Path, catalog: CatalogDbController, make_mod: MakeMod
) -> None:
    make_mod(mods_root / "MyMod", RAIDEN_INI)
    progress: list[ScanProgress] = []
    finished: list[ScanSummary] = []

    def on_progress(event: ScanProgress) -> None:
        progress.append(event)

    def on_finished(summary: ScanSummary) -> None:
        finished.append(summary)

    event_bus = EventBus()
    event_bus.scan_progress.connect(on_progress)
    event_bus.scan_finished.connect(on_finished)
    try:
        worker = ScanWorker(
            mods_root, catalog.open_private_handle(), catalog.taxonomy_store()
        )
        # Run in this thread so delivery is synchronous
        worker.run()
    finally:
        event_bus.scan_progress.disconnect(on_progress)
        event_bus.scan_finished.disconnect(on_finished)

    assert [p.message for p in progress] == ["Starting scan...", "Processing: MyMod"]
    assert finished == [ScanSummary(processed=1, added=1, errors=0)]


def test_scan_worker_reports_errors(
    qapp: QCoreApplication, tmp_path: Path, catalog: CatalogDbController
) -> None:
    errors: list[str] = []

    def on_error(message: str) -> None:
        errors.append(message)

    event_bus = EventBus()
    event_bus.scan_error.connect(on_error)
    try:
        worker = ScanWorker(
            tmp_path / "missing", catalog.open_private_handle(), catalog.taxonomy_store()
        )
        worker.run()
    finally:
        event_bus.scan_error.disconnect(on_error)

    assert worker.summary is None
    assert worker.error_message is not None
    assert errors == [worker.error_message]


def test_start_scan_runs_in_background(
    qapp: QCoreApplication, mods_root: Path, catalog: CatalogDbController, make_mod: MakeMod
) -> None:
    make_mod(mods_root / "MyMod", RAIDEN_INI)

    worker = start_scan(catalog)
    assert worker.wait(10000)

    assert worker.summary == ScanSummary(processed=1, added=1, errors=0)
    assert catalog.count_assets() == 1
