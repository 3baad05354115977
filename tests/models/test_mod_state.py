from pathlib import Path

import pytest

from modcatalog.models import mod_state
from modcatalog.utils.constants import ModState
from modcatalog.utils.exception import ConflictError, InvalidInputError, NotFoundError


def test_candidate_paths(tmp_path: Path) -> None:
    assert mod_state.enabled_path(tmp_path, "characters/nahida/MyMod") == (
        tmp_path / "characters" / "nahida" / "MyMod"
    )
    assert mod_state.disabled_path(tmp_path, "characters/nahida/MyMod") == (
        tmp_path / "characters" / "nahida" / "DISABLED_MyMod"
    )
    # Backslashes from older catalogs are normalized
    assert mod_state.disabled_path(tmp_path, "a\\MyMod") == tmp_path / "a" / "DISABLED_MyMod"
    assert mod_state.disabled_path(tmp_path, "MyMod") == tmp_path / "DISABLED_MyMod"


def test_candidate_paths_reject_empty(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError):
        mod_state.enabled_path(tmp_path, "")


def test_canonical_relative_path(tmp_path: Path) -> None:
    assert (
        mod_state.canonical_relative_path(tmp_path / "a" / "b" / "MyMod", tmp_path)
        == "a/b/MyMod"
    )
    assert (
        mod_state.canonical_relative_path(tmp_path / "a" / "DISABLED_MyMod", tmp_path)
        == "a/MyMod"
    )
    assert (
        mod_state.canonical_relative_path(
            tmp_path / "DISABLED_DISABLED_MyMod", tmp_path
        )
        == "MyMod"
    )
    # Only the leaf loses its prefix
    assert (
        mod_state.canonical_relative_path(tmp_path / "DISABLED_a" / "MyMod", tmp_path)
        == "DISABLED_a/MyMod"
    )


def test_canonical_relative_path_outside_root(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError):
        mod_state.canonical_relative_path(Path("/elsewhere/MyMod"), tmp_path / "mods")


def test_resolve_states(tmp_path: Path) -> None:
    assert mod_state.resolve(tmp_path, "x/MyMod").state == ModState.MISSING
    assert mod_state.resolve(tmp_path, "x/MyMod").path is None

    disabled = tmp_path / "x" / "DISABLED_MyMod"
    disabled.mkdir(parents=True)
    resolved = mod_state.resolve(tmp_path, "x/MyMod")
    assert resolved.state == ModState.DISABLED
    assert resolved.path == disabled
    assert not resolved.is_enabled

    enabled = tmp_path / "x" / "MyMod"
    enabled.mkdir()
    # Enabled form is checked first
    resolved = mod_state.resolve(tmp_path, "x/MyMod")
    assert resolved.state == ModState.ENABLED
    assert resolved.path == enabled


def test_resolve_ignores_plain_files(tmp_path: Path) -> None:
    (tmp_path / "MyMod").write_text("not a folder")
    assert mod_state.resolve(tmp_path, "MyMod").state == ModState.MISSING


def test_toggle_round_trip(tmp_path: Path) -> None:
    (tmp_path / "MyMod").mkdir()

    assert mod_state.toggle(tmp_path, "MyMod") is False
    assert not (tmp_path / "MyMod").exists()
    assert (tmp_path / "DISABLED_MyMod").is_dir()

    assert mod_state.toggle(tmp_path, "MyMod") is True
    assert (tmp_path / "MyMod").is_dir()
    assert not (tmp_path / "DISABLED_MyMod").exists()


def test_toggle_missing(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        mod_state.toggle(tmp_path, "gone/MyMod")


def test_move_preserves_disabled_form(tmp_path: Path) -> None:
    source = tmp_path / "characters" / "characters-other" / "DISABLED_MyMod"
    source.mkdir(parents=True)
    (source / "mod.ini").write_text("[Mod]")

    destination = mod_state.move_to_new_location(
        tmp_path, "characters/characters-other/MyMod", "characters/nahida/MyMod"
    )

    assert destination == tmp_path / "characters" / "nahida" / "DISABLED_MyMod"
    assert (destination / "mod.ini").is_file()
    assert not source.exists()


def test_move_preserves_enabled_form(tmp_path: Path) -> None:
    (tmp_path / "a" / "MyMod").mkdir(parents=True)

    destination = mod_state.move_to_new_location(tmp_path, "a/MyMod", "b/c/MyMod")

    assert destination == tmp_path / "b" / "c" / "MyMod"
    assert destination.is_dir()


def test_move_refuses_existing_destination(tmp_path: Path) -> None:
    (tmp_path / "a" / "MyMod").mkdir(parents=True)
    (tmp_path / "b" / "MyMod").mkdir(parents=True)

    with pytest.raises(ConflictError):
        mod_state.move_to_new_location(tmp_path, "a/MyMod", "b/MyMod")
    assert (tmp_path / "a" / "MyMod").is_dir()


def test_move_refuses_destination_in_opposite_form(tmp_path: Path) -> None:
    (tmp_path / "a" / "MyMod").mkdir(parents=True)
    (tmp_path / "b" / "DISABLED_MyMod").mkdir(parents=True)

    with pytest.raises(ConflictError):
        mod_state.move_to_new_location(tmp_path, "a/MyMod", "b/MyMod")
    assert (tmp_path / "a" / "MyMod").is_dir()
    assert not (tmp_path / "b" / "MyMod").exists()

    (tmp_path / "c" / "DISABLED_Other").mkdir(parents=True)
    (tmp_path / "d" / "Other").mkdir(parents=True)
    with pytest.raises(ConflictError):
        mod_state.move_to_new_location(tmp_path, "c/Other", "d/Other")
    assert mod_state.resolve(tmp_path, "d/Other").state == ModState.ENABLED


def test_current_folder_name(tmp_path: Path) -> None:
    assert mod_state.current_folder_name(tmp_path, "a/MyMod") is None
    (tmp_path / "a" / "DISABLED_MyMod").mkdir(parents=True)
    assert mod_state.current_folder_name(tmp_path, "a/MyMod") == "a/DISABLED_MyMod"
