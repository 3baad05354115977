"""Physical state of a cataloged mod folder.

The filesystem is the only record of whether a mod is enabled. For a managed
root R and a canonical relative path P with leaf L there are exactly two
candidate folders:

    enabled:  R/P
    disabled: R/parent(P)/DISABLED_L

Nothing here caches which one exists; every call looks at the disk again.
"""

import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from loguru import logger

from modcatalog.utils.constants import DISABLED_PREFIX, ModState
from modcatalog.utils.exception import (
    ConflictError,
    InvalidInputError,
    ModCatalogError,
    NotFoundError,
)
from modcatalog.utils.generic import normalize_separators


@dataclass(frozen=True)
class ResolvedModPath:
    state: ModState
    path: Path | None = None

    @property
    def is_enabled(self) -> bool:
        return self.state == ModState.ENABLED


def strip_disabled_prefix(folder_name: str) -> str:
    while folder_name.startswith(DISABLED_PREFIX):
        folder_name = folder_name[len(DISABLED_PREFIX) :]
    return folder_name


def _split(relative_path: str) -> tuple[PurePosixPath, str]:
    rel = PurePosixPath(normalize_separators(relative_path).strip("/"))
    if not rel.name:
        raise InvalidInputError(
            f"Could not extract folder name from relative path: '{relative_path}'"
        )
    return rel.parent, rel.name


def enabled_path(root: Path, relative_path: str) -> Path:
    parent, leaf = _split(relative_path)
    return root.joinpath(*parent.parts, leaf)


def disabled_path(root: Path, relative_path: str) -> Path:
    parent, leaf = _split(relative_path)
    return root.joinpath(*parent.parts, f"{DISABLED_PREFIX}{leaf}")


def canonical_relative_path(path: Path, root: Path) -> str:
    """
    Catalog identity of a mod folder found under root.

    :raises InvalidInputError: If path is not under root.
    """
    try:
        relative = path.relative_to(root)
    except ValueError as e:
        raise InvalidInputError(f"'{path}' is not inside '{root}'") from e
    parts = list(relative.parts)
    if not parts:
        raise InvalidInputError(f"'{path}' is the managed root itself")
    parts[-1] = strip_disabled_prefix(parts[-1])
    return "/".join(parts)


def resolve(root: Path, relative_path: str) -> ResolvedModPath:
    """Enabled path is checked first, then the disabled one."""
    enabled = enabled_path(root, relative_path)
    if enabled.is_dir():
        return ResolvedModPath(ModState.ENABLED, enabled)
    disabled = disabled_path(root, relative_path)
    if disabled.is_dir():
        return ResolvedModPath(ModState.DISABLED, disabled)
    return ResolvedModPath(ModState.MISSING)


def resolve_existing(root: Path, relative_path: str) -> ResolvedModPath:
    """
    Like resolve, but a missing folder is an error.

    :raises NotFoundError: If neither candidate folder exists.
    """
    resolved = resolve(root, relative_path)
    if resolved.state == ModState.MISSING:
        raise NotFoundError(
            f"Mod folder not found at expected locations derived from path '{relative_path}' "
            f"(checked {enabled_path(root, relative_path)} and {disabled_path(root, relative_path)}). "
            "Did the folder get moved or deleted?"
        )
    return resolved


def current_folder_name(root: Path, relative_path: str) -> str | None:
    """The relative path as it currently exists on disk, or None if missing."""
    resolved = resolve(root, relative_path)
    if resolved.path is None:
        return None
    return resolved.path.relative_to(root).as_posix()


def toggle(root: Path, relative_path: str) -> bool:
    """
    Flip a mod between its enabled and disabled folder names.

    :return: The new enabled state.
    :raises NotFoundError: If the folder exists in neither form.
    """
    resolved = resolve_existing(root, relative_path)
    if resolved.state == ModState.ENABLED:
        source, target, new_state = (
            enabled_path(root, relative_path),
            disabled_path(root, relative_path),
            False,
        )
    else:
        source, target, new_state = (
            disabled_path(root, relative_path),
            enabled_path(root, relative_path),
            True,
        )

    try:
        os.rename(source, target)
    except OSError as e:
        raise ModCatalogError(f"Failed to rename '{source}' to '{target}': {e}") from e

    logger.info(f"Renamed {source} -> {target} (enabled={new_state})")
    return new_state


def move_to_new_location(root: Path, relative_path: str, new_relative_path: str) -> Path:
    """
    Move a mod folder to a new canonical location, keeping its current
    enabled/disabled naming.

    :return: The folder's new physical path.
    :raises NotFoundError: If the source folder exists in neither form.
    :raises ConflictError: If the destination already exists in either form.
    """
    resolved = resolve_existing(root, relative_path)
    if resolved.state == ModState.DISABLED:
        destination = disabled_path(root, new_relative_path)
    else:
        destination = enabled_path(root, new_relative_path)

    # Enabled and disabled forms must never coexist
    occupied = resolve(root, new_relative_path).path
    if occupied is not None or destination.exists():
        raise ConflictError(
            f"Cannot relocate: Target path '{occupied or destination}' already exists."
        )

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        os.rename(resolved.path, destination)  # type: ignore[arg-type]
    except OSError as e:
        raise ModCatalogError(
            f"Failed to move mod folder from '{resolved.path}' to '{destination}': {e}"
        ) from e

    logger.info(f"Moved mod folder {resolved.path} -> {destination}")
    return destination
