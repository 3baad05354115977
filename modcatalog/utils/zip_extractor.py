"""ZIP reading primitives shared by archive analysis and import.

This module provides:
- open_archive: open a zip file, mapping failures to ArchiveError/NotFoundError
- iter_archive_entries: normalized (path, is_dir, info) triples
- read_archive_entry: raw bytes of one internal entry
- extract_subtree: re-rooted extraction of one internal folder
"""

import shutil
from pathlib import Path, PurePosixPath
from typing import Generator
from zipfile import BadZipFile, ZipFile, ZipInfo

from loguru import logger

from modcatalog.utils.exception import ArchiveError, NotFoundError
from modcatalog.utils.generic import normalize_separators

__all__ = [
    "open_archive",
    "enclosed_name",
    "iter_archive_entries",
    "read_archive_entry",
    "extract_subtree",
]


def open_archive(zip_path: str | Path) -> ZipFile:
    """Open a ZIP archive for reading.

    Args:
        zip_path: Path to the ZIP file

    Returns:
        The open ZipFile; the caller closes it

    Raises:
        NotFoundError: If the archive does not exist
        ArchiveError: If the file is not a readable ZIP archive
    """
    zip_path = Path(zip_path)
    if not zip_path.is_file():
        raise NotFoundError(f"Archive file not found: {zip_path}")
    try:
        return ZipFile(zip_path)
    except BadZipFile as e:
        logger.error(f"Invalid ZIP file {zip_path}: {e}")
        raise ArchiveError(f"Failed to read zip archive {zip_path}: {e}") from e
    except OSError as e:
        logger.error(f"Failed to open ZIP file {zip_path}: {e}")
        raise ArchiveError(f"Failed to open archive file {zip_path}: {e}") from e


def enclosed_name(name: str) -> str | None:
    """Normalize an entry name, refusing names that escape the archive root.

    Returns the forward-slash path without a trailing slash, or None for
    absolute paths, drive-qualified paths and paths containing "..".
    """
    normalized = normalize_separators(name)
    if normalized.startswith("/") or (len(normalized) > 1 and normalized[1] == ":"):
        return None
    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if not parts or ".." in parts:
        return None
    return "/".join(parts)


def iter_archive_entries(
    zipobj: ZipFile,
) -> Generator[tuple[str, bool, ZipInfo], None, None]:
    """Yield (normalized path, is_dir, ZipInfo) for every usable entry in archive order."""
    for index, info in enumerate(zipobj.infolist()):
        path = enclosed_name(info.filename)
        if path is None:
            logger.warning(f"Entry #{index} has invalid path '{info.filename}', skipping.")
            continue
        yield path, info.is_dir(), info


def read_archive_entry(zip_path: str | Path, internal_path: str) -> bytes:
    """Read the raw bytes of one archive entry.

    Raises:
        NotFoundError: If the archive does not exist
        ArchiveError: If the archive is corrupt or the entry is missing/unreadable
    """
    normalized = normalize_separators(internal_path)
    with open_archive(zip_path) as zipobj:
        try:
            with zipobj.open(normalized) as src:
                data = src.read()
        except KeyError as e:
            raise ArchiveError(
                f"Internal file '{internal_path}' not found in archive."
            ) from e
        except (BadZipFile, OSError, RuntimeError) as e:
            raise ArchiveError(
                f"Error accessing internal file '{internal_path}': {e}"
            ) from e
    logger.debug(f"Read {len(data)} bytes from '{normalized}' in {zip_path}")
    return data


def extract_subtree(
    zip_path: str | Path, internal_root: str, destination: Path
) -> int:
    """Extract every descendant of internal_root into destination.

    The internal root folder itself is never materialized: "Root/a.txt" lands
    at "destination/a.txt". An empty internal_root extracts the whole archive.

    Returns:
        Number of files written

    Raises:
        ArchiveError: If an entry cannot be read or written
    """
    prefix = normalize_separators(internal_root).strip("/")
    prefix_path = PurePosixPath(prefix) if prefix else None
    files_extracted = 0

    with open_archive(zip_path) as zipobj:
        for path, is_dir, info in iter_archive_entries(zipobj):
            entry_path = PurePosixPath(path)
            if prefix_path is not None:
                if not entry_path.is_relative_to(prefix_path):
                    continue
                relative = entry_path.relative_to(prefix_path)
            else:
                relative = entry_path
            if str(relative) in ("", "."):
                continue

            out_path = destination.joinpath(*relative.parts)
            try:
                if is_dir:
                    out_path.mkdir(parents=True, exist_ok=True)
                else:
                    out_path.parent.mkdir(parents=True, exist_ok=True)
                    with zipobj.open(info) as src, open(out_path, "wb") as out_file:
                        shutil.copyfileobj(src, out_file)
                    files_extracted += 1
            except (BadZipFile, OSError, RuntimeError) as e:
                raise ArchiveError(f"Failed to extract '{path}' to '{out_path}': {e}") from e

    if files_extracted == 0 and prefix:
        logger.warning(
            f"0 files extracted. Check if the selected internal root ('{internal_root}') was correct."
        )
    logger.info(f"Extracted {files_extracted} files from {zip_path} to {destination}")
    return files_extracted
