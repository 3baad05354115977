import os
import re
import shutil
import subprocess
import sys
from errno import EACCES
from pathlib import Path
from stat import S_IRWXG, S_IRWXO, S_IRWXU
from typing import Any, Callable

from loguru import logger


def normalize_separators(path: str) -> str:
    """Use forward slashes regardless of the platform the path came from."""
    return path.replace("\\", "/")


def sanitize_folder_name(name: str) -> str:
    """
    Derive a filesystem-safe folder name from a display name.

    Whitespace and dots are replaced with underscores, after trimming.

    :param name: The display name.
    :return: The folder name, possibly empty.
    """
    return re.sub(r"[\s.]", "_", name.strip())


def attempt_chmod(
    func: Callable[[str], Any], path: str, excinfo: BaseException
) -> bool:
    if excinfo is not None and isinstance(excinfo, OSError):
        if (
            func in (os.rmdir, os.remove, os.unlink, os.listdir)
            and excinfo.errno == EACCES
        ):
            os.chmod(path, S_IRWXU | S_IRWXG | S_IRWXO)  # 0777
            try:
                func(path)
                return True
            except Exception as e:
                logger.warning(
                    f"attempt_chmod for {func.__name__} double failure at {path}: {e}"
                )
                return False

    return False


def rmtree(path: str | Path) -> bool:
    """Wrapper for improved rmtree error handling.
    Checks if the path exists and is a directory before attempting to delete it.
    Read-only files are made writable and retried once.

    :param path: Path to directory to be deleted.
    :type path: str | Path
    :return: True if the directory was successfully deleted, False otherwise.
    :raises OSError: If the directory exists but could not be removed.
    """
    if isinstance(path, str):
        path = Path(path)

    if not path.exists():
        logger.warning(f"Tried to delete directory that does not exist: {path}")
        return False

    if not path.is_dir():
        logger.error(f"rmtree path is not a directory: {path}")
        return False

    def onexc(func: Callable[[str], Any], failed_path: str, exc: BaseException) -> None:
        if not attempt_chmod(func, failed_path, exc):
            raise exc

    shutil.rmtree(path, onexc=onexc)
    logger.debug(f"Deleted: {path}")
    return True


def platform_specific_open(path: str | Path) -> None:
    """
    Function to open a folder in the platform-specific file-explorer app
    or a file in the relevant system default application.

    :param path: path to open
    :type path: str | Path
    """
    logger.info(f"USER ACTION: opening {path}")
    path = str(path)
    if sys.platform == "darwin":
        logger.info(f"Opening {path} with subprocess open on MacOS")
        subprocess.Popen(["open", path])
    elif sys.platform == "win32":
        logger.info(f"Opening {path} with startfile on Windows")
        os.startfile(path)  # type: ignore[attr-defined]
    elif sys.platform == "linux":
        logger.info(f"Opening {path} with xdg-open on Linux")
        subprocess.Popen(["xdg-open", path], env=dict(os.environ, LD_LIBRARY_PATH=""))
    else:
        logger.error("Attempting to open directory on an unknown system")
