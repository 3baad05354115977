import sys
from types import TracebackType
from typing import Type

import loguru
from loguru import logger

from modcatalog.cli.main import cli
from modcatalog.utils.app_info import AppInfo


def handle_exception(
    exc_type: Type[BaseException],
    exc_value: BaseException,
    exc_traceback: TracebackType | None,
) -> None:
    """
    Called (through excepthook) when a command fails with an uncaught
    exception. The error is logged to the log file before exiting.
    """

    # Ignore KeyboardInterrupt exceptions, for when running through the terminal
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
    else:
        logger.opt(exception=(exc_type, exc_value, exc_traceback)).error(
            "ModCatalog has failed with an uncaught exception"
        )

    sys.exit(1)


def formatter(record: "loguru.Record") -> str:
    """Custom formatter for loguru logger"""
    return (
        "[{level}]"
        "[{time:YYYY-MM-DD HH:mm:ss}]"
        "[{process.id}]"
        "[{thread.name}]"
        "[{module}]"
        "[{function}][{line}]"
        " : "
        "{message}\n{exception}"
    )


def configure_logging() -> None:
    # Set the log level from the presence (or absence) of a "DEBUG" file in the storage folder
    debug_file_path = AppInfo().app_storage_folder / "DEBUG"
    debug_mode = debug_file_path.exists() and debug_file_path.is_file()

    # We have log_file (foo.log) and old_log_file (foo.old.log). If old_log_file exists,
    # remove it. If log_file exists, rename it to old_log_file. When we pass log_file to
    # the logger as an argument, it will automatically be created.
    log_file = AppInfo().user_log_folder / (AppInfo().app_name + ".log")
    old_log_file = AppInfo().user_log_folder / (AppInfo().app_name + ".old.log")
    if old_log_file.exists() and old_log_file.is_file():
        old_log_file.unlink()
    if log_file.exists() and log_file.is_file():
        log_file.rename(old_log_file)

    # Remove the default stderr logger
    logger.remove()

    # Create the file logger
    logger.add(log_file, level="DEBUG" if debug_mode else "INFO", format=formatter)

    # Add a "WARNING" or higher stderr logger
    logger.add(
        sys.stderr,
        level="WARNING",
        format=formatter,
        colorize=False,
    )


def main() -> None:
    # Uncaught exceptions are logged through the function above
    sys.excepthook = handle_exception
    configure_logging()
    logger.info(f"{AppInfo().app_name} {AppInfo().app_version}")
    cli()


if __name__ == "__main__":
    main()
