class ModCatalogError(Exception):
    """
    Base class for every failure that is reported to the user.

    The message is the single human-readable string that crosses the
    command boundary.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ModCatalogError):
    """
    Raised when an asset, entity or category does not exist, or when a
    cataloged mod has no folder on disk in either enabled or disabled form
    """

    pass


class ConfigError(ModCatalogError):
    """
    Raised when a required setting is missing or malformed, or the
    taxonomy definition cannot be read
    """

    pass


class ConflictError(ModCatalogError):
    """
    Raised when a destination folder already exists or the catalog
    already holds the same (entity, relative path) pair
    """

    pass


class ArchiveError(ModCatalogError):
    pass


class PersistenceError(ModCatalogError):
    pass


class CancelledError(ModCatalogError):
    """
    Raised at the command boundary when the user declines a confirmation
    """

    pass


class InvalidInputError(ModCatalogError):
    pass


class CompensationError(ModCatalogError):
    """
    Raised when a multi-step operation failed and at least one of its
    compensating actions failed too. The filesystem and the catalog may
    disagree afterwards.
    """

    def __init__(
        self,
        message: str,
        original: BaseException,
        failures: list[tuple[str, BaseException]],
    ):
        details = "; ".join(f"{name}: {error}" for name, error in failures)
        super().__init__(f"{message} (residual inconsistency: {details})")
        self.original = original
        self.failures = failures
