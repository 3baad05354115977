import os
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from platformdirs import PlatformDirs

from modcatalog.utils.constants import APP_NAME, DATA_DIR_ENV_VAR, DB_NAME


class AppInfo:
    """
    Singleton class that provides information about the application and its related directories.

    The directories are determined using the `platformdirs` package, ensuring
    platform-specific conventions are adhered to.

    Examples:
        >>> print(AppInfo().app_name)
        >>> print(AppInfo().catalog_db)
    """

    _instance: "None | AppInfo" = None

    def __new__(cls) -> "AppInfo":
        """
        Create a new instance or return the existing singleton instance of the `AppInfo` class.
        """
        if not cls._instance:
            cls._instance = super(AppInfo, cls).__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """
        Initialize the `AppInfo` instance, setting application metadata and determining important directories.
        """
        if hasattr(self, "_is_initialized") and self._is_initialized:
            return

        self._app_name = APP_NAME

        try:
            self._app_version = version("modcatalog")
        except PackageNotFoundError:
            self._app_version = "Unknown version"

        platform_dirs = PlatformDirs(appname=self._app_name, appauthor=False)
        self._app_storage_folder: Path = Path(
            os.environ.get(DATA_DIR_ENV_VAR) or platform_dirs.user_data_dir
        )
        self._user_log_folder: Path = Path(platform_dirs.user_log_dir)

        # Bundled data ships inside the package
        self._package_data_folder: Path = Path(__file__).resolve().parent.parent / "data"
        self._base_taxonomy_file: Path = self._package_data_folder / "base_entities.toml"

        self._app_storage_folder.mkdir(parents=True, exist_ok=True)
        self._user_log_folder.mkdir(parents=True, exist_ok=True)

        self._is_initialized: bool = True

    @property
    def app_name(self) -> str:
        """
        Get the name of the application.

        Returns:
            str: The name of the application.
        """
        return self._app_name

    @property
    def app_version(self) -> str:
        """
        Get the application version string.

        Returns:
            str: The version of the application.
        """
        return self._app_version

    @property
    def app_storage_folder(self) -> Path:
        """
        Get the path to the folder where application-specific data is stored.

        Returns:
            Path: The path to the application's storage folder.
        """
        return self._app_storage_folder

    @property
    def user_log_folder(self) -> Path:
        """
        Get the path to the folder where application logs are stored.

        Returns:
            Path: The path to the user's log folder.
        """
        return self._user_log_folder

    @property
    def catalog_db(self) -> Path:
        """
        Get the path to the catalog database file.

        Returns:
            Path: The path to the catalog database.
        """
        return self._app_storage_folder / DB_NAME

    @property
    def base_taxonomy_file(self) -> Path:
        """
        Get the path to the bundled taxonomy definition.

        Returns:
            Path: The path to base_entities.toml.
        """
        return self._base_taxonomy_file
