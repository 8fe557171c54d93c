"""
Configuration management for the Recipe Box application.

This module handles:
- Database path configuration
- Environment-specific configuration (development vs. production)
- Environment variable overrides
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import (
    APP_DIR_NAME,
    APP_NAME,
    APP_VERSION,
    DATABASE_FILENAME,
    DATABASE_VERSION,
    ENV_DATABASE_PATH,
    ENV_ENVIRONMENT,
)

logger = logging.getLogger(__name__)


class Config:
    """
    Application configuration manager.

    Handles database location and environment settings. The database path
    can be overridden with the RECIPEBOX_DB_PATH environment variable.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment
        self._app_name = APP_NAME
        self._app_version = APP_VERSION
        self._database_version = DATABASE_VERSION

        override = os.environ.get(ENV_DATABASE_PATH)
        if override:
            self._database_path = Path(override).expanduser()
            self._database_dir = self._database_path.parent
        else:
            if environment == "development":
                self._database_dir = self._get_project_data_dir()
            else:
                self._database_dir = self._get_user_documents_dir()
            self._database_path = self._database_dir / DATABASE_FILENAME

    def _get_project_data_dir(self) -> Path:
        """Get the project's data/ directory for development."""
        project_root = Path(__file__).parent.parent.parent
        return project_root / "data"

    def _get_user_documents_dir(self) -> Path:
        """Get the app subdirectory of the user's Documents folder."""
        return Path.home() / "Documents" / APP_DIR_NAME

    def ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist."""
        self._database_dir.mkdir(parents=True, exist_ok=True)

    @property
    def app_name(self) -> str:
        """Application name."""
        return self._app_name

    @property
    def app_version(self) -> str:
        """Application version."""
        return self._app_version

    @property
    def database_version(self) -> str:
        """Database schema version."""
        return self._database_version

    @property
    def database_path(self) -> Path:
        """Full path to the database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """SQLAlchemy database URL for the configured database file."""
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def database_exists(self) -> bool:
        """
        Check if database file exists.

        Returns:
            True if database file exists, False otherwise
        """
        return self._database_path.exists()

    def __repr__(self) -> str:
        return f"Config(environment='{self.environment}', database_path='{self._database_path}')"


_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment is not changed by passing a
    different environment argument.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    RECIPEBOX_ENV or defaults to production. Ignored if the
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(ENV_ENVIRONMENT, "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton."
        )

    return _config_instance


def reset_config():
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None


def get_database_path() -> Path:
    """Get the configured database file path."""
    return get_config().database_path
