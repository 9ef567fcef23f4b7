"""
Configuration for homie.

Two things are resolved here, once per process, and then passed explicitly
to the components that need them:

    - Settings from ``~/.homierc`` (YAML). A missing file means defaults.
      A malformed file is logged and also means defaults.
    - The database path: ``$XDG_CONFIG_HOME/homie/homie.db``, falling back
      to ``~/.config/homie/homie.db``.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import ValidationError

from homie.errors import ConfigFileError, ConfigPathError
from homie.schema import Settings, load_settings_file

CONFIG_FILE_NAME = ".homierc"
DB_DIR_NAME = "homie"
DB_FILE_NAME = "homie.db"
DB_DIR_MODE = 0o755
XDG_CONFIG_ENV = "XDG_CONFIG_HOME"

logger = logging.getLogger(__name__)


def config_file_path(home: Path | None = None) -> Path:
    """Return the path of the user config file."""
    return (home or Path.home()) / CONFIG_FILE_NAME


def read_settings(path: Path) -> Settings:
    """
    Read settings from ``path``.

    Returns defaults when the file does not exist.

    Raises:
        ConfigFileError: If the file exists but is not valid
    """
    if not path.exists():
        return Settings()
    try:
        return load_settings_file(path)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise ConfigFileError(path=str(path), underlying_error=str(e)) from e


def load_settings(path: Path | None = None) -> Settings:
    """
    Load settings, never failing.

    A malformed config file is reported as a warning and defaults are used.
    """
    path = path or config_file_path()
    try:
        return read_settings(path)
    except ConfigFileError as e:
        logger.warning("%s", e.message)
        return Settings()


def db_path(env: Mapping[str, str] | None = None, home: Path | None = None) -> Path:
    """
    Resolve the database file path and create its directory.

    Args:
        env: Environment to read XDG_CONFIG_HOME from (defaults to os.environ)
        home: Home directory fallback (defaults to Path.home())

    Raises:
        ConfigPathError: If the directory cannot be created
    """
    env = os.environ if env is None else env
    xdg_config = env.get(XDG_CONFIG_ENV, "")
    if xdg_config:
        config_dir = Path(xdg_config) / DB_DIR_NAME
    else:
        try:
            base = home or Path.home()
        except RuntimeError as e:
            raise ConfigPathError(
                message=f"Failed to get user home directory: {e}",
                underlying_error=str(e),
            ) from e
        config_dir = base / ".config" / DB_DIR_NAME

    try:
        config_dir.mkdir(mode=DB_DIR_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigPathError(path=str(config_dir), underlying_error=str(e)) from e
    return config_dir / DB_FILE_NAME


@dataclass
class AppContext:
    """
    Everything a command needs, built once at process start.

    Attributes:
        settings: Resolved user settings
        db_path: Path to the history database
        logger: Package logger
    """

    settings: Settings
    db_path: Path
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("homie"))

    @classmethod
    def load(cls, config_path: Path | None = None) -> "AppContext":
        """Resolve settings and database path from the environment."""
        return cls(settings=load_settings(config_path), db_path=db_path())
