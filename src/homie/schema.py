"""
Schema definitions for homie.

This module defines the Pydantic models used throughout homie:
- HistoryEntry: One persisted clipboard snapshot
- Settings: Options read from the ~/.homierc config file

Design Decisions:
    - HistoryEntry is frozen; the loader only ever reads entries
    - Settings accepts non-positive sizes; callers fall back to defaults
    - Unknown config keys are ignored so older config files keep working
"""

from datetime import datetime
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LIMIT = 20
DEFAULT_MAX_SIZE = 500


# =============================================================================
# History Models
# =============================================================================


class HistoryEntry(BaseModel):
    """
    A clipboard entry persisted in the database.

    Attributes:
        id: Surrogate key assigned on insert
        text: The captured clipboard text
        content_hash: SHA256 hash of the raw payload, used for dedup
        captured_at: When this content was last seen (UTC)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int = Field(..., description="Surrogate key assigned on insert", ge=1)
    text: str = Field(..., description="Captured clipboard text")
    content_hash: str = Field(..., description="SHA256 hash of the payload")
    captured_at: datetime = Field(..., description="Last time this content was seen")


# =============================================================================
# Settings Models
# =============================================================================


class Settings(BaseModel):
    """
    User configuration.

    Attributes:
        clean_up: Whether the daemon trims history on startup
        ttl: Keep entries younger than this many days (takes precedence)
        max_size: Trim once the history grows past this many entries
        limit: Entries kept after a size trim, and the history page size
        use_xclip: Prefer xclip over pyperclip when copying back on Linux
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    clean_up: bool = Field(default=False, description="Trim history on daemon start")
    ttl: int = Field(default=0, description="Retention in days (0 = disabled)")
    max_size: int = Field(
        default=DEFAULT_MAX_SIZE,
        description="Trim once history exceeds this size",
    )
    limit: int = Field(
        default=DEFAULT_LIMIT,
        description="Entries kept by a size trim and shown per page",
    )
    use_xclip: bool = Field(default=True, description="Copy back with xclip on Linux")

    def effective_max_size(self) -> int:
        """max_size with non-positive values replaced by the default."""
        return self.max_size if self.max_size > 0 else DEFAULT_MAX_SIZE

    def effective_limit(self) -> int:
        """limit with non-positive values replaced by the default."""
        return self.limit if self.limit > 0 else DEFAULT_LIMIT


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_settings_file(path: Path | str) -> Settings:
    """
    Load settings from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated Settings object

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the file is not valid YAML
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    # Undecodable bytes surface as yaml.reader.ReaderError
    with path.open("rb") as f:
        data = yaml.safe_load(f)

    # An empty file parses to None
    return Settings.model_validate(data or {})


def load_settings_from_string(content: str) -> Settings:
    """Load settings from a YAML string."""
    data = yaml.safe_load(content)
    return Settings.model_validate(data or {})
