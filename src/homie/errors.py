"""
Exception hierarchy for homie.

All homie exceptions inherit from HomieError, allowing callers to catch
every homie-specific failure with a single except clause.

Exception Categories:
    - StorageError: Database operation failed
    - ConfigError: Config file or database path could not be resolved
    - CaptureError: Clipboard watching or persisting a capture failed
    - ProcessError: Sibling daemon processes could not be enumerated
    - SinkError: Selected text could not be written back

An aborted history search is not an error. The selector reports it as an
``Aborted`` result (see ``homie.finder``).
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Storage errors: 5xxx
ERROR_STORAGE_CONNECTION = 5001
ERROR_STORAGE_WRITE = 5002
ERROR_STORAGE_READ = 5003
ERROR_STORAGE_DELETE = 5004
ERROR_STORAGE_MIGRATION = 5005

# Config errors: 6xxx
ERROR_CONFIG_FILE = 6001
ERROR_CONFIG_PATH = 6002

# Capture errors: 7xxx
ERROR_CAPTURE_FAILED = 7001
ERROR_CLIPBOARD_INIT = 7002

# Process errors: 8xxx
ERROR_PROCESS_ENUM = 8001

# Sink errors: 9xxx
ERROR_SINK_FAILED = 9001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class HomieError(Exception):
    """
    Base exception for all homie errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StorageError(HomieError):
    """
    Base class for storage/database errors.

    Attributes:
        operation: The operation that failed (e.g., "write", "read")
        underlying_error: Message of the sqlite3 error that caused this one
    """

    operation: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["operation"] = self.operation
        if self.underlying_error:
            self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageConnectionError(StorageError):
    """Raised when the database cannot be opened or is already closed."""

    db_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to connect to database: {self.db_path}"
        if self.code == 0:
            self.code = ERROR_STORAGE_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check that the database path is valid and writable"
        super().__post_init__()
        self.context["db_path"] = self.db_path


@dataclass
class StorageWriteError(StorageError):
    """Raised when a clipboard item cannot be inserted or updated."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database write failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        super().__post_init__()


@dataclass
class StorageReadError(StorageError):
    """Raised when a read or count query fails."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        super().__post_init__()


@dataclass
class StorageDeleteError(StorageError):
    """Raised when trimming or resetting the history fails."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database delete failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_DELETE
        super().__post_init__()


@dataclass
class StorageMigrationError(StorageError):
    """Raised when the schema cannot be created."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database migration failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_MIGRATION
        if not self.suggestion:
            self.suggestion = "The database may be corrupted. Run 'homie clear' or remove the file."
        super().__post_init__()


# =============================================================================
# Config Errors
# =============================================================================


@dataclass
class ConfigError(HomieError):
    """
    Base class for configuration errors.

    Attributes:
        path: The config file or directory involved
    """

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["path"] = self.path


@dataclass
class ConfigFileError(ConfigError):
    """Raised when the config file exists but cannot be parsed or validated."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to read config file {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_FILE
        if not self.suggestion:
            self.suggestion = "Fix the YAML in the config file; defaults are used meanwhile"
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class ConfigPathError(ConfigError):
    """Raised when the database directory cannot be resolved or created."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to prepare config directory {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_PATH
        if not self.suggestion:
            self.suggestion = "Set XDG_CONFIG_HOME to a writable directory"
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Capture Errors
# =============================================================================


@dataclass
class CaptureError(HomieError):
    """
    Raised when the capture session cannot continue.

    A failed write is fatal to the capture loop; the original StorageError
    is chained as ``__cause__``.
    """

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Clipboard capture failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CAPTURE_FAILED
        self.context["underlying_error"] = self.underlying_error


@dataclass
class ClipboardInitError(CaptureError):
    """Raised when the clipboard backend cannot be initialized."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to initialize clipboard: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CLIPBOARD_INIT
        if not self.suggestion:
            self.suggestion = "Install xclip or xsel (X11) or wl-clipboard (Wayland)"
        super().__post_init__()


# =============================================================================
# Process / Sink Errors
# =============================================================================


@dataclass
class ProcessError(HomieError):
    """Raised when running processes cannot be enumerated."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to enumerate processes: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_PROCESS_ENUM
        self.context["underlying_error"] = self.underlying_error


@dataclass
class SinkError(HomieError):
    """Raised when selected text cannot be copied or pasted."""

    target: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to write to {self.target}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_SINK_FAILED
        self.context.update({
            "target": self.target,
            "underlying_error": self.underlying_error,
        })
