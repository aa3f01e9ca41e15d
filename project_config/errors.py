"""
Error handling for the project config reconciler.

Structured error codes shared by the loader, the reconciler and the CLI.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """
    Error codes for the project config reconciler.

    Ranges:
    - 1000-1099: Document errors
    - 1100-1199: Configuration errors
    - 1200-1299: File system errors
    - 1300-1399: Persistence errors
    """

    # Document errors (1000-1099)
    PARSE_ERROR = 1000
    INVALID_DOCUMENT = 1001
    INVALID_IMPORTS = 1002

    # Configuration errors (1100-1199)
    CONFIG_LOAD_FAILED = 1100
    INVALID_PATH = 1101

    # File system errors (1200-1299)
    PATH_NOT_CONTAINED = 1200
    FILE_WRITE_ERROR = 1201

    # Persistence errors (1300-1399)
    SNAPSHOT_CORRUPT = 1300
    CONFIG_MAP_CORRUPT = 1301


class ConfigError(Exception):
    """Base exception for project config errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional context for debugging
        """
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary.

        Returns:
            Error dictionary with code, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "message": self.message
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result


class ParseError(ConfigError):
    """A config document could not be parsed."""

    def __init__(self, file_path: str, reason: str, code: ErrorCode = ErrorCode.PARSE_ERROR):
        """
        Initialize parse error.

        Args:
            file_path: Document that failed to parse
            reason: Parser message
            code: More specific document error code
        """
        super().__init__(
            code=code,
            message=f"Failed to parse {file_path}: {reason}",
            suggestion="Check the YAML syntax of the file",
            context={"file_path": file_path, "reason": reason}
        )
        self.file_path = file_path


class PathSafetyError(ConfigError):
    """An import resolves outside the configured root."""

    def __init__(self, import_path: str, config_root: str):
        super().__init__(
            code=ErrorCode.PATH_NOT_CONTAINED,
            message=f"Import {import_path} escapes the config root {config_root}",
            suggestion="Only import files located below the config directory",
            context={"import_path": import_path, "config_root": config_root}
        )
        self.import_path = import_path


class InvalidPathError(ConfigError):
    """A config path is empty or contains an empty segment."""

    def __init__(self, path: str):
        super().__init__(
            code=ErrorCode.INVALID_PATH,
            message=f"Invalid config path: {path!r}",
            suggestion="Use dot-separated, non-empty segments (e.g. sections.news)",
            context={"path": path}
        )
        self.path = path


class ConfigLoadError(ConfigError):
    """Persisted reconciler state could not be decoded."""

    def __init__(self, source: str, reason: str, code: ErrorCode = ErrorCode.CONFIG_LOAD_FAILED):
        """
        Initialize configuration load error.

        Args:
            source: Name of the record that failed to load
            reason: Reason for load failure
            code: More specific persistence error code
        """
        super().__init__(
            code=code,
            message=f"Failed to load {source}: {reason}",
            suggestion="Remove the corrupt record and regenerate it from project.yaml",
            context={"source": source, "reason": reason}
        )
