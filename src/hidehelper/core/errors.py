"""hide-helper error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index / execution backend
- 4xxx: Chat files
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Index / backend (3xxx)
    UNSUPPORTED_OPERATION = 3001
    OPERATION_TIMEOUT = 3002
    CHANNEL_FATAL = 3003
    OPERATION_FAILED = 3004
    INVALID_MESSAGE = 3005

    # Chat files (4xxx)
    CHAT_PARSE_ERROR = 4001
    CHAT_FILE_NOT_FOUND = 4002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class HideHelperError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'OPERATION_TIMEOUT')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(HideHelperError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class BackendError(HideHelperError):
    """Failures surfaced by an execution backend for a single operation."""

    @classmethod
    def unsupported_operation(cls, action: str) -> "BackendError":
        return cls(
            code=ErrorCode.UNSUPPORTED_OPERATION,
            message=f"Unsupported operation: {action}",
            details={"action": action},
        )

    @classmethod
    def timeout(cls, operation_id: int, action: str, timeout_sec: float) -> "BackendError":
        return cls(
            code=ErrorCode.OPERATION_TIMEOUT,
            message=f"Operation {operation_id} ({action}) timed out after {timeout_sec:g}s",
            retryable=True,
            details={"operation_id": operation_id, "action": action, "timeout_sec": timeout_sec},
        )

    @classmethod
    def operation_failed(cls, reason: str, **details: Any) -> "BackendError":
        return cls(
            code=ErrorCode.OPERATION_FAILED,
            message=reason,
            details=details,
        )

    @classmethod
    def invalid_message(cls, reason: str, **details: Any) -> "BackendError":
        return cls(
            code=ErrorCode.INVALID_MESSAGE,
            message=f"Invalid worker message: {reason}",
            details=details,
        )


class ChannelError(BackendError):
    """The background execution context itself failed."""

    @classmethod
    def fatal(cls, reason: str, **details: Any) -> "ChannelError":
        return cls(
            code=ErrorCode.CHANNEL_FATAL,
            message=f"Worker channel failed: {reason}",
            details=details,
        )


class InternalError(HideHelperError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )


class ChatFileError(HideHelperError):
    """Chat file could not be read."""

    @classmethod
    def parse_error(cls, path: str, line: int, reason: str) -> "ChatFileError":
        return cls(
            code=ErrorCode.CHAT_PARSE_ERROR,
            message=f"Invalid chat file {path}, line {line}: {reason}",
            details={"path": path, "line": line, "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ChatFileError":
        return cls(
            code=ErrorCode.CHAT_FILE_NOT_FOUND,
            message=f"Chat file not found: {path}",
            details={"path": path},
        )
