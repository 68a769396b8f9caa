"""Core module exports."""

from hidehelper.core.errors import (
    BackendError,
    ChannelError,
    ChatFileError,
    ConfigError,
    ErrorCode,
    HideHelperError,
    InternalError,
)
from hidehelper.core.logging import (
    clear_request_id,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)
from hidehelper.core.progress import spinner, status

__all__ = [
    # Errors
    "BackendError",
    "ChannelError",
    "ChatFileError",
    "ConfigError",
    "ErrorCode",
    "HideHelperError",
    "InternalError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "set_request_id",
    # Progress
    "spinner",
    "status",
]
