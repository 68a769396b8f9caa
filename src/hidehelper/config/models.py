"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (HIDEHELPER__SECTION__KEY)
3. Local YAML (.hidehelper/config.yaml)
4. Global YAML (~/.config/hidehelper/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    HIDEHELPER__<SECTION>__<KEY>=<VALUE>

Examples:
    HIDEHELPER__LOGGING__LEVEL=DEBUG
    HIDEHELPER__INDEX__USE_WORKER=false
    HIDEHELPER__INDEX__OPERATION_TIMEOUT_SEC=10
    HIDEHELPER__HIDE__HIDE_LAST_N=20
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
StartMethod = Literal["spawn", "fork", "forkserver"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        HIDEHELPER__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every dispatched operation.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Message visibility index configuration.

    Env vars:
        HIDEHELPER__INDEX__USE_WORKER: Run index work in a background process
        HIDEHELPER__INDEX__BATCH_SIZE: Positions scanned per range chunk
        HIDEHELPER__INDEX__OPERATION_TIMEOUT_SEC: Per-operation worker deadline
        HIDEHELPER__INDEX__WORKER_START_METHOD: multiprocessing start method
    """

    use_worker: bool = Field(
        default=True,
        description="Dispatch index builds and range updates to a background process. "
        "When false (or when the worker cannot start) all work runs in-process.",
    )
    batch_size: int = Field(
        default=50,
        description="Positions scanned per chunk during a range update. "
        "Only affects how often the scan may yield, never the result.",
    )
    operation_timeout_sec: float = Field(
        default=5.0,
        description="Deadline for a single background operation. "
        "RISK: Too low rejects builds over very long chats.",
    )
    worker_start_method: StartMethod | None = Field(
        default=None,
        description="multiprocessing start method for the worker. Default: platform default.",
    )

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"batch_size must be >= 1, got {v}")
        return v

    @field_validator("operation_timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"operation_timeout_sec must be > 0, got {v}")
        return v


class HideConfig(BaseModel):
    """Default hide policy.

    Env vars:
        HIDEHELPER__HIDE__HIDE_LAST_N: Keep only the last N messages visible (0 = off)
    """

    hide_last_n: int = Field(
        default=0,
        description="Hide every message except the last N. 0 unhides everything.",
    )

    @field_validator("hide_last_n")
    @classmethod
    def validate_hide_last_n(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"hide_last_n must be >= 0, got {v}")
        return v


class HideHelperConfig(BaseModel):
    """Root configuration for hide-helper.

    All settings can be configured via:
    1. Environment variables: HIDEHELPER__SECTION__KEY
    2. YAML config files (local or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    hide: HideConfig = Field(default_factory=HideConfig)
