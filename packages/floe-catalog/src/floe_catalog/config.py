"""Pydantic configuration models for floe-catalog.

This module provides:
- RetryConfig: Retry policy for filesystem operations with exponential backoff
- CatalogConfig: Coordinator configuration (root directory, store, timeouts)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class RetryConfig(BaseModel):
    """Retry policy configuration for storage layout operations.

    Implements exponential backoff with jitter for transient filesystem failures.

    Attributes:
        max_attempts: Maximum attempts (1-10, default 3).
        initial_wait_seconds: Initial backoff wait (0.01-30s, default 0.1).
        max_wait_seconds: Maximum backoff cap (0.01-300s, default 2.0).
        jitter_seconds: Random jitter range (0-10s, default 0.1).

    Example:
        >>> config = RetryConfig(max_attempts=5, initial_wait_seconds=0.5)
        >>> config.max_attempts
        5
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of attempts",
    )
    initial_wait_seconds: float = Field(
        default=0.1,
        ge=0.01,
        le=30.0,
        description="Initial backoff wait time in seconds",
    )
    max_wait_seconds: float = Field(
        default=2.0,
        ge=0.01,
        le=300.0,
        description="Maximum backoff wait time in seconds",
    )
    jitter_seconds: float = Field(
        default=0.1,
        ge=0.0,
        le=10.0,
        description="Random jitter range in seconds",
    )

    @field_validator("max_wait_seconds")
    @classmethod
    def max_wait_must_exceed_initial(cls, v: float, info: object) -> float:
        """Validate that max_wait_seconds >= initial_wait_seconds."""
        data = getattr(info, "data", {})
        initial = data.get("initial_wait_seconds", 0.1)
        if v < initial:
            msg = f"max_wait_seconds ({v}) must be >= initial_wait_seconds ({initial})"
            raise ValueError(msg)
        return v


class CatalogConfig(BaseModel):
    """Catalog coordinator configuration.

    Attributes:
        root_dir: Root directory of the coordinator's storage.
        data_dir_name: Base directory under root_dir holding one directory per namespace.
        database_url: SQLAlchemy URL of the durable catalog store. Defaults to a
            SQLite database inside root_dir.
        operation_timeout_seconds: How long an administrative caller waits for a response.
        lock_timeout_seconds: How long a request waits for exclusive access to its
            namespace (None waits indefinitely).
        max_workers: Administrative requests executed in parallel.
        retry: Retry policy for directory operations.

    Example:
        >>> config = CatalogConfig(root_dir="/var/lib/floe")
        >>> config.data_path
        PosixPath('/var/lib/floe/data')
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root_dir: Path = Field(
        ...,
        description="Root directory for catalog data",
    )
    data_dir_name: str = Field(
        default="data",
        min_length=1,
        description="Base namespace directory under root_dir",
    )
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL of the catalog store (default: SQLite in root_dir)",
    )
    operation_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        le=3600.0,
        description="Caller-side wait for an administrative response",
    )
    lock_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Wait for per-namespace exclusive access (None = unbounded)",
    )
    max_workers: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Concurrent administrative requests",
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Retry policy for directory operations",
    )

    @field_validator("data_dir_name")
    @classmethod
    def validate_data_dir_name(cls, v: str) -> str:
        """The base directory must be a single path component."""
        if "/" in v or "\\" in v or v in (".", ".."):
            msg = f"data_dir_name must be a single directory name, got: {v}"
            raise ValueError(msg)
        return v

    @property
    def data_path(self) -> Path:
        """Directory holding one subdirectory per namespace."""
        return self.root_dir / self.data_dir_name

    def get_database_url(self) -> str:
        """Return the store URL, defaulting to ``<root_dir>/catalog.db``."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.root_dir / 'catalog.db'}"

    @classmethod
    def from_yaml(cls, path: str | Path) -> CatalogConfig:
        """Load configuration from a YAML file.

        Relative ``root_dir`` values are resolved against the file's directory.

        Args:
            path: Path to the YAML file.

        Returns:
            Validated CatalogConfig.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            yaml.YAMLError: If YAML syntax is invalid.
            ValidationError: If schema validation fails.

        Example:
            >>> config = CatalogConfig.from_yaml("catalog.yaml")
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        with path.open("r") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}

        root = data.get("root_dir")
        if root is not None and not Path(root).is_absolute():
            data["root_dir"] = str(path.parent / root)

        return cls.model_validate(data)
