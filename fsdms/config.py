"""
Configuration management for fsdms.

Configuration comes from environment variables, with typed dataclasses and
validation. Library users can also build the dataclasses directly.

Invariants:
    - All settings have sensible defaults for local development
    - Charset names are validated against Python's codec registry

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .store.content import DEFAULT_CHARSET, validate_charset

logger = logging.getLogger(__name__)

LOG_FORMATS = ("text", "json")


@dataclass(frozen=True)
class StorageConfig:
    """Filesystem storage configuration.

    Attributes:
        base_path: Directory holding all workspaces
        default_charset: Charset for text content when a call passes none
        alternative_charset: Fallback charset for text reads
        create_base_path: Create base_path on startup if missing
    """

    base_path: str = "./dms-data"
    default_charset: str = DEFAULT_CHARSET
    alternative_charset: str | None = None
    create_base_path: bool = False

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        return cls(
            base_path=os.getenv("DMS_BASE_PATH", "./dms-data"),
            default_charset=os.getenv("DMS_DEFAULT_CHARSET", DEFAULT_CHARSET),
            alternative_charset=os.getenv("DMS_ALTERNATIVE_CHARSET") or None,
            create_base_path=os.getenv("DMS_CREATE_BASE_PATH", "false").lower() == "true",
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass
class DmsConfig:
    """Complete configuration.

    Attributes:
        storage: Filesystem storage configuration
        observability: Logging configuration
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> DmsConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            storage=StorageConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        for name in (self.storage.default_charset, self.storage.alternative_charset):
            if name is None:
                continue
            try:
                validate_charset(name)
            except LookupError:
                raise ValueError(f"Unknown charset '{name}'")

        if self.observability.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: text, json"
            )

        if not os.path.exists(self.storage.base_path):
            if self.storage.create_base_path:
                logger.warning(
                    f"Base path does not exist: {self.storage.base_path}. "
                    "It will be created on startup."
                )
            else:
                logger.warning(
                    f"Base path does not exist: {self.storage.base_path}. "
                    "Set DMS_CREATE_BASE_PATH=true or create it before opening workspaces."
                )

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "DMS configuration loaded",
            extra={
                "base_path": self.storage.base_path,
                "default_charset": self.storage.default_charset,
                "alternative_charset": self.storage.alternative_charset,
                "log_level": self.observability.log_level,
            },
        )
