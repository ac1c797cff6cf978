"""
Workspace registry.

A DmsFactory owns one DocumentStore per workspace name for its own lifetime.
Instances are created on first request and cached without eviction; concurrent
first requests for the same name get the same instance.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from .config import DmsConfig
from .errors import InvalidArgumentError
from .store import DocumentStore
from .store.content import DEFAULT_CHARSET

logger = logging.getLogger(__name__)


class DmsFactory:
    """Hands out document stores rooted at one base path.

    Example:
        >>> factory = DmsFactory("/var/lib/dms")
        >>> store = factory.get_dms("statements")
        >>> store is factory.get_dms("statements")
        True
    """

    def __init__(
        self,
        base_path: Path | str,
        default_charset: str = DEFAULT_CHARSET,
        alternative_charset: str | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if base_path is None or not Path(base_path).exists():
            raise InvalidArgumentError(f"basePath={base_path} does not exist", base_path=str(base_path))
        self.base_path = Path(base_path)
        self.default_charset = default_charset
        self.alternative_charset = alternative_charset
        self._clock = clock
        self._stores: dict[str, DocumentStore] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: DmsConfig) -> DmsFactory:
        """Create a factory from configuration, creating the base path if allowed."""
        base_path = Path(config.storage.base_path)
        if config.storage.create_base_path and not base_path.exists():
            base_path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created base path {base_path}")
        return cls(
            base_path,
            default_charset=config.storage.default_charset,
            alternative_charset=config.storage.alternative_charset,
        )

    def get_dms(self, workspace: str) -> DocumentStore:
        """Get the store for a workspace, creating it on first use."""
        store = self._stores.get(workspace)
        if store is not None:
            return store
        with self._lock:
            store = self._stores.get(workspace)
            if store is None:
                store = DocumentStore(
                    self.base_path,
                    workspace,
                    clock=self._clock,
                    default_charset=self.default_charset,
                    alternative_charset=self.alternative_charset,
                )
                self._stores[workspace] = store
                logger.debug(f"Opened workspace {workspace}")
            return store

    @property
    def workspaces(self) -> list[str]:
        """Names of workspaces opened through this factory."""
        with self._lock:
            return sorted(self._stores)
