"""
Base class for the long-lived help-desk services.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from utils.logging import get_logger


class BaseService(ABC):
    """
    Shared start-up/shut-down lifecycle for services owned by the ServiceContainer.

    Subclasses implement ``_initialize_impl`` and may override
    ``_shutdown_impl`` and ``health_check``.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.logger = get_logger(f"services.{name}")
        self._initialized = False
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Run ``_initialize_impl`` once; concurrent callers wait for the first."""
        async with self._lock:
            if self._initialized:
                return
            try:
                await self._initialize_impl()
            except Exception as e:
                self.logger.exception(f"Failed to start {self.name} service", exc_info=e)
                raise
            self._initialized = True
            self.logger.debug(f"{self.name} service started")

    async def shutdown(self) -> None:
        """Release resources. Errors are logged so the remaining services still stop."""
        if not self._initialized:
            return
        try:
            await self._shutdown_impl()
        except Exception as e:
            self.logger.exception(f"Error while stopping {self.name} service", exc_info=e)
        finally:
            self._initialized = False

    @abstractmethod
    async def _initialize_impl(self) -> None:
        pass

    async def _shutdown_impl(self) -> None:
        pass

    async def health_check(self) -> dict[str, Any]:
        """Summary for ``GET /health``."""
        return {"status": "ok" if self._initialized else "stopped"}
