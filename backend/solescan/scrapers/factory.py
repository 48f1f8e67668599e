"""Factory for creating and managing source adapter instances."""

from typing import Dict, List, Optional, Type

import structlog

from solescan.scrapers.base import BaseAdapter, BaseScraperAdapter
from solescan.scrapers.registry import is_known_source
from solescan.scrapers.utils.rate_limiter import SourceRateLimiter


logger = structlog.get_logger(__name__)


class AdapterFactory:
    """Factory for creating and configuring adapter instances.

    Provides dependency injection for the shared rate limiter, the
    browser manager and the navigator. Adapters are created once per
    source and reused across queries so their HTTP clients and browser
    contexts are too.
    """

    def __init__(
        self,
        rate_limiter: Optional[SourceRateLimiter] = None,
        browser_manager=None,
        navigator=None,
    ):
        """Initialize the adapter factory.

        Args:
            rate_limiter: Shared per-source limiter (a fresh one if omitted)
            browser_manager: BrowserManager for rendered-page adapters
            navigator: Navigator for rendered-page adapters
        """
        self.rate_limiter = rate_limiter or SourceRateLimiter()
        self.browser_manager = browser_manager
        self.navigator = navigator

        # Registry of adapter classes
        self._adapter_registry: Dict[str, Type[BaseAdapter]] = {}
        self._instances: Dict[str, BaseAdapter] = {}

    def register_adapter(self, source_slug: str, adapter_class: Type[BaseAdapter]) -> None:
        """Register an adapter class for a source.

        Args:
            source_slug: Registry slug (e.g., "stockx")
            adapter_class: Adapter class (must inherit from BaseAdapter)
        """
        if not issubclass(adapter_class, BaseAdapter):
            raise ValueError(f"Adapter class must inherit from BaseAdapter: {adapter_class}")
        if not is_known_source(source_slug):
            raise ValueError(f"Unknown source: {source_slug}")

        self._adapter_registry[source_slug] = adapter_class
        self._instances.pop(source_slug, None)
        logger.debug("adapter_registered", source=source_slug, adapter_type=adapter_class.adapter_type)

    def create_adapter(self, source_slug: str, **overrides) -> Optional[BaseAdapter]:
        """Create and configure a new adapter instance.

        Args:
            source_slug: Registry slug
            **overrides: Extra constructor arguments (timeout, http_client, ...)

        Returns:
            Configured adapter instance, or None if not registered
        """
        adapter_class = self._adapter_registry.get(source_slug)
        if not adapter_class:
            logger.warning("adapter_not_found", source=source_slug)
            return None

        if issubclass(adapter_class, BaseScraperAdapter):
            overrides.setdefault("browser_manager", self.browser_manager)
            overrides.setdefault("navigator", self.navigator)

        adapter = adapter_class(**overrides)
        adapter.rate_limiter = self.rate_limiter

        logger.debug("adapter_created", source=source_slug, adapter_type=adapter.adapter_type)
        return adapter

    def get_adapter(self, source_slug: str) -> Optional[BaseAdapter]:
        """Shared adapter instance for a source, created on first use."""
        adapter = self._instances.get(source_slug)
        if adapter is None:
            adapter = self.create_adapter(source_slug)
            if adapter is not None:
                self._instances[source_slug] = adapter
        return adapter

    def get_registered_sources(self) -> List[str]:
        return list(self._adapter_registry.keys())

    def has_adapter(self, source_slug: str) -> bool:
        return source_slug in self._adapter_registry

    async def close(self) -> None:
        """Release every adapter instance created by this factory."""
        for adapter in self._instances.values():
            await adapter.close()
        self._instances.clear()
