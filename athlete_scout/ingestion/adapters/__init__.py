"""
Adapter Registry Module
=======================

Central registry for source-specific adapters.
Provides factory functions for creating adapters by name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from athlete_scout.ingestion.adapters.athletic_net import AthleticNetAdapter
from athlete_scout.ingestion.adapters.base import BaseAdapter, RawSourceRecord, SearchOptions
from athlete_scout.ingestion.adapters.espn import EspnAdapter
from athlete_scout.ingestion.adapters.hudl import HudlAdapter
from athlete_scout.ingestion.adapters.maxpreps import MaxPrepsAdapter
from athlete_scout.ingestion.adapters.sports247 import Sports247Adapter

if TYPE_CHECKING:
    from athlete_scout.ingestion.fetcher import Fetcher


# Registry mapping adapter names to their classes
ADAPTER_REGISTRY: dict[str, type[BaseAdapter]] = {
    "maxpreps": MaxPrepsAdapter,
    "espn": EspnAdapter,
    "247sports": Sports247Adapter,
    "athletic.net": AthleticNetAdapter,
    "hudl": HudlAdapter,
}


def get_adapter(
    adapter_type: str,
    fetcher: Fetcher,
    config: dict[str, Any] | None = None,
) -> BaseAdapter | None:
    """
    Get an adapter instance by type name.

    Args:
        adapter_type: Name of the adapter (e.g., "maxpreps")
        fetcher: Shared fetcher the adapter issues requests through
        config: Optional custom configuration

    Returns:
        Adapter instance, or None if type not found
    """
    adapter_class = ADAPTER_REGISTRY.get(adapter_type)
    if adapter_class is None:
        return None
    return adapter_class(fetcher, config)


def register_adapter(name: str, adapter_class: type[BaseAdapter]) -> None:
    """
    Register a new adapter type.

    Args:
        name: Name to register the adapter under
        adapter_class: Adapter class (must inherit from BaseAdapter)
    """
    if not issubclass(adapter_class, BaseAdapter):
        raise TypeError(f"{adapter_class} must inherit from BaseAdapter")
    ADAPTER_REGISTRY[name] = adapter_class


def list_adapters() -> list[str]:
    """List all registered adapter names."""
    return list(ADAPTER_REGISTRY.keys())


def get_adapter_info(adapter_type: str) -> dict[str, str] | None:
    """
    Get information about an adapter type.

    Returns:
        Dict with adapter info, or None if not found
    """
    adapter_class = ADAPTER_REGISTRY.get(adapter_type)
    if adapter_class is None:
        return None

    return {
        "name": adapter_class.ADAPTER_NAME,
        "version": adapter_class.ADAPTER_VERSION,
        "class": adapter_class.__name__,
        "source": adapter_class.SOURCE_NAME,
    }


def create_default_adapters(fetcher: Fetcher) -> list[BaseAdapter]:
    """
    Instantiate adapters for every enabled source in the fetcher's registry.

    Sources whose adapter type is not registered are skipped.

    Returns:
        Adapters ordered by source priority, highest first
    """
    adapters: list[BaseAdapter] = []
    for source in fetcher.registry.list_enabled_sources():
        adapter = get_adapter(source.adapter, fetcher, dict(source.custom_config))
        if adapter is not None:
            adapters.append(adapter)
    return adapters


__all__ = [
    # Registry functions
    "get_adapter",
    "register_adapter",
    "list_adapters",
    "get_adapter_info",
    "create_default_adapters",
    "ADAPTER_REGISTRY",
    # Base classes
    "BaseAdapter",
    "RawSourceRecord",
    "SearchOptions",
    # Concrete adapters
    "MaxPrepsAdapter",
    "EspnAdapter",
    "Sports247Adapter",
    "AthleticNetAdapter",
    "HudlAdapter",
]
