"""
Source Registry Module
======================

Manages source configurations loaded from YAML files. Sources define
which external athlete data providers are queried, how politely, and how
much their data is trusted during fusion.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_USER_AGENTS: list[str] = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
]

# Built-in source definitions, used when no sources.yaml is found
DEFAULT_SOURCES: list[dict[str, Any]] = [
    {
        "name": "maxpreps",
        "base_url": "https://www.maxpreps.com",
        "adapter": "maxpreps",
        "priority": 1.0,
        "description": "High school stats and profiles",
        "rate_limit": {"min_delay_ms": 2000},
    },
    {
        "name": "espn",
        "base_url": "https://www.espn.com",
        "adapter": "espn",
        "priority": 0.9,
        "description": "Player stats and rankings",
        "rate_limit": {"min_delay_ms": 3000},
    },
    {
        "name": "247sports",
        "base_url": "https://247sports.com",
        "adapter": "247sports",
        "priority": 0.8,
        "description": "Recruiting ratings, stars and offers",
        "rate_limit": {"min_delay_ms": 2500},
    },
    {
        "name": "athletic.net",
        "base_url": "https://www.athletic.net",
        "adapter": "athletic.net",
        "priority": 0.7,
        "description": "Track and field results",
        "rate_limit": {"min_delay_ms": 2500},
    },
    {
        "name": "hudl",
        "base_url": "https://www.hudl.com",
        "adapter": "hudl",
        "priority": 0.6,
        "description": "Video highlights",
        "rate_limit": {"min_delay_ms": 3000},
    },
]


@dataclass
class RateLimitConfig:
    """Politeness delay for a source."""

    min_delay_ms: int = 2000
    jitter_ms: int = 1000

    @classmethod
    def from_dict(
        cls, data: dict[str, Any] | None, default: RateLimitConfig | None = None
    ) -> RateLimitConfig:
        """Create from dictionary, using defaults for missing values."""
        base = default or cls()
        if data is None:
            return cls(min_delay_ms=base.min_delay_ms, jitter_ms=base.jitter_ms)
        return cls(
            min_delay_ms=int(data.get("min_delay_ms", base.min_delay_ms)),
            jitter_ms=int(data.get("jitter_ms", base.jitter_ms)),
        )


@dataclass
class SourceConfig:
    """Configuration for a single external source."""

    name: str
    base_url: str
    adapter: str
    enabled: bool = True
    priority: float = 0.5
    description: str = ""
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    user_agents: list[str] = field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    custom_config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], default_rate_limit: RateLimitConfig | None = None
    ) -> SourceConfig:
        """Create from dictionary."""
        priority = float(data.get("priority", 0.5))
        if not 0.0 < priority <= 1.0:
            raise ValueError(f"Source priority must be in (0, 1], got {priority}")

        return cls(
            name=data["name"],
            base_url=data["base_url"].rstrip("/"),
            adapter=data.get("adapter", data["name"]),
            enabled=data.get("enabled", True),
            priority=priority,
            description=data.get("description", ""),
            rate_limit=RateLimitConfig.from_dict(data.get("rate_limit"), default_rate_limit),
            user_agents=data.get("user_agents") or list(DEFAULT_USER_AGENTS),
            custom_config=data.get("custom_config", {}),
        )


@dataclass
class GlobalConfig:
    """Global pipeline settings."""

    default_rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    request_timeout: float = 30.0
    max_retries: int = 3
    max_concurrency: int = 3
    job_retention_hours: int = 24

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GlobalConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            default_rate_limit=RateLimitConfig.from_dict(data.get("default_rate_limit")),
            request_timeout=float(data.get("request_timeout", 30.0)),
            max_retries=int(data.get("max_retries", 3)),
            max_concurrency=int(data.get("max_concurrency", 3)),
            job_retention_hours=int(data.get("job_retention_hours", 24)),
        )


class SourceRegistry:
    """
    Registry for managing external source configurations.

    Loads source definitions from a YAML file and provides methods
    to query and manage them.
    """

    def __init__(self) -> None:
        self._sources: dict[str, SourceConfig] = {}
        self._global_config: GlobalConfig = GlobalConfig()
        self._config_path: Path | None = None

    @classmethod
    def with_defaults(cls) -> SourceRegistry:
        """Create a registry holding the built-in source definitions."""
        registry = cls()
        registry.load_dict({"sources": DEFAULT_SOURCES})
        return registry

    @property
    def global_config(self) -> GlobalConfig:
        """Get global configuration."""
        return self._global_config

    def load_config(self, config_path: Path | str) -> None:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the sources.yaml file
        """
        config_path = Path(config_path).expanduser().resolve()
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        self._config_path = config_path
        self.load_dict(data)

    def load_dict(self, data: dict[str, Any]) -> None:
        """Load configuration from an already-parsed mapping."""
        self._global_config = GlobalConfig.from_dict(data.get("global"))

        self._sources.clear()
        for source_data in data.get("sources", []):
            source = SourceConfig.from_dict(
                source_data, self._global_config.default_rate_limit
            )
            self._sources[source.name] = source

    def get_source(self, name: str) -> SourceConfig | None:
        """
        Get a source configuration by name.

        Args:
            name: Source name

        Returns:
            SourceConfig if found, None otherwise
        """
        return self._sources.get(name)

    def list_sources(self) -> list[SourceConfig]:
        """All registered sources, highest priority first."""
        return sorted(self._sources.values(), key=lambda s: s.priority, reverse=True)

    def list_enabled_sources(self) -> list[SourceConfig]:
        """Enabled sources, highest priority first."""
        return [s for s in self.list_sources() if s.enabled]

    def enable_source(self, name: str) -> bool:
        """
        Enable a source.

        Returns:
            True if source was found and enabled, False otherwise
        """
        source = self._sources.get(name)
        if source is None:
            return False
        source.enabled = True
        return True

    def disable_source(self, name: str) -> bool:
        """
        Disable a source.

        Returns:
            True if source was found and disabled, False otherwise
        """
        source = self._sources.get(name)
        if source is None:
            return False
        source.enabled = False
        return True


# Global registry instance
_default_registry: SourceRegistry | None = None


def get_default_registry() -> SourceRegistry:
    """
    Get the default source registry instance.

    Loads configuration from the path specified in SOURCES_CONFIG_PATH
    environment variable, or falls back to config/sources.yaml, or to the
    built-in source definitions when neither exists.

    Returns:
        The global SourceRegistry instance
    """
    global _default_registry

    if _default_registry is None:
        config_path = os.environ.get("SOURCES_CONFIG_PATH")
        if config_path:
            path = Path(config_path)
        else:
            project_root = Path(__file__).parent.parent.parent
            path = project_root / "config" / "sources.yaml"

        if path.exists():
            _default_registry = SourceRegistry()
            _default_registry.load_config(path)
        else:
            _default_registry = SourceRegistry.with_defaults()

    return _default_registry


def reset_default_registry() -> None:
    """Reset the default registry (useful for testing)."""
    global _default_registry
    _default_registry = None
