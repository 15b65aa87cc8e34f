"""
Athlete Scout Ingestion Framework
=================================

This package provides the pipeline that collects athlete data from external
sources and fuses it into candidate profiles.

Pipeline Stages:
1. Fetch - Fetcher paces requests per source, retries, rotates user agents
2. Search - Adapters build search URLs and extract raw records from HTML
3. Aggregate - Aggregator queries every source concurrently and fuses records
4. Normalize - Canonical names, sports, positions, schools and stats
5. Schedule - Scheduler runs collect-then-store jobs under bounded concurrency
"""

from athlete_scout.ingestion.registry import (
    GlobalConfig,
    RateLimitConfig,
    SourceConfig,
    SourceRegistry,
    get_default_registry,
)
from athlete_scout.ingestion.fetcher import (
    Document,
    Fetcher,
    RateLimiterState,
)
from athlete_scout.ingestion.aggregator import (
    Aggregator,
    dedupe_highlights,
    merge_recruiting,
    merge_stats,
)
from athlete_scout.ingestion.normalizer import ProfileNormalizer
from athlete_scout.ingestion.jobs import (
    Job,
    JobActionResult,
    Scheduler,
)

__all__ = [
    # Registry
    "SourceRegistry",
    "SourceConfig",
    "RateLimitConfig",
    "GlobalConfig",
    "get_default_registry",
    # Fetcher
    "Fetcher",
    "Document",
    "RateLimiterState",
    # Aggregator
    "Aggregator",
    "merge_stats",
    "merge_recruiting",
    "dedupe_highlights",
    # Normalizer
    "ProfileNormalizer",
    # Jobs
    "Scheduler",
    "Job",
    "JobActionResult",
]
