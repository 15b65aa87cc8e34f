"""
Adapter Base Module
===================

Defines the abstract base class for source-specific adapters.
Adapters are responsible for:
1. Building candidate search URLs for an athlete
2. Extracting raw athlete records from the first usable document

Source markup is unstable, so every field is located through an ordered
list of pure extraction rules; the first rule that yields a value wins.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote_plus, urljoin

from bs4 import BeautifulSoup, Tag

from athlete_scout.core.enums import ConfidenceTag
from athlete_scout.core.errors import NetworkError, ValidationError
from athlete_scout.core.schema import Highlight, TrackEvent
from athlete_scout.ingestion.registry import SourceConfig, SourceRegistry

if TYPE_CHECKING:
    from athlete_scout.ingestion.fetcher import Document, Fetcher

logger = logging.getLogger(__name__)

T = TypeVar("T")
Rule = Callable[[Tag], T | None]

RECRUITING_FIELDS = ("rating", "stars", "ranking", "offers")


@dataclass
class SearchOptions:
    """Search hints passed to every adapter."""

    state: str = "TX"
    sport: str = "football"
    year: int = field(default_factory=lambda: datetime.now(UTC).year)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SearchOptions:
        """
        Create from dictionary, using defaults for missing values.

        Raises:
            ValidationError: If the year is not a whole number
        """
        data = data or {}
        defaults = cls()
        try:
            year = int(data.get("year") or defaults.year)
        except (TypeError, ValueError) as e:
            raise ValidationError("year", f"must be a whole number, got {data.get('year')!r}") from e
        return cls(
            state=data.get("state") or defaults.state,
            sport=data.get("sport") or defaults.sport,
            year=year,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"state": self.state, "sport": self.sport, "year": self.year}


@dataclass
class RawSourceRecord:
    """
    One source's view of an athlete.

    Every field except source metadata is optional; absent data is omitted.
    """

    source: str
    name: str | None = None
    school: str | None = None
    position: str | None = None
    year: int | None = None
    profile_url: str | None = None
    stats: dict[str, float] = field(default_factory=dict)
    highlights: list[Highlight] = field(default_factory=list)
    recruiting: dict[str, float] = field(default_factory=dict)
    events: list[TrackEvent] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    scraped_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    confidence_tag: ConfidenceTag = ConfidenceTag.HIGH

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source": self.source,
            "name": self.name,
            "school": self.school,
            "position": self.position,
            "year": self.year,
            "profile_url": self.profile_url,
            "stats": dict(self.stats),
            "highlights": [h.model_dump(mode="json") for h in self.highlights],
            "recruiting": dict(self.recruiting),
            "events": [e.model_dump(mode="json") for e in self.events],
            "extra": dict(self.extra),
            "scraped_at": self.scraped_at.isoformat(),
            "confidence_tag": self.confidence_tag.value,
        }


# ============================================================================
# Extraction rules
# ============================================================================


def clean_text(value: str | None) -> str | None:
    """Collapse whitespace; empty strings become None."""
    if value is None:
        return None
    s = re.sub(r"\s+", " ", value).strip()
    return s or None


def parse_numeric(value: Any) -> float | None:
    """
    Parse the first number out of a value.

    Args:
        value: Number or text such as "1,234 yds" or "87.5%"

    Returns:
        Parsed number, or None if no number is present
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = re.search(r"-?\d+(?:\.\d+)?", str(value).replace(",", ""))
    return float(match.group()) if match else None


def text_rule(selector: str) -> Rule[str]:
    """Rule returning the text of the first element matching a selector."""

    def rule(node: Tag) -> str | None:
        found = node.select_one(selector)
        return clean_text(found.get_text(" ")) if found is not None else None

    return rule


def attr_rule(selector: str, *attrs: str) -> Rule[str]:
    """Rule returning the first present attribute of the first matching element."""

    def rule(node: Tag) -> str | None:
        found = node.select_one(selector)
        if found is None:
            return None
        for attr in attrs:
            value = found.get(attr)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    return rule


def numeric_rule(selector: str) -> Rule[float]:
    """Rule returning the number inside the first matching element."""
    inner = text_rule(selector)

    def rule(node: Tag) -> float | None:
        return parse_numeric(inner(node))

    return rule


def year_rule(selector: str) -> Rule[int]:
    """Rule returning a four-digit year from the first matching element."""
    inner = text_rule(selector)

    def rule(node: Tag) -> int | None:
        text = inner(node)
        if text and re.fullmatch(r"\d{4}", text):
            return int(text)
        return None

    return rule


def text_rules(*selectors: str) -> list[Rule[str]]:
    return [text_rule(s) for s in selectors]


def numeric_rules(*selectors: str) -> list[Rule[float]]:
    return [numeric_rule(s) for s in selectors]


def first_match(rules: Sequence[Rule[T]], node: Tag) -> T | None:
    """Apply rules in order and return the first non-None value."""
    for rule in rules:
        value = rule(node)
        if value is not None:
            return value
    return None


# Stat label keywords mapped to canonical stat keys, checked in order
STAT_LABEL_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bcomp", re.I), "completion_percentage"),
    (re.compile(r"\bpass", re.I), "passing_yards"),
    (re.compile(r"\brush", re.I), "rushing_yards"),
    (re.compile(r"\b(?:receiving|recept|rec)\b", re.I), "receiving_yards"),
    (re.compile(r"\btouchdowns?\b|\btds?\b", re.I), "touchdowns"),
    (re.compile(r"\btackles?\b", re.I), "tackles"),
    (re.compile(r"\bsacks?\b", re.I), "sacks"),
    (re.compile(r"\binterceptions?\b|\bints?\b", re.I), "interceptions"),
]

# Free-text stat patterns used when no labelled stat elements exist
STAT_TEXT_PATTERNS: dict[str, re.Pattern[str]] = {
    "passing_yards": re.compile(r"passing yards?:?\s*(\d+(?:,\d+)*)", re.I),
    "rushing_yards": re.compile(r"rushing yards?:?\s*(\d+(?:,\d+)*)", re.I),
    "receiving_yards": re.compile(r"receiving yards?:?\s*(\d+(?:,\d+)*)", re.I),
    "touchdowns": re.compile(r"touchdowns?:?\s*(\d+)", re.I),
    "tackles": re.compile(r"tackles?:?\s*(\d+)", re.I),
    "sacks": re.compile(r"sacks?:?\s*(\d+(?:\.\d+)?)", re.I),
    "interceptions": re.compile(r"interceptions?:?\s*(\d+)", re.I),
}


def canonical_stat_key(label: str, keep_unknown: bool = False) -> str | None:
    """
    Map a free-form stat label to a canonical key.

    Args:
        label: Label text such as "Rushing Yds" or "TD"
        keep_unknown: Return a slug of unknown labels instead of None

    Returns:
        Canonical stat key, or None for unknown labels
    """
    for pattern, key in STAT_LABEL_PATTERNS:
        if pattern.search(label):
            return key
    if keep_unknown:
        slug = re.sub(r"[^a-z0-9]+", "_", label.lower()).strip("_")
        return slug or None
    return None


def extract_labelled_stats(
    node: Tag,
    item_selector: str,
    label_rules: Sequence[Rule[str]],
    value_rules: Sequence[Rule[str]],
    keep_unknown: bool = False,
) -> dict[str, float]:
    """Extract stats from repeated label/value elements."""
    stats: dict[str, float] = {}
    for item in node.select(item_selector):
        label = first_match(label_rules, item)
        value = parse_numeric(first_match(value_rules, item))
        if not label or value is None:
            continue
        key = canonical_stat_key(label, keep_unknown=keep_unknown)
        if key:
            stats[key] = value
    return stats


def extract_text_stats(text: str, existing: dict[str, float] | None = None) -> dict[str, float]:
    """Fill stats missing from ``existing`` using free-text patterns."""
    stats = dict(existing or {})
    for key, pattern in STAT_TEXT_PATTERNS.items():
        if key in stats:
            continue
        match = pattern.search(text)
        if match:
            value = parse_numeric(match.group(1))
            if value is not None:
                stats[key] = value
    return stats


def mentions_athlete(text: str, athlete_name: str) -> bool:
    """Whether every token of the athlete's name appears in the text."""
    lowered = text.lower()
    tokens = [t for t in athlete_name.lower().split() if t]
    return bool(tokens) and all(t in lowered for t in tokens)


class BaseAdapter(ABC):
    """
    Abstract base class for source-specific adapters.

    Subclasses must implement:
    - build_search_urls: Candidate search URLs, most specific first
    - parse_record: Turn one result container into a RawSourceRecord

    Subclasses configure:
    - CONTAINER_SELECTORS: Result container selectors, tried in order
    - LINK_SELECTOR: Anchor selector for the link-scan fallback
    """

    ADAPTER_NAME: str = "base"
    ADAPTER_VERSION: str = "1.0.0"
    SOURCE_NAME: str = "base"

    CONTAINER_SELECTORS: list[str] = []
    LINK_SELECTOR: str = ""

    def __init__(
        self,
        fetcher: Fetcher,
        config: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            fetcher: Shared fetcher used for every request
            config: Optional custom configuration from sources.yaml
        """
        self.fetcher = fetcher
        source = fetcher.registry.get_source(self.SOURCE_NAME)
        if source is None:
            source = SourceRegistry.with_defaults().get_source(self.SOURCE_NAME)
        if source is None:
            raise ValueError(f"No source configuration for '{self.SOURCE_NAME}'")
        self.source: SourceConfig = source
        self.config = config if config is not None else dict(source.custom_config)

    @property
    def priority(self) -> float:
        return self.source.priority

    @property
    def base_url(self) -> str:
        return self.source.base_url

    @staticmethod
    def quote(value: str) -> str:
        return quote_plus(value.strip())

    def absolute_url(self, href: str | None) -> str | None:
        if not href:
            return None
        return urljoin(f"{self.base_url}/", href)

    @abstractmethod
    def build_search_urls(self, athlete_name: str, options: SearchOptions) -> list[str]:
        """
        Build candidate search URLs, most specific first.

        Args:
            athlete_name: Athlete to search for
            options: Search hints

        Returns:
            Ordered list of URLs to try
        """

    @abstractmethod
    def parse_record(
        self, node: Tag, athlete_name: str, options: SearchOptions
    ) -> RawSourceRecord | None:
        """
        Parse one result container.

        Returns:
            RawSourceRecord, or None if the container holds nothing usable
        """

    def link_fallback(
        self, soup: BeautifulSoup, athlete_name: str, options: SearchOptions
    ) -> list[RawSourceRecord]:
        """Build low-detail records from profile links mentioning the athlete."""
        if not self.LINK_SELECTOR:
            return []

        records: list[RawSourceRecord] = []
        seen: set[str] = set()
        for anchor in soup.select(self.LINK_SELECTOR):
            text = clean_text(anchor.get_text(" "))
            href = self.absolute_url(anchor.get("href"))
            if not text or not href or href in seen:
                continue
            if not mentions_athlete(text, athlete_name):
                continue
            seen.add(href)
            records.append(
                RawSourceRecord(
                    source=self.SOURCE_NAME,
                    name=text,
                    profile_url=href,
                    confidence_tag=ConfidenceTag.MEDIUM,
                )
            )
        return records

    def extract_records(
        self, html: str, athlete_name: str, options: SearchOptions
    ) -> list[RawSourceRecord]:
        """
        Extract records from a fetched page.

        The first container selector producing any named record wins;
        when none does, the link-scan fallback runs.
        """
        soup = BeautifulSoup(html, "html.parser")

        for selector in self.CONTAINER_SELECTORS:
            records = []
            for node in soup.select(selector):
                record = self.parse_record(node, athlete_name, options)
                if record is not None and self.is_usable(record):
                    records.append(record)
            if records:
                return records

        return self.link_fallback(soup, athlete_name, options)

    def is_usable(self, record: RawSourceRecord) -> bool:
        """Whether a parsed record carries enough to keep."""
        return bool(record.name)

    async def fetch_first_document(self, urls: list[str]) -> Document | None:
        """Fetch candidate URLs in order and return the first that succeeds."""
        for url in urls:
            try:
                return await self.fetcher.fetch(url, self.SOURCE_NAME)
            except NetworkError as e:
                logger.debug(f"{self.SOURCE_NAME} search URL failed: {url} ({e.last_error})")
        return None

    async def search(
        self, athlete_name: str, options: SearchOptions | None = None
    ) -> list[RawSourceRecord]:
        """
        Search this source for an athlete.

        Never raises: network exhaustion and parse failures yield an empty list.

        Args:
            athlete_name: Athlete to search for
            options: Search hints

        Returns:
            Raw records found on the first usable document
        """
        options = options or SearchOptions()
        urls = self.build_search_urls(athlete_name, options)

        document = await self.fetch_first_document(urls)
        if document is None:
            logger.warning(f"All {self.SOURCE_NAME} search URLs failed for athlete: {athlete_name}")
            return []

        try:
            records = self.extract_records(document.text, athlete_name, options)
        except Exception:
            logger.exception(f"Error parsing {self.SOURCE_NAME} results for {athlete_name}")
            return []

        logger.info(
            f"{self.SOURCE_NAME} scraping completed for {athlete_name}: "
            f"found {len(records)} results"
        )
        return records

    def get_info(self) -> dict[str, str]:
        """Get adapter information."""
        return {
            "name": self.ADAPTER_NAME,
            "version": self.ADAPTER_VERSION,
            "class": self.__class__.__name__,
            "source": self.SOURCE_NAME,
        }
