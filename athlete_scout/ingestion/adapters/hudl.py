"""
Hudl Adapter
============

Video highlights. Highlight cards are collected from the search page and
attached to the first athlete profile card found there, or to a record
named after the searched athlete when the page has no profile cards.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from bs4 import BeautifulSoup, Tag

from athlete_scout.core.enums import ConfidenceTag
from athlete_scout.core.schema import Highlight
from athlete_scout.ingestion.adapters.base import (
    BaseAdapter,
    RawSourceRecord,
    SearchOptions,
    attr_rule,
    clean_text,
    first_match,
    numeric_rules,
    text_rules,
)

logger = logging.getLogger(__name__)


def parse_upload_date(value: str | None) -> datetime | None:
    """Parse an ISO-ish upload date; unparseable values become None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class HudlAdapter(BaseAdapter):
    """Adapter for hudl.com highlight search."""

    ADAPTER_NAME = "hudl"
    ADAPTER_VERSION = "1.0.0"
    SOURCE_NAME = "hudl"

    CONTAINER_SELECTORS = [
        ".athlete-profile",
        ".player-card",
        ".athlete-card",
        '[data-type="athlete"]',
    ]
    HIGHLIGHT_SELECTORS = [
        ".highlight-card",
        ".video-card",
        ".media-card",
        '[data-type="highlight"]',
        ".highlight",
    ]
    LINK_SELECTOR = 'a[href*="/highlight/"], a[href*="/video/"]'

    NAME_RULES = text_rules(".athlete-name", ".name", ".player-name", "h2", "h3")
    SCHOOL_RULES = text_rules(".school", ".team", ".team-name")
    POSITION_RULES = text_rules(".position", ".pos")
    PROFILE_RULES = [attr_rule("a", "href")]

    TITLE_RULES = text_rules(".highlight-title", ".video-title", ".title", "h3", "h4")
    URL_RULES = [
        attr_rule(".video-link", "href"),
        attr_rule(".highlight-link", "href"),
        attr_rule("a", "href"),
    ]
    THUMBNAIL_RULES = [attr_rule("img", "src", "data-src")]
    VIEW_RULES = numeric_rules(".views", ".view-count", ".plays")
    DURATION_RULES = text_rules(".duration", ".length", ".time")
    DATE_RULES = [
        attr_rule("[datetime]", "datetime"),
        *text_rules(".upload-date", ".date", ".uploaded"),
    ]

    def build_search_urls(self, athlete_name: str, options: SearchOptions) -> list[str]:
        q = self.quote(athlete_name)
        sport = self.quote(options.sport)
        return [
            f"{self.base_url}/search?q={q}&type=athletes",
            f"{self.base_url}/search/athletes?q={q}",
            f"{self.base_url}/athletes?q={q}",
            f"{self.base_url}/search?query={q}&filters=sport:{sport}",
        ]

    def parse_highlight(self, node: Tag) -> Highlight | None:
        """Parse one highlight card; cards without a link are dropped."""
        url = self.absolute_url(first_match(self.URL_RULES, node))
        if not url:
            return None
        views = first_match(self.VIEW_RULES, node)
        return Highlight(
            title=first_match(self.TITLE_RULES, node) or "Untitled",
            url=url,
            thumbnail=self.absolute_url(first_match(self.THUMBNAIL_RULES, node)),
            views=int(views) if views is not None else 0,
            duration=first_match(self.DURATION_RULES, node) or "00:00",
            uploaded_at=parse_upload_date(first_match(self.DATE_RULES, node)),
            platform="hudl",
            source=self.SOURCE_NAME,
        )

    def extract_highlights(self, soup: BeautifulSoup) -> list[Highlight]:
        for selector in self.HIGHLIGHT_SELECTORS:
            highlights = [h for h in (self.parse_highlight(n) for n in soup.select(selector)) if h]
            if highlights:
                return highlights
        return []

    def link_highlights(self, soup: BeautifulSoup) -> list[Highlight]:
        """Build highlights from bare video links."""
        highlights: list[Highlight] = []
        seen: set[str] = set()
        for anchor in soup.select(self.LINK_SELECTOR):
            url = self.absolute_url(anchor.get("href"))
            if not url or url in seen:
                continue
            seen.add(url)
            title = clean_text(anchor.get_text(" ")) or anchor.get("title") or "Untitled"
            highlights.append(
                Highlight(title=title, url=url, platform="hudl", source=self.SOURCE_NAME)
            )
        return highlights

    def parse_record(
        self, node: Tag, athlete_name: str, options: SearchOptions
    ) -> RawSourceRecord | None:
        return RawSourceRecord(
            source=self.SOURCE_NAME,
            name=first_match(self.NAME_RULES, node),
            school=first_match(self.SCHOOL_RULES, node),
            position=first_match(self.POSITION_RULES, node),
            profile_url=self.absolute_url(first_match(self.PROFILE_RULES, node)),
        )

    def extract_records(
        self, html: str, athlete_name: str, options: SearchOptions
    ) -> list[RawSourceRecord]:
        soup = BeautifulSoup(html, "html.parser")

        records: list[RawSourceRecord] = []
        for selector in self.CONTAINER_SELECTORS:
            records = [
                r
                for r in (self.parse_record(n, athlete_name, options) for n in soup.select(selector))
                if r is not None and self.is_usable(r)
            ]
            if records:
                break

        confidence = ConfidenceTag.HIGH
        highlights = self.extract_highlights(soup)
        if not highlights:
            highlights = self.link_highlights(soup)
            confidence = ConfidenceTag.MEDIUM

        if not highlights:
            return records

        if records:
            records[0].highlights = highlights
        else:
            records.append(
                RawSourceRecord(
                    source=self.SOURCE_NAME,
                    name=athlete_name.strip(),
                    highlights=highlights,
                    confidence_tag=confidence,
                )
            )
        logger.debug(f"hudl found {len(highlights)} highlights for {athlete_name}")
        return records
