"""
247Sports Adapter
=================

Recruiting ratings, star counts, rankings and offer counts.
"""

from __future__ import annotations

import re

from bs4 import Tag

from athlete_scout.ingestion.adapters.base import (
    BaseAdapter,
    RawSourceRecord,
    SearchOptions,
    attr_rule,
    first_match,
    numeric_rules,
    text_rules,
)


class Sports247Adapter(BaseAdapter):
    """Adapter for 247sports.com recruit search."""

    ADAPTER_NAME = "247sports"
    ADAPTER_VERSION = "1.0.0"
    SOURCE_NAME = "247sports"

    CONTAINER_SELECTORS = [
        ".recruit",
        ".player-card",
        ".athlete-card",
        '[data-type="recruit"]',
        ".search-result",
    ]
    LINK_SELECTOR = 'a[href*="/player/"], a[href*="/recruit/"]'

    NAME_RULES = text_rules(".name", ".player-name", ".recruit-name", "h3", "h4")
    SCHOOL_RULES = text_rules(".school", ".high-school", ".institution")
    POSITION_RULES = text_rules(".position", ".pos")
    PROFILE_RULES = [attr_rule("a", "href")]

    RATING_RULES = numeric_rules(".rating", ".score", ".composite-rating")
    RANKING_RULES = numeric_rules(".ranking", ".rank", ".national-rank")
    OFFER_RULES = numeric_rules(".offers", ".offer-count", ".scholarships")
    STAR_TEXT_RULES = text_rules(".stars", ".star-rating")
    STAR_ICONS = ".stars .star, .star-rating .star"
    HEIGHT_RULES = text_rules(".height", ".ht")
    WEIGHT_RULES = numeric_rules(".weight", ".wt")

    STAR_PATTERN = re.compile(r"(\d+)\s*-?\s*star", re.I)

    def build_search_urls(self, athlete_name: str, options: SearchOptions) -> list[str]:
        q = self.quote(athlete_name)
        year = options.year
        return [
            f"{self.base_url}/Search/?q={q}&year={year}",
            f"{self.base_url}/players/search?q={q}&year={year}",
            f"{self.base_url}/search/?query={q}&year={year}",
            f"{self.base_url}/PlayerSearch.aspx?q={q}&year={year}",
        ]

    def parse_stars(self, node: Tag) -> float | None:
        """Count star icons, falling back to "N star" text."""
        icons = node.select(self.STAR_ICONS)
        if icons:
            return float(len(icons))
        text = first_match(self.STAR_TEXT_RULES, node)
        if text:
            match = self.STAR_PATTERN.search(text)
            if match:
                return float(match.group(1))
        return None

    def parse_record(
        self, node: Tag, athlete_name: str, options: SearchOptions
    ) -> RawSourceRecord | None:
        recruiting = {
            "rating": first_match(self.RATING_RULES, node),
            "stars": self.parse_stars(node),
            "ranking": first_match(self.RANKING_RULES, node),
            "offers": first_match(self.OFFER_RULES, node),
        }

        record = RawSourceRecord(
            source=self.SOURCE_NAME,
            name=first_match(self.NAME_RULES, node),
            school=first_match(self.SCHOOL_RULES, node),
            position=first_match(self.POSITION_RULES, node),
            year=options.year,
            profile_url=self.absolute_url(first_match(self.PROFILE_RULES, node)),
            recruiting={k: v for k, v in recruiting.items() if v is not None},
        )

        height = first_match(self.HEIGHT_RULES, node)
        weight = first_match(self.WEIGHT_RULES, node)
        if height:
            record.extra["height"] = height
        if weight is not None:
            record.extra["weight"] = weight

        return record
