"""
ESPN Adapter
============

Player stats and rankings. Unknown stat labels are kept under a slugged key.
"""

from __future__ import annotations

import re
from urllib.parse import quote

from bs4 import Tag

from athlete_scout.ingestion.adapters.base import (
    BaseAdapter,
    RawSourceRecord,
    SearchOptions,
    attr_rule,
    extract_labelled_stats,
    first_match,
    parse_numeric,
    text_rules,
)


class EspnAdapter(BaseAdapter):
    """Adapter for espn.com player search."""

    ADAPTER_NAME = "espn"
    ADAPTER_VERSION = "1.0.0"
    SOURCE_NAME = "espn"

    CONTAINER_SELECTORS = [
        ".search-results .player",
        ".player-result",
        ".athlete-card",
        '[data-type="player"]',
        ".search-item.player",
    ]
    LINK_SELECTOR = 'a[href*="/player/"], a[href*="/athletes/"]'

    NAME_RULES = text_rules(".player-name", ".name", ".athlete-name", "h3", "h4")
    TEAM_RULES = text_rules(".team-name", ".team", ".club", ".organization")
    POSITION_RULES = text_rules(".position", ".pos", ".role")
    PROFILE_RULES = [attr_rule("a", "href")]

    STAT_ITEMS = ".stat, .statistic"
    STAT_LABEL_RULES = text_rules(".label", ".stat-label", ".name")
    STAT_VALUE_RULES = text_rules(".value", ".number", ".stat-value")

    RANKING_ITEMS = ".ranking, .rank-item"
    RANKING_TYPE_RULES = text_rules(".type", ".category")
    RANKING_VALUE_RULES = text_rules(".value", ".rank", ".rating")

    def build_search_urls(self, athlete_name: str, options: SearchOptions) -> list[str]:
        q = self.quote(athlete_name)
        return [
            f"{self.base_url}/search/_/q/{quote(athlete_name.strip())}",
            f"{self.base_url}/search/?query={q}&type=player",
            f"{self.base_url}/players/search?q={q}",
        ]

    def _parse_rankings(self, node: Tag) -> dict[str, float]:
        rankings: dict[str, float] = {}
        for item in node.select(self.RANKING_ITEMS):
            kind = first_match(self.RANKING_TYPE_RULES, item)
            value = parse_numeric(first_match(self.RANKING_VALUE_RULES, item))
            if kind and value is not None:
                rankings[re.sub(r"\s+", "_", kind.lower())] = value
        return rankings

    def parse_record(
        self, node: Tag, athlete_name: str, options: SearchOptions
    ) -> RawSourceRecord | None:
        record = RawSourceRecord(
            source=self.SOURCE_NAME,
            name=first_match(self.NAME_RULES, node),
            school=first_match(self.TEAM_RULES, node),
            position=first_match(self.POSITION_RULES, node),
            profile_url=self.absolute_url(first_match(self.PROFILE_RULES, node)),
            stats=extract_labelled_stats(
                node,
                self.STAT_ITEMS,
                self.STAT_LABEL_RULES,
                self.STAT_VALUE_RULES,
                keep_unknown=True,
            ),
        )

        rankings = self._parse_rankings(node)
        if rankings:
            record.extra["rankings"] = rankings
            national = next((v for k, v in rankings.items() if "national" in k), None)
            if national is not None:
                record.recruiting["ranking"] = national

        return record
