"""
MaxPreps Adapter
================

High school athlete profiles and season stats.
"""

from __future__ import annotations

from bs4 import Tag

from athlete_scout.ingestion.adapters.base import (
    BaseAdapter,
    RawSourceRecord,
    SearchOptions,
    attr_rule,
    extract_labelled_stats,
    extract_text_stats,
    first_match,
    text_rules,
    year_rule,
)


class MaxPrepsAdapter(BaseAdapter):
    """Adapter for maxpreps.com search results."""

    ADAPTER_NAME = "maxpreps"
    ADAPTER_VERSION = "1.0.0"
    SOURCE_NAME = "maxpreps"

    CONTAINER_SELECTORS = [
        ".athlete-result",
        ".search-result.athlete",
        ".player-result",
        '[data-type="athlete"]',
        ".athlete-card",
        ".search-item",
        ".result-item",
    ]
    LINK_SELECTOR = 'a[href*="/athlete/"], a[href*="/player/"]'

    NAME_RULES = text_rules(".athlete-name", ".name", ".player-name", "h3", "h4", ".title")
    SCHOOL_RULES = text_rules(".school-name", ".school", ".team", ".institution")
    POSITION_RULES = text_rules(".position", ".pos", ".role")
    YEAR_RULES = [year_rule(s) for s in (".grad-year", ".year", ".class", ".graduation")]
    PROFILE_RULES = [attr_rule("a", "href")]

    STAT_ITEMS = ".stat-item, .stats .stat, .performance, .metrics .metric"
    STAT_LABEL_RULES = text_rules(".stat-label", ".label", ".name")
    STAT_VALUE_RULES = text_rules(".stat-value", ".value", ".number")

    def build_search_urls(self, athlete_name: str, options: SearchOptions) -> list[str]:
        q = self.quote(athlete_name)
        sport = self.quote(options.sport)
        state = self.quote(options.state)
        return [
            f"{self.base_url}/search/default.aspx?q={q}&sport={sport}&state={state}",
            f"{self.base_url}/search/default.aspx?q={q}&sport={sport}",
            f"{self.base_url}/search/?q={q}&state={state}",
            f"{self.base_url}/search/?q={q}",
        ]

    def parse_record(
        self, node: Tag, athlete_name: str, options: SearchOptions
    ) -> RawSourceRecord | None:
        stats = extract_labelled_stats(
            node, self.STAT_ITEMS, self.STAT_LABEL_RULES, self.STAT_VALUE_RULES
        )
        stats = extract_text_stats(node.get_text(" "), stats)

        return RawSourceRecord(
            source=self.SOURCE_NAME,
            name=first_match(self.NAME_RULES, node),
            school=first_match(self.SCHOOL_RULES, node),
            position=first_match(self.POSITION_RULES, node),
            year=first_match(self.YEAR_RULES, node),
            profile_url=self.absolute_url(first_match(self.PROFILE_RULES, node)),
            stats=stats,
        )
