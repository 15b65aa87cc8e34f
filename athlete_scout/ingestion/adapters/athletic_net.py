"""
Athletic.net Adapter
====================

Track and field results and personal records.
"""

from __future__ import annotations

import re

from bs4 import Tag

from athlete_scout.core.schema import TrackEvent
from athlete_scout.ingestion.adapters.base import (
    BaseAdapter,
    RawSourceRecord,
    SearchOptions,
    attr_rule,
    first_match,
    text_rules,
)

PR_PATTERN = re.compile(r"\bPR\b|personal (?:best|record)", re.I)


class AthleticNetAdapter(BaseAdapter):
    """Adapter for athletic.net athlete search."""

    ADAPTER_NAME = "athletic.net"
    ADAPTER_VERSION = "1.0.0"
    SOURCE_NAME = "athletic.net"

    CONTAINER_SELECTORS = [
        ".athlete-result",
        ".search-result",
        ".athlete-card",
        '[data-type="athlete"]',
        ".result-item",
    ]
    LINK_SELECTOR = 'a[href*="/athletes/"], a[href*="/track/"], a[href*="AthleteBio"]'

    NAME_RULES = text_rules(".athlete-name", ".name", "h3", "h4")
    SCHOOL_RULES = text_rules(".school-name", ".school", ".team")
    GRADE_RULES = text_rules(".grade", ".year", ".class")
    PROFILE_RULES = [attr_rule("a", "href")]

    EVENT_ITEMS = ".event, .performance"
    EVENT_NAME_RULES = text_rules(".event-name", ".event-title", ".discipline")
    MARK_RULES = text_rules(".time", ".mark", ".result")
    DATE_RULES = text_rules(".date", ".meet-date", ".when")
    MEET_RULES = text_rules(".meet", ".competition", ".venue")
    PR_MARKERS = ".pr, .personal-best, .pb"

    def build_search_urls(self, athlete_name: str, options: SearchOptions) -> list[str]:
        q = self.quote(athlete_name)
        state = self.quote(options.state)
        return [
            f"{self.base_url}/Search.aspx?query={q}&state={state}",
            f"{self.base_url}/Search.aspx?q={q}",
            f"{self.base_url}/athletes/search?q={q}",
            f"{self.base_url}/Search/?q={q}",
        ]

    def parse_event(self, item: Tag) -> TrackEvent | None:
        event = first_match(self.EVENT_NAME_RULES, item)
        if not event:
            return None
        is_pr = item.select_one(self.PR_MARKERS) is not None or bool(
            PR_PATTERN.search(item.get_text(" "))
        )
        return TrackEvent(
            event=event,
            mark=first_match(self.MARK_RULES, item),
            date=first_match(self.DATE_RULES, item),
            meet=first_match(self.MEET_RULES, item),
            is_pr=is_pr,
        )

    def parse_record(
        self, node: Tag, athlete_name: str, options: SearchOptions
    ) -> RawSourceRecord | None:
        events = [e for e in (self.parse_event(i) for i in node.select(self.EVENT_ITEMS)) if e]

        record = RawSourceRecord(
            source=self.SOURCE_NAME,
            name=first_match(self.NAME_RULES, node),
            school=first_match(self.SCHOOL_RULES, node),
            profile_url=self.absolute_url(first_match(self.PROFILE_RULES, node)),
            events=events,
        )

        grade = first_match(self.GRADE_RULES, node)
        if grade:
            record.extra["grade"] = grade
        prs = [e.event for e in events if e.is_pr]
        if prs:
            record.extra["personal_records"] = prs

        return record
