"""
Profile Normalizer Module
=========================

Cleans and standardizes fused athlete data into canonical forms before
it is reconciled with stored profiles.
"""

from __future__ import annotations

import re
from typing import Any

from athlete_scout.core.schema import CandidateProfile, Highlight, RecruitingData

DEFAULT_SPORT = "football"


class ProfileNormalizer:
    """
    Normalizes candidate profiles.

    Handles:
    - Name cleanup and title casing (e.g., "  john   o'neil!" -> "John O'neil")
    - Sport canonicalization (e.g., "Track and Field" -> "track")
    - Sport-specific positions (e.g., "qb" -> "Quarterback")
    - School aliases (e.g., "austin high" -> "Austin High School")
    - Numeric coercion of stats and recruiting metrics
    """

    SPORT_ALIASES: dict[str, str] = {
        "football": "football",
        "basketball": "basketball",
        "baseball": "baseball",
        "soccer": "soccer",
        "track": "track",
        "track and field": "track",
        "track & field": "track",
        "cross country": "track",
        "tennis": "tennis",
        "swimming": "swimming",
        "wrestling": "wrestling",
        "volleyball": "volleyball",
        "lacrosse": "lacrosse",
        "hockey": "hockey",
        "golf": "golf",
    }

    POSITION_ALIASES: dict[str, dict[str, str]] = {
        "football": {
            "qb": "Quarterback",
            "quarterback": "Quarterback",
            "rb": "Running Back",
            "running back": "Running Back",
            "wr": "Wide Receiver",
            "wide receiver": "Wide Receiver",
            "te": "Tight End",
            "tight end": "Tight End",
            "ol": "Offensive Line",
            "offensive line": "Offensive Line",
            "ot": "Offensive Tackle",
            "offensive tackle": "Offensive Tackle",
            "og": "Offensive Guard",
            "offensive guard": "Offensive Guard",
            "c": "Center",
            "center": "Center",
            "de": "Defensive End",
            "defensive end": "Defensive End",
            "dt": "Defensive Tackle",
            "defensive tackle": "Defensive Tackle",
            "lb": "Linebacker",
            "linebacker": "Linebacker",
            "cb": "Cornerback",
            "cornerback": "Cornerback",
            "s": "Safety",
            "safety": "Safety",
            "ath": "Athlete",
            "k": "Kicker",
            "kicker": "Kicker",
            "p": "Punter",
            "punter": "Punter",
        },
        "basketball": {
            "pg": "Point Guard",
            "point guard": "Point Guard",
            "sg": "Shooting Guard",
            "shooting guard": "Shooting Guard",
            "sf": "Small Forward",
            "small forward": "Small Forward",
            "pf": "Power Forward",
            "power forward": "Power Forward",
            "c": "Center",
            "center": "Center",
        },
        "baseball": {
            "p": "Pitcher",
            "rhp": "Right-Handed Pitcher",
            "lhp": "Left-Handed Pitcher",
            "c": "Catcher",
            "1b": "First Base",
            "2b": "Second Base",
            "3b": "Third Base",
            "ss": "Shortstop",
            "of": "Outfield",
            "cf": "Center Field",
            "lf": "Left Field",
            "rf": "Right Field",
        },
        "soccer": {
            "gk": "Goalkeeper",
            "goalkeeper": "Goalkeeper",
            "d": "Defender",
            "def": "Defender",
            "mf": "Midfielder",
            "mid": "Midfielder",
            "f": "Forward",
            "fw": "Forward",
            "st": "Striker",
        },
    }

    SCHOOL_ALIASES: dict[str, str] = {
        "texas high school": "Texas High School",
        "austin high": "Austin High School",
        "houston high": "Houston High School",
        "dallas high": "Dallas High School",
        "san antonio high": "San Antonio High School",
    }

    def __init__(self) -> None:
        """Initialize the normalizer with compiled patterns."""
        self._whitespace = re.compile(r"\s+")
        self._name_junk = re.compile(r"[^\w\s'-]")

    def normalize_name(self, name: str | None) -> str:
        """
        Normalize an athlete name.

        Trims, collapses whitespace, strips characters other than letters,
        digits, apostrophes and hyphens, then title-cases each word.

        Args:
            name: Raw name string

        Returns:
            Normalized name (empty string for empty input)
        """
        if not name:
            return ""
        cleaned = self._whitespace.sub(" ", name.strip())
        cleaned = self._name_junk.sub("", cleaned)
        words = [w for w in cleaned.split(" ") if w]
        return " ".join(w[0].upper() + w[1:].lower() for w in words)

    def normalize_sport(self, sport: str | None) -> str:
        """Map a sport to its canonical lowercase token; empty means football."""
        if not sport or not sport.strip():
            return DEFAULT_SPORT
        key = self._whitespace.sub(" ", sport.strip().lower())
        return self.SPORT_ALIASES.get(key, key)

    def normalize_position(self, position: str | None, sport: str = DEFAULT_SPORT) -> str | None:
        """Map a position to its sport-specific label; unknown positions are kept."""
        if not position or not position.strip():
            return None
        cleaned = self._whitespace.sub(" ", position.strip())
        table = self.POSITION_ALIASES.get(sport.lower(), {})
        return table.get(cleaned.lower(), cleaned)

    def normalize_school(self, school: str | None) -> str | None:
        if not school or not school.strip():
            return None
        cleaned = self._whitespace.sub(" ", school.strip())
        return self.SCHOOL_ALIASES.get(cleaned.lower(), cleaned)

    @staticmethod
    def coerce_number(value: Any) -> float | None:
        """
        Coerce a stat-like value to a float.

        Strings have commas and percent signs removed. Booleans and
        unparseable values become None.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.replace(",", "").replace("%", "").strip())
            except ValueError:
                return None
        return None

    def normalize_stats(self, stats: dict[str, Any]) -> dict[str, float]:
        """Keep only numeric, positive stats."""
        normalized: dict[str, float] = {}
        for key, value in stats.items():
            number = self.coerce_number(value)
            if number is not None and number > 0:
                normalized[key] = number
        return normalized

    def normalize_highlights(self, highlights: list[Highlight]) -> list[Highlight]:
        """Trim titles, drop highlights without a URL, clamp views at 0."""
        normalized: list[Highlight] = []
        for highlight in highlights:
            url = (highlight.url or "").strip()
            if not url:
                continue
            normalized.append(
                highlight.model_copy(
                    update={
                        "title": (highlight.title or "").strip() or "Untitled",
                        "url": url,
                        "views": max(int(highlight.views or 0), 0),
                        "duration": highlight.duration or "00:00",
                        "platform": highlight.platform or "unknown",
                    }
                )
            )
        return normalized

    def normalize_recruiting(self, recruiting: RecruitingData) -> RecruitingData:
        updates = {
            name: self.coerce_number(getattr(recruiting, name))
            for name in ("rating", "stars", "ranking", "offers")
        }
        return recruiting.model_copy(update=updates)

    def normalize(self, candidate: CandidateProfile) -> CandidateProfile:
        """
        Normalize every field of a candidate profile.

        Returns:
            New CandidateProfile in canonical form
        """
        sport = self.normalize_sport(candidate.sport)
        return candidate.model_copy(
            update={
                "name": self.normalize_name(candidate.name),
                "sport": sport,
                "position": self.normalize_position(candidate.position, sport),
                "school": self.normalize_school(candidate.school),
                "stats": self.normalize_stats(candidate.stats),
                "highlights": self.normalize_highlights(candidate.highlights),
                "recruiting_data": self.normalize_recruiting(candidate.recruiting_data),
            }
        )
