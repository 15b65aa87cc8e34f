"""Tests for the ingestion normalizer module."""

import pytest

from athlete_scout.core.schema import CandidateProfile, Highlight, RecruitingData
from athlete_scout.ingestion.normalizer import ProfileNormalizer


@pytest.fixture
def normalizer() -> ProfileNormalizer:
    """Create a normalizer instance."""
    return ProfileNormalizer()


class TestNormalizeName:
    """Tests for name normalization."""

    def test_trims_and_title_cases(self, normalizer: ProfileNormalizer) -> None:
        assert normalizer.normalize_name("  john   SMITH ") == "John Smith"

    def test_strips_punctuation(self, normalizer: ProfileNormalizer) -> None:
        """Test apostrophes and hyphens survive, other punctuation does not."""
        assert normalizer.normalize_name("d'andre  smith-jones!!") == "D'andre Smith-jones"
        assert normalizer.normalize_name("J.J. Watt") == "Jj Watt"

    def test_empty(self, normalizer: ProfileNormalizer) -> None:
        assert normalizer.normalize_name("") == ""
        assert normalizer.normalize_name(None) == ""
        assert normalizer.normalize_name(" !! ") == ""


class TestNormalizeSport:
    """Tests for sport normalization."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Football", "football"),
            ("Track and Field", "track"),
            ("track & field", "track"),
            ("Cross Country", "track"),
            ("  BASKETBALL ", "basketball"),
            ("Rugby", "rugby"),
        ],
    )
    def test_aliases(self, normalizer: ProfileNormalizer, raw: str, expected: str) -> None:
        assert normalizer.normalize_sport(raw) == expected

    def test_empty_defaults_to_football(self, normalizer: ProfileNormalizer) -> None:
        assert normalizer.normalize_sport("") == "football"
        assert normalizer.normalize_sport(None) == "football"


class TestNormalizePosition:
    """Tests for position normalization."""

    def test_football(self, normalizer: ProfileNormalizer) -> None:
        assert normalizer.normalize_position("qb", "football") == "Quarterback"
        assert normalizer.normalize_position(" WR ", "football") == "Wide Receiver"

    def test_sport_specific(self, normalizer: ProfileNormalizer) -> None:
        """Test the same abbreviation maps differently per sport."""
        assert normalizer.normalize_position("C", "basketball") == "Center"
        assert normalizer.normalize_position("C", "baseball") == "Catcher"
        assert normalizer.normalize_position("p", "baseball") == "Pitcher"
        assert normalizer.normalize_position("p", "football") == "Punter"

    def test_unknown_kept(self, normalizer: ProfileNormalizer) -> None:
        assert normalizer.normalize_position("Slot  Back", "football") == "Slot Back"
        assert normalizer.normalize_position("qb", "track") == "qb"

    def test_empty(self, normalizer: ProfileNormalizer) -> None:
        assert normalizer.normalize_position("", "football") is None
        assert normalizer.normalize_position(None) is None


class TestNormalizeSchool:
    """Tests for school normalization."""

    def test_alias(self, normalizer: ProfileNormalizer) -> None:
        assert normalizer.normalize_school("austin high") == "Austin High School"

    def test_unknown_cleaned(self, normalizer: ProfileNormalizer) -> None:
        assert normalizer.normalize_school("  Westlake   HS ") == "Westlake HS"

    def test_empty(self, normalizer: ProfileNormalizer) -> None:
        assert normalizer.normalize_school("  ") is None


class TestNormalizeValues:
    """Tests for stat, highlight and recruiting normalization."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (12, 12.0),
            ("1,234", 1234.0),
            ("87.5%", 87.5),
            ("fast", None),
            (True, None),
            (None, None),
            ([1], None),
        ],
    )
    def test_coerce_number(self, value, expected) -> None:
        assert ProfileNormalizer.coerce_number(value) == expected

    def test_normalize_stats_keeps_positive_numbers(self, normalizer: ProfileNormalizer) -> None:
        stats = {"passing_yards": "2,450", "sacks": 0, "tackles": -3, "label": "n/a", "tds": 28}
        assert normalizer.normalize_stats(stats) == {"passing_yards": 2450.0, "tds": 28.0}

    def test_normalize_highlights(self, normalizer: ProfileNormalizer) -> None:
        highlights = [
            Highlight(title="  Senior Year  ", url=" https://hudl.com/v/1 ", views=-5),
            Highlight(title="", url="https://hudl.com/v/2", views=10),
            Highlight(title="No url", url="   "),
        ]
        result = normalizer.normalize_highlights(highlights)

        assert [h.title for h in result] == ["Senior Year", "Untitled"]
        assert result[0].url == "https://hudl.com/v/1"
        assert result[0].views == 0
        assert result[1].views == 10

    def test_normalize_recruiting(self, normalizer: ProfileNormalizer) -> None:
        recruiting = RecruitingData(rating=0.97, stars=4, sources=["247sports"])
        result = normalizer.normalize_recruiting(recruiting)
        assert result.rating == 0.97
        assert result.stars == 4.0
        assert result.ranking is None
        assert result.sources == ["247sports"]


class TestNormalizeCandidate:
    """Tests for whole-candidate normalization."""

    def test_normalize(self, normalizer: ProfileNormalizer) -> None:
        candidate = CandidateProfile(
            name="  john smith ",
            sport="Football",
            position="qb",
            school="austin high",
            stats={"passing_yards": 2450, "sacks": 0},
            highlights=[Highlight(title="Clip", url="")],
            sources_used=["maxpreps"],
            data_quality=46,
        )
        result = normalizer.normalize(candidate)

        assert result.name == "John Smith"
        assert result.sport == "football"
        assert result.position == "Quarterback"
        assert result.school == "Austin High School"
        assert result.stats == {"passing_yards": 2450.0}
        assert result.highlights == []
        assert result.sources_used == ["maxpreps"]
        assert result.data_quality == 46
        # Input is untouched
        assert candidate.name == "  john smith "
