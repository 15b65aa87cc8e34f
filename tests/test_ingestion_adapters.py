"""Tests for the ingestion adapters module."""

from datetime import UTC, datetime

import pytest

from athlete_scout.core.enums import ConfidenceTag
from athlete_scout.core.errors import NetworkError
from athlete_scout.ingestion.adapters import (
    ADAPTER_REGISTRY,
    AthleticNetAdapter,
    BaseAdapter,
    EspnAdapter,
    HudlAdapter,
    MaxPrepsAdapter,
    SearchOptions,
    Sports247Adapter,
    create_default_adapters,
    get_adapter,
    get_adapter_info,
    list_adapters,
    register_adapter,
)
from athlete_scout.ingestion.adapters.base import (
    canonical_stat_key,
    clean_text,
    extract_text_stats,
    mentions_athlete,
    parse_numeric,
)
from athlete_scout.ingestion.adapters.hudl import parse_upload_date
from athlete_scout.ingestion.fetcher import Document
from athlete_scout.ingestion.registry import SourceRegistry


class FakeFetcher:
    """Serves canned pages by URL; unknown URLs fail like an exhausted fetch."""

    def __init__(self, pages: dict[str, str] | None = None, registry: SourceRegistry | None = None):
        self.registry = registry or SourceRegistry.with_defaults()
        self.pages = pages or {}
        self.requested: list[str] = []

    async def fetch(self, url: str, source_name: str) -> Document:
        self.requested.append(url)
        if url not in self.pages:
            raise NetworkError(source_name, url, 3, "HTTP 404")
        return Document(
            url=url,
            source=source_name,
            status_code=200,
            text=self.pages[url],
            fetched_at=datetime.now(UTC),
            content_hash="hash",
        )


OPTIONS = SearchOptions(state="TX", sport="football", year=2025)

MAXPREPS_HTML = """
<div class="athlete-result">
  <a href="/athlete/john-smith/123"><span class="athlete-name">John  Smith</span></a>
  <span class="school-name">Austin High</span>
  <span class="position">QB</span>
  <span class="grad-year">2025</span>
  <div class="stats">
    <div class="stat"><span class="stat-label">Passing Yds</span><span class="stat-value">2,450</span></div>
    <div class="stat"><span class="stat-label">TD</span><span class="stat-value">28</span></div>
  </div>
  <p>Rushing yards: 310</p>
</div>
"""

MAXPREPS_LINKS_HTML = """
<ul>
  <li><a href="/athlete/john-smith/1">John Smith - Austin High</a></li>
  <li><a href="/athlete/john-smith/1">John Smith</a></li>
  <li><a href="/athlete/jane-doe/2">Jane Doe</a></li>
  <li><a href="/news/john-smith">John Smith news</a></li>
</ul>
"""

ESPN_HTML = """
<div class="search-results">
  <div class="player">
    <a href="/college-football/player/_/id/1"><span class="player-name">John Smith</span></a>
    <span class="team-name">Texas Longhorns</span>
    <span class="position">WR</span>
    <div class="stat"><span class="label">Receiving Yds</span><span class="value">880</span></div>
    <div class="stat"><span class="label">Yards After Catch</span><span class="value">312</span></div>
    <div class="ranking"><span class="type">National</span><span class="value">#45</span></div>
    <div class="ranking"><span class="type">Position</span><span class="value">#7</span></div>
  </div>
</div>
"""

SPORTS247_HTML = """
<div class="recruit">
  <a class="name" href="/player/john-smith-123">John Smith</a>
  <span class="position">QB</span>
  <span class="school">Austin High</span>
  <span class="rating">0.9712</span>
  <div class="stars"><span class="star"></span><span class="star"></span><span class="star"></span><span class="star"></span></div>
  <span class="ranking">NATL 45</span>
  <span class="offers">23 Offers</span>
  <span class="height">6-3</span>
  <span class="weight">210 lbs</span>
</div>
"""

ATHLETIC_NET_HTML = """
<div class="athlete-result">
  <a href="/athletes/123"><span class="athlete-name">Jane Doe</span></a>
  <span class="school-name">Austin High</span>
  <span class="grade">11</span>
  <div class="event">
    <span class="event-name">100 Meters</span><span class="time">11.92</span>
    <span class="date">2024-04-12</span><span class="meet">District Meet</span><span class="pr">PR</span>
  </div>
  <div class="event">
    <span class="event-name">200 Meters</span><span class="time">24.80</span><span class="date">2024-03-02</span>
  </div>
  <div class="performance"><span class="mark">n/a</span></div>
</div>
"""

HUDL_HTML = """
<div class="athlete-profile">
  <h2 class="athlete-name">John Smith</h2>
  <span class="school">Austin High</span>
  <span class="position">QB</span>
  <a href="/profile/123">Profile</a>
</div>
<div class="highlight-card">
  <a class="video-link" href="/video/abc"><h3 class="video-title">Senior Season Highlights</h3></a>
  <img src="/thumbs/abc.jpg"/>
  <span class="views">1,204 views</span>
  <span class="duration">3:45</span>
  <time datetime="2024-11-02T10:00:00Z">Nov 2</time>
</div>
<div class="highlight-card"><span class="video-title">No link here</span></div>
"""

HUDL_LINKS_HTML = """
<a href="/video/1">Game vs Austin</a>
<a href="/video/1">Duplicate link</a>
<a href="/video/2"></a>
"""


class TestAdapterRegistry:
    """Tests for the adapter registry functions."""

    def test_list_adapters(self) -> None:
        """Test listing available adapters."""
        assert set(list_adapters()) >= {"maxpreps", "espn", "247sports", "athletic.net", "hudl"}

    def test_get_adapter(self) -> None:
        """Test getting an adapter by name."""
        adapter = get_adapter("maxpreps", FakeFetcher())
        assert isinstance(adapter, MaxPrepsAdapter)
        assert adapter.priority == 1.0
        assert adapter.base_url == "https://www.maxpreps.com"

    def test_get_adapter_not_found(self) -> None:
        """Test getting a non-existent adapter."""
        assert get_adapter("non-existent", FakeFetcher()) is None

    def test_get_adapter_with_config(self) -> None:
        """Test getting an adapter with custom config."""
        adapter = get_adapter("hudl", FakeFetcher(), {"max_pages": 2})
        assert adapter is not None
        assert adapter.config == {"max_pages": 2}

    def test_get_adapter_info(self) -> None:
        """Test getting adapter information."""
        info = get_adapter_info("247sports")
        assert info == {
            "name": "247sports",
            "version": "1.0.0",
            "class": "Sports247Adapter",
            "source": "247sports",
        }

    def test_get_adapter_info_not_found(self) -> None:
        """Test getting info for non-existent adapter."""
        assert get_adapter_info("non-existent") is None

    def test_register_adapter(self) -> None:
        """Test registering a custom adapter."""

        class LocalAdapter(MaxPrepsAdapter):
            ADAPTER_NAME = "local"

        try:
            register_adapter("local", LocalAdapter)
            assert "local" in list_adapters()
            assert get_adapter_info("local")["class"] == "LocalAdapter"
        finally:
            ADAPTER_REGISTRY.pop("local", None)

    def test_register_adapter_rejects_non_adapter(self) -> None:
        """Test registering a class that is not an adapter fails."""
        with pytest.raises(TypeError):
            register_adapter("bad", dict)  # type: ignore[arg-type]

    def test_create_default_adapters(self) -> None:
        """Test adapters follow enabled sources in priority order."""
        registry = SourceRegistry.with_defaults()
        registry.disable_source("hudl")

        adapters = create_default_adapters(FakeFetcher(registry=registry))

        assert [a.SOURCE_NAME for a in adapters] == ["maxpreps", "espn", "247sports", "athletic.net"]
        assert all(isinstance(a, BaseAdapter) for a in adapters)


class TestExtractionHelpers:
    """Tests for the shared extraction helpers."""

    def test_clean_text(self) -> None:
        assert clean_text("  John \n  Smith ") == "John Smith"
        assert clean_text("   ") is None
        assert clean_text(None) is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1,234 yds", 1234.0),
            ("87.5%", 87.5),
            ("#12", 12.0),
            (7, 7.0),
            ("n/a", None),
            (None, None),
            (True, None),
        ],
    )
    def test_parse_numeric(self, value, expected) -> None:
        assert parse_numeric(value) == expected

    def test_canonical_stat_key(self) -> None:
        assert canonical_stat_key("Comp %") == "completion_percentage"
        assert canonical_stat_key("Rushing Yds") == "rushing_yards"
        assert canonical_stat_key("TDs") == "touchdowns"
        assert canonical_stat_key("Punt Avg") is None
        assert canonical_stat_key("Punt Avg", keep_unknown=True) == "punt_avg"

    def test_extract_text_stats_fills_missing_only(self) -> None:
        text = "Passing yards: 1,200 Touchdowns: 14 Sacks 3.5"
        stats = extract_text_stats(text, {"passing_yards": 999.0})
        assert stats == {"passing_yards": 999.0, "touchdowns": 14.0, "sacks": 3.5}

    def test_mentions_athlete(self) -> None:
        assert mentions_athlete("Smith, John (QB)", "John Smith") is True
        assert mentions_athlete("John Doe", "John Smith") is False
        assert mentions_athlete("anything", "  ") is False

    def test_parse_upload_date(self) -> None:
        assert parse_upload_date("2024-11-02T10:00:00Z") == datetime(2024, 11, 2, 10, tzinfo=UTC)
        assert parse_upload_date("2024-11-02") == datetime(2024, 11, 2, tzinfo=UTC)
        assert parse_upload_date("last week") is None
        assert parse_upload_date(None) is None


class TestMaxPrepsAdapter:
    """Tests for the MaxPreps adapter."""

    def test_build_search_urls(self) -> None:
        adapter = MaxPrepsAdapter(FakeFetcher())
        urls = adapter.build_search_urls("John Smith", OPTIONS)
        assert urls[0] == (
            "https://www.maxpreps.com/search/default.aspx?q=John+Smith&sport=football&state=TX"
        )
        assert urls[-1] == "https://www.maxpreps.com/search/?q=John+Smith"
        assert len(urls) == 4

    def test_extract_records(self) -> None:
        """Test profile fields and stats are parsed from result containers."""
        adapter = MaxPrepsAdapter(FakeFetcher())
        records = adapter.extract_records(MAXPREPS_HTML, "John Smith", OPTIONS)

        assert len(records) == 1
        record = records[0]
        assert record.source == "maxpreps"
        assert record.name == "John Smith"
        assert record.school == "Austin High"
        assert record.position == "QB"
        assert record.year == 2025
        assert record.profile_url == "https://www.maxpreps.com/athlete/john-smith/123"
        assert record.stats == {
            "passing_yards": 2450.0,
            "touchdowns": 28.0,
            "rushing_yards": 310.0,
        }
        assert record.confidence_tag is ConfidenceTag.HIGH

    def test_link_fallback(self) -> None:
        """Test profile links naming the athlete become medium-confidence records."""
        adapter = MaxPrepsAdapter(FakeFetcher())
        records = adapter.extract_records(MAXPREPS_LINKS_HTML, "John Smith", OPTIONS)

        assert len(records) == 1
        assert records[0].profile_url == "https://www.maxpreps.com/athlete/john-smith/1"
        assert records[0].confidence_tag is ConfidenceTag.MEDIUM

    def test_nameless_containers_are_skipped(self) -> None:
        """Test containers without a name produce nothing."""
        adapter = MaxPrepsAdapter(FakeFetcher())
        html = '<div class="athlete-result"><span class="school">Austin High</span></div>'
        assert adapter.extract_records(html, "John Smith", OPTIONS) == []

    @pytest.mark.asyncio
    async def test_search_tries_urls_in_order(self) -> None:
        """Test a failing URL falls through to the next candidate."""
        adapter = MaxPrepsAdapter(FakeFetcher())
        urls = adapter.build_search_urls("John Smith", OPTIONS)
        fetcher = FakeFetcher({urls[1]: MAXPREPS_HTML})
        adapter = MaxPrepsAdapter(fetcher)

        records = await adapter.search("John Smith", OPTIONS)

        assert fetcher.requested == urls[:2]
        assert [r.name for r in records] == ["John Smith"]

    @pytest.mark.asyncio
    async def test_search_all_urls_fail(self) -> None:
        """Test search returns nothing when every URL fails."""
        fetcher = FakeFetcher()
        adapter = MaxPrepsAdapter(fetcher)

        assert await adapter.search("John Smith", OPTIONS) == []
        assert len(fetcher.requested) == 4

    @pytest.mark.asyncio
    async def test_search_parse_error_returns_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a parser crash is contained."""
        adapter = MaxPrepsAdapter(FakeFetcher())
        url = adapter.build_search_urls("John Smith", OPTIONS)[0]
        adapter = MaxPrepsAdapter(FakeFetcher({url: MAXPREPS_HTML}))

        def boom(*args, **kwargs):
            raise RuntimeError("markup changed")

        monkeypatch.setattr(adapter, "extract_records", boom)
        assert await adapter.search("John Smith", OPTIONS) == []


class TestEspnAdapter:
    """Tests for the ESPN adapter."""

    def test_build_search_urls(self) -> None:
        adapter = EspnAdapter(FakeFetcher())
        urls = adapter.build_search_urls("John Smith", OPTIONS)
        assert urls[0] == "https://www.espn.com/search/_/q/John%20Smith"
        assert urls[1] == "https://www.espn.com/search/?query=John+Smith&type=player"

    def test_extract_records(self) -> None:
        """Test team, stats and rankings are parsed."""
        adapter = EspnAdapter(FakeFetcher())
        records = adapter.extract_records(ESPN_HTML, "John Smith", OPTIONS)

        assert len(records) == 1
        record = records[0]
        assert record.name == "John Smith"
        assert record.school == "Texas Longhorns"
        assert record.position == "WR"
        assert record.stats == {"receiving_yards": 880.0, "yards_after_catch": 312.0}
        assert record.extra["rankings"] == {"national": 45.0, "position": 7.0}
        assert record.recruiting == {"ranking": 45.0}


class TestSports247Adapter:
    """Tests for the 247Sports adapter."""

    def test_build_search_urls_include_year(self) -> None:
        adapter = Sports247Adapter(FakeFetcher())
        urls = adapter.build_search_urls("John Smith", OPTIONS)
        assert all("year=2025" in url for url in urls)
        assert urls[0] == "https://247sports.com/Search/?q=John+Smith&year=2025"

    def test_extract_records(self) -> None:
        """Test recruiting metrics are parsed."""
        adapter = Sports247Adapter(FakeFetcher())
        records = adapter.extract_records(SPORTS247_HTML, "John Smith", OPTIONS)

        assert len(records) == 1
        record = records[0]
        assert record.name == "John Smith"
        assert record.year == 2025
        assert record.profile_url == "https://247sports.com/player/john-smith-123"
        assert record.recruiting == {
            "rating": 0.9712,
            "stars": 4.0,
            "ranking": 45.0,
            "offers": 23.0,
        }
        assert record.extra == {"height": "6-3", "weight": 210.0}

    def test_star_text_fallback(self) -> None:
        """Test star counts are read from text when no icons exist."""
        adapter = Sports247Adapter(FakeFetcher())
        html = '<div class="recruit"><span class="name">John Smith</span><span class="star-rating">3-star prospect</span></div>'
        records = adapter.extract_records(html, "John Smith", OPTIONS)
        assert records[0].recruiting == {"stars": 3.0}


class TestAthleticNetAdapter:
    """Tests for the Athletic.net adapter."""

    def test_extract_records(self) -> None:
        """Test events, personal records and grade are parsed."""
        adapter = AthleticNetAdapter(FakeFetcher())
        records = adapter.extract_records(ATHLETIC_NET_HTML, "Jane Doe", OPTIONS)

        assert len(records) == 1
        record = records[0]
        assert record.name == "Jane Doe"
        assert record.school == "Austin High"
        assert [e.event for e in record.events] == ["100 Meters", "200 Meters"]

        hundred = record.events[0]
        assert hundred.mark == "11.92"
        assert hundred.date == "2024-04-12"
        assert hundred.meet == "District Meet"
        assert hundred.is_pr is True
        assert record.events[1].is_pr is False

        assert record.extra == {"grade": "11", "personal_records": ["100 Meters"]}

    def test_pr_detected_from_text(self) -> None:
        """Test "personal best" text marks an event as a PR."""
        adapter = AthleticNetAdapter(FakeFetcher())
        html = (
            '<div class="athlete-result"><span class="name">Jane Doe</span>'
            '<div class="event"><span class="event-name">Long Jump</span>'
            '<span class="mark">5.40m</span> personal best</div></div>'
        )
        records = adapter.extract_records(html, "Jane Doe", OPTIONS)
        assert records[0].events[0].is_pr is True


class TestHudlAdapter:
    """Tests for the Hudl adapter."""

    def test_extract_records(self) -> None:
        """Test highlight cards attach to the first profile card."""
        adapter = HudlAdapter(FakeFetcher())
        records = adapter.extract_records(HUDL_HTML, "John Smith", OPTIONS)

        assert len(records) == 1
        record = records[0]
        assert record.name == "John Smith"
        assert record.school == "Austin High"
        assert len(record.highlights) == 1

        highlight = record.highlights[0]
        assert highlight.title == "Senior Season Highlights"
        assert highlight.url == "https://www.hudl.com/video/abc"
        assert highlight.thumbnail == "https://www.hudl.com/thumbs/abc.jpg"
        assert highlight.views == 1204
        assert highlight.duration == "3:45"
        assert highlight.uploaded_at == datetime(2024, 11, 2, 10, tzinfo=UTC)
        assert highlight.platform == "hudl"
        assert highlight.source == "hudl"

    def test_link_highlights_without_profile(self) -> None:
        """Test bare video links become highlights on a record named after the athlete."""
        adapter = HudlAdapter(FakeFetcher())
        records = adapter.extract_records(HUDL_LINKS_HTML, "  John Smith ", OPTIONS)

        assert len(records) == 1
        record = records[0]
        assert record.name == "John Smith"
        assert record.confidence_tag is ConfidenceTag.MEDIUM
        assert [h.url for h in record.highlights] == [
            "https://www.hudl.com/video/1",
            "https://www.hudl.com/video/2",
        ]
        assert record.highlights[1].title == "Untitled"

    def test_nothing_found(self) -> None:
        adapter = HudlAdapter(FakeFetcher())
        assert adapter.extract_records("<p>No results</p>", "John Smith", OPTIONS) == []
