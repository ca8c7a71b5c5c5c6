"""Tests for the content analyzer."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from engagimus.analysis import AnalysisResult, ContentAnalyzer, KeywordMatcher
from engagimus.analysis.analyzer import bucket_for_score
from engagimus.config import DispatchConfig
from engagimus.errors import FailureKind, ProviderError, ValidationError
from engagimus.generation.dispatcher import CompletionDispatcher
from engagimus.generation.llm_client import ProviderClient
from engagimus.models import Client, CompletionResult, ProviderConfig, Relevance
from engagimus.providers import ProviderRegistry

ROOFING_POST = "Looking for a roofing contractor near me"


@pytest.fixture
def clients() -> list[Client]:
    return [
        Client(
            id="roof",
            name="Summit Roofing",
            industry="Roofing",
            keywords=("roofing", "contractor"),
            target_audience="Homeowners",
        ),
        Client(id="dental", name="Bright Dental", industry="Dentistry", keywords=("dentist", "teeth")),
        Client(id="gutters", name="Gutter Pros", industry="Home services", keywords=("gutters", "Roofing")),
    ]


@pytest.fixture
def provider() -> ProviderConfig:
    return ProviderConfig(
        id="groq",
        name="Groq",
        base_url="https://api.groq.com/openai/v1",
        model="llama-3.3-70b-versatile",
        api_key="gsk_test_0123456789abcdef",
    )


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock(spec=ProviderClient)
    client.config = DispatchConfig(timeout_seconds=1)
    client.complete = AsyncMock()
    client.close = AsyncMock()
    client.reset = AsyncMock()
    return client


@pytest.fixture
def analyzer(provider, mock_client) -> ContentAnalyzer:
    dispatcher = CompletionDispatcher(ProviderRegistry([provider]), client=mock_client)
    return ContentAnalyzer(dispatcher)


def ai_reply(mock_client, provider, items) -> None:
    content = "Here is my analysis:\n```json\n" + json.dumps(items) + "\n```"
    mock_client.complete.return_value = CompletionResult(
        content=content, provider=provider.name, model=provider.model,
    )


class TestKeywordMatcher:
    """Tests for deterministic keyword scoring."""

    def test_two_keyword_hits(self, clients):
        matches = KeywordMatcher().match(ROOFING_POST, clients[:2])

        assert len(matches) == 1
        match = matches[0]
        assert match.client_id == "roof"
        assert match.matched_keywords == ["roofing", "contractor"]
        assert match.score == 30
        assert match.relevance == Relevance.HIGH
        assert "Keyword matches: roofing, contractor" in match.reasons
        assert "Industry: Roofing" in match.reasons
        assert "roofing" in match.angle

    def test_case_insensitive_and_sorted(self, clients):
        matches = KeywordMatcher().match(ROOFING_POST.upper(), clients)

        assert [m.client_id for m in matches] == ["roof", "gutters"]
        assert matches[1].score == 20
        assert matches[1].relevance == Relevance.MEDIUM

    def test_no_hits_excluded(self, clients):
        assert KeywordMatcher().match("Nothing relevant here", clients) == []

    def test_inactive_skipped(self):
        client = Client(id="c", name="Off", keywords=("roofing",), is_active=False)
        assert KeywordMatcher().match(ROOFING_POST, [client]) == []

    def test_deterministic(self, clients):
        matcher = KeywordMatcher()
        assert matcher.match(ROOFING_POST, clients) == matcher.match(ROOFING_POST, clients)

    @pytest.mark.parametrize("score,expected", [
        (50, Relevance.HIGH),
        (30, Relevance.HIGH),
        (29, Relevance.MEDIUM),
        (20, Relevance.MEDIUM),
        (19, Relevance.LOW),
        (1, Relevance.LOW),
        (0, None),
    ])
    def test_buckets(self, score, expected):
        assert bucket_for_score(score) == expected


class TestLocalMode:
    """Tests for analyze() in local mode."""

    @pytest.mark.asyncio
    async def test_local_never_dispatches(self, analyzer, clients, mock_client):
        result = await analyzer.analyze(ROOFING_POST, clients, mode="local")

        assert isinstance(result, AnalysisResult)
        assert result.used_ai is False
        assert result.fallback_reason == ""
        assert [m.client_id for m in result.matches] == ["roof", "gutters"]
        mock_client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_content(self, analyzer, clients):
        result = await analyzer.analyze("   ", clients)

        assert result.success is False
        assert isinstance(result.error, ValidationError)
        assert result.matches == []

    @pytest.mark.asyncio
    async def test_no_clients(self, analyzer):
        result = await analyzer.analyze(ROOFING_POST, [])
        assert result.error.field == "clients"

    @pytest.mark.asyncio
    async def test_unknown_mode(self, analyzer, clients):
        with pytest.raises(ValueError):
            await analyzer.analyze(ROOFING_POST, clients, mode="psychic")


class TestAIMode:
    """Tests for analyze() in AI mode."""

    @pytest.mark.asyncio
    async def test_ai_matches(self, analyzer, clients, mock_client, provider):
        ai_reply(mock_client, provider, [
            {"client_name": "bright dental", "relevance": "low", "reasons": ["Local business"], "angle": "Community"},
            {"client_name": "Summit Roofing", "relevance": "high", "reasons": ["Direct need"], "angle": "Offer help"},
        ])

        result = await analyzer.analyze(ROOFING_POST, clients, mode="ai")

        assert result.used_ai is True
        assert [m.client_id for m in result.matches] == ["roof", "dental"]
        assert [m.score for m in result.matches] == [50, 15]
        assert result.matches[0].reasons == ["Direct need"]
        assert result.matches[0].angle == "Offer help"
        assert result.matches[0].matched_keywords == []

    @pytest.mark.asyncio
    async def test_analysis_params(self, analyzer, clients, mock_client, provider):
        ai_reply(mock_client, provider, [{"client_name": "Summit Roofing", "relevance": "medium"}])

        result = await analyzer.analyze(ROOFING_POST, clients, mode="ai")

        _, messages, params = mock_client.complete.call_args.args
        assert params.temperature == 0.5
        assert params.max_tokens == 2000
        assert "Summit Roofing" in messages[1].content
        assert result.matches[0].score == 30

    @pytest.mark.asyncio
    async def test_unresolved_clients_dropped(self, analyzer, clients, mock_client, provider):
        ai_reply(mock_client, provider, [
            {"client_name": "Imaginary Corp", "relevance": "high"},
            {"client": "Gutter Pros", "relevance": "medium"},
        ])

        result = await analyzer.analyze(ROOFING_POST, clients, mode="ai")

        assert result.used_ai is True
        assert [m.client_id for m in result.matches] == ["gutters"]

    @pytest.mark.asyncio
    async def test_resolves_by_client_id(self, analyzer, clients, mock_client, provider):
        ai_reply(mock_client, provider, [{"client_id": "dental", "relevance": "HIGH"}])

        result = await analyzer.analyze(ROOFING_POST, clients, mode="ai")

        assert result.matches[0].client_name == "Bright Dental"
        assert result.matches[0].relevance == Relevance.HIGH

    @pytest.mark.asyncio
    async def test_unrated_relevance_counts_as_medium(self, analyzer, clients, mock_client, provider):
        ai_reply(mock_client, provider, [
            {"client_name": "Summit Roofing", "relevance": "very high"},
            {"client_name": "Bright Dental"},
        ])

        result = await analyzer.analyze(ROOFING_POST, clients, mode="ai")

        assert [m.relevance for m in result.matches] == [Relevance.MEDIUM, Relevance.MEDIUM]
        assert [m.score for m in result.matches] == [20, 20]


class TestAIFallback:
    """Tests for falling back to keyword matching."""

    @pytest.mark.asyncio
    async def test_all_failed_matches_local_result(self, analyzer, clients, mock_client):
        """AI failure yields exactly the local result with used_ai False."""
        mock_client.complete.side_effect = ProviderError("down", FailureKind.OTHER, "Groq")

        ai_result = await analyzer.analyze(ROOFING_POST, clients, mode="ai")
        local_result = await analyzer.analyze(ROOFING_POST, clients, mode="local")

        assert ai_result.used_ai is False
        assert ai_result.matches == local_result.matches
        assert repr(ai_result.matches) == repr(local_result.matches)
        assert ai_result.fallback_reason

    @pytest.mark.asyncio
    async def test_no_providers_falls_back(self, clients, mock_client):
        dispatcher = CompletionDispatcher(ProviderRegistry(), client=mock_client)
        result = await ContentAnalyzer(dispatcher).analyze(ROOFING_POST, clients, mode="ai")

        assert result.used_ai is False
        assert [m.client_id for m in result.matches] == ["roof", "gutters"]
        mock_client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_unparseable_falls_back(self, analyzer, clients, mock_client, provider):
        mock_client.complete.return_value = CompletionResult(
            content="I think Summit Roofing is a great fit!", provider=provider.name, model=provider.model,
        )

        result = await analyzer.analyze(ROOFING_POST, clients, mode="ai")

        assert result.used_ai is False
        assert result.matches[0].score == 30

    @pytest.mark.asyncio
    async def test_empty_array_falls_back(self, analyzer, clients, mock_client, provider):
        ai_reply(mock_client, provider, [])

        result = await analyzer.analyze(ROOFING_POST, clients, mode="ai")

        assert result.used_ai is False

    @pytest.mark.asyncio
    async def test_only_unresolved_falls_back(self, analyzer, clients, mock_client, provider):
        ai_reply(mock_client, provider, [{"client_name": "Nobody", "relevance": "high"}])

        result = await analyzer.analyze(ROOFING_POST, clients, mode="ai")

        assert result.used_ai is False

    @pytest.mark.asyncio
    async def test_without_dispatcher(self, clients):
        result = await ContentAnalyzer().analyze(ROOFING_POST, clients, mode="ai")

        assert result.used_ai is False
        assert len(result.matches) == 2


class TestAnalyzeSync:
    """Tests for the synchronous wrapper."""

    def test_analyze_sync_resets_client(self, analyzer, clients, mock_client, provider):
        ai_reply(mock_client, provider, [{"client_name": "Summit Roofing", "relevance": "high"}])

        result = analyzer.analyze_sync(ROOFING_POST, clients, mode="ai")

        assert result.used_ai is True
        mock_client.reset.assert_awaited_once()
        mock_client.close.assert_awaited_once()
