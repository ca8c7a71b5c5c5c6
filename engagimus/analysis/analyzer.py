"""Content-to-client matching with keyword and AI strategies."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from engagimus.config import AnalysisConfig
from engagimus.errors import (
    DispatchError,
    EngagimusError,
    ParseError,
    ParseErrorCode,
    ValidationError,
)
from engagimus.generation.dispatcher import CompletionDispatcher
from engagimus.generation.prompt_builder import PromptBuilder
from engagimus.generation.response_parser import extract_json_array
from engagimus.models import AnalysisMatch, Client, CompletionParams, Message, Relevance
from engagimus.utils.validators import validate_analysis_input

logger = logging.getLogger(__name__)

KEYWORD_POINTS = 10
ACTIVE_CLIENT_POINTS = 10

HIGH_THRESHOLD = 30
MEDIUM_THRESHOLD = 20

RELEVANCE_SCORES = {
    Relevance.HIGH: 50,
    Relevance.MEDIUM: 30,
    Relevance.LOW: 15,
}

# Missing or unrecognised relevance from the model counts as medium, scored
# between the medium and low buckets
UNRATED_SCORE = 20

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert content analyst. Always respond with valid JSON arrays."
)


def bucket_for_score(score: int) -> Relevance | None:
    """Relevance bucket for a keyword score; None means no match."""
    if score >= HIGH_THRESHOLD:
        return Relevance.HIGH
    if score >= MEDIUM_THRESHOLD:
        return Relevance.MEDIUM
    if score >= 1:
        return Relevance.LOW
    return None


class KeywordMatcher:
    """
    Deterministic keyword scoring. No network access.

    Usage:
        matches = KeywordMatcher().match("Looking for a roofing contractor", clients)
    """

    def match(self, content: str, clients: Sequence[Client]) -> list[AnalysisMatch]:
        """
        Score every active client against the content.

        Args:
            content: Text to analyze
            clients: Candidate clients

        Returns:
            Matches sorted by score descending, ties in client order
        """
        haystack = content.lower()
        matches = []

        for client in clients:
            if not client.is_active:
                continue

            matched = [kw for kw in client.keywords if kw and kw.lower() in haystack]
            if not matched:
                continue

            score = ACTIVE_CLIENT_POINTS + KEYWORD_POINTS * len(matched)
            matches.append(AnalysisMatch(
                client_id=client.id,
                client_name=client.name,
                relevance=bucket_for_score(score),
                score=score,
                matched_keywords=matched,
                reasons=_keyword_reasons(client, matched),
                angle=_suggest_angle(client, matched),
            ))

        # sorted() is stable, so equal scores keep client order
        return sorted(matches, key=lambda m: m.score, reverse=True)


class AIMatcher:
    """
    Semantic matching through a single dispatched prompt.

    Raises DispatchError when no provider answers and ParseError when the
    answer holds no resolvable matches; ContentAnalyzer turns both into a
    keyword fallback.
    """

    def __init__(
        self,
        dispatcher: CompletionDispatcher,
        prompt_builder: PromptBuilder | None = None,
        config: AnalysisConfig | None = None,
    ):
        self.dispatcher = dispatcher
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.config = config or AnalysisConfig()

    async def match(
        self,
        content: str,
        clients: Sequence[Client],
        cancel_event: asyncio.Event | None = None,
    ) -> list[AnalysisMatch]:
        messages = (
            Message(role="system", content=ANALYSIS_SYSTEM_PROMPT),
            Message(role="user", content=self.prompt_builder.build_analysis_prompt(content, clients)),
        )

        result = await self.dispatcher.dispatch(
            messages,
            CompletionParams(
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            ),
            cancel_event=cancel_event,
        )

        items = extract_json_array(result.content)
        if not items:
            raise ParseError(
                ParseErrorCode.EMPTY_RESULT,
                f"No JSON array in analysis response from {result.provider}",
            )

        matches = []
        seen: set[str] = set()
        for item in items:
            match = self._to_match(item, clients)
            if match is None or match.client_id in seen:
                continue
            seen.add(match.client_id)
            matches.append(match)

        if not matches:
            raise ParseError(
                ParseErrorCode.EMPTY_RESULT,
                f"Analysis response from {result.provider} matched no known clients",
            )

        logger.info("AI analysis via %s matched %d clients", result.provider, len(matches))
        return sorted(matches, key=lambda m: m.score, reverse=True)

    def _to_match(self, item, clients: Sequence[Client]) -> AnalysisMatch | None:
        if not isinstance(item, dict):
            return None

        client = _resolve_client(item, clients)
        if client is None:
            logger.debug("Dropping analysis item for unknown client: %r", item.get("client_name") or item.get("client"))
            return None

        try:
            relevance = Relevance(str(item.get("relevance", "")).strip().lower())
            score = RELEVANCE_SCORES[relevance]
        except ValueError:
            relevance, score = Relevance.MEDIUM, UNRATED_SCORE

        reasons = item.get("reasons") or []
        if isinstance(reasons, str):
            reasons = [reasons]

        return AnalysisMatch(
            client_id=client.id,
            client_name=client.name,
            relevance=relevance,
            score=score,
            matched_keywords=[],
            reasons=[str(r) for r in reasons],
            angle=str(item.get("angle") or ""),
        )


@dataclass
class AnalysisResult:
    """
    Unified result of one analysis call.

    Attributes:
        matches: Matches sorted by score descending
        used_ai: True only when the AI strategy produced the matches
        fallback_reason: Why the AI strategy was abandoned, if it was
        error: Validation error, if the input was rejected
    """
    matches: list[AnalysisMatch] = field(default_factory=list)
    used_ai: bool = False
    fallback_reason: str = ""
    error: EngagimusError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class ContentAnalyzer:
    """
    Matches content to clients, falling back from AI to keywords.

    Usage:
        analyzer = ContentAnalyzer(dispatcher)
        result = await analyzer.analyze(content, clients, mode="ai")
        for match in result.matches:
            print(match.client_name, match.relevance.value, match.score)
        if not result.used_ai:
            print("Keyword matching used:", result.fallback_reason)
    """

    MODES = ("local", "ai")

    def __init__(
        self,
        dispatcher: CompletionDispatcher | None = None,
        prompt_builder: PromptBuilder | None = None,
        config: AnalysisConfig | None = None,
    ):
        self.keyword_matcher = KeywordMatcher()
        self.ai_matcher = (
            AIMatcher(dispatcher, prompt_builder, config) if dispatcher is not None else None
        )

    async def analyze(
        self,
        content: str,
        clients: Sequence[Client],
        mode: str = "local",
        cancel_event: asyncio.Event | None = None,
    ) -> AnalysisResult:
        """
        Analyze content against candidate clients.

        Args:
            content: Text to analyze
            clients: Candidate clients
            mode: "local" for keyword matching, "ai" for AI matching with
                keyword fallback
            cancel_event: Optional event forwarded to the dispatcher

        Returns:
            AnalysisResult; invalid input is reported on result.error

        Raises:
            ValueError: Unknown mode
            OperationCancelled: If cancel_event is set during AI matching
        """
        if mode not in self.MODES:
            raise ValueError(f"Unknown analysis mode: {mode}")

        validation = validate_analysis_input(content, clients)
        if not validation.valid:
            return AnalysisResult(
                error=ValidationError(validation.error_message, field=validation.field),
            )

        if mode == "local":
            return AnalysisResult(matches=self.keyword_matcher.match(content, clients))

        if self.ai_matcher is None:
            return self._fallback(content, clients, "No dispatcher configured")

        try:
            matches = await self.ai_matcher.match(content, clients, cancel_event)
        except DispatchError as e:
            logger.warning("AI analysis unavailable, using keyword matching: %s", e)
            return self._fallback(content, clients, e.user_message)
        except ParseError as e:
            logger.warning("AI analysis unreadable, using keyword matching: %s", e)
            return self._fallback(content, clients, e.user_message)

        return AnalysisResult(matches=matches, used_ai=True)

    def analyze_sync(self, content: str, clients: Sequence[Client], mode: str = "local") -> AnalysisResult:
        """
        Synchronous wrapper for analyze().

        Uses a fresh HTTP client per call to avoid event loop conflicts.
        """
        async def _analyze_with_fresh_client() -> AnalysisResult:
            if self.ai_matcher is None:
                return await self.analyze(content, clients, mode)
            client = self.ai_matcher.dispatcher.client
            await client.reset()
            try:
                return await self.analyze(content, clients, mode)
            finally:
                await client.close()

        return asyncio.run(_analyze_with_fresh_client())

    def _fallback(self, content: str, clients: Sequence[Client], reason: str) -> AnalysisResult:
        return AnalysisResult(
            matches=self.keyword_matcher.match(content, clients),
            used_ai=False,
            fallback_reason=reason,
        )


def _resolve_client(item: dict, clients: Sequence[Client]) -> Client | None:
    """Find the candidate an AI item refers to, by id or case-insensitive name."""
    client_id = item.get("client_id")
    if client_id:
        for client in clients:
            if client.id == str(client_id):
                return client

    name = item.get("client_name") or item.get("client")
    if not name:
        return None
    name = str(name).strip().lower()
    for client in clients:
        if client.name.strip().lower() == name:
            return client
    return None


def _keyword_reasons(client: Client, matched: list[str]) -> list[str]:
    reasons = [f"Keyword matches: {', '.join(matched)}"]
    if client.industry:
        reasons.append(f"Industry: {client.industry}")
    if client.target_audience:
        reasons.append("Target audience alignment")
    return reasons


def _suggest_angle(client: Client, matched: list[str]) -> str:
    if matched:
        return f"Engage on the {matched[0]} topic from {client.name}'s perspective"
    if client.industry:
        return f"Share {client.industry} expertise"
    return "Add a helpful perspective to the conversation"
