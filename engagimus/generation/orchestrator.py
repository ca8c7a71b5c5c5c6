"""Comment generation: validate, prompt, dispatch, parse, persist."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum

from engagimus.config import GenerationConfig
from engagimus.data.stores import GenerationStore, PlatformPromptStore
from engagimus.errors import (
    DispatchError,
    EngagimusError,
    OperationCancelled,
    ParseError,
    ParseErrorCode,
    PersistenceError,
    ValidationError,
)
from engagimus.generation.dispatcher import CompletionDispatcher
from engagimus.generation.prompt_builder import PromptBuilder
from engagimus.generation.response_parser import parse_llm_response
from engagimus.models import (
    CommentOption,
    CompletionParams,
    Generation,
    GenerationRequest,
    PlatformPrompt,
)
from engagimus.platforms import get_platform_prompt_defaults
from engagimus.utils.validators import validate_generation_request

logger = logging.getLogger(__name__)


class GenerationStage(Enum):
    """Steps of a single generation call."""
    VALIDATING = "validating"
    PROMPTING = "prompting"
    DISPATCHING = "dispatching"
    PARSING = "parsing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class GenerationOutcome:
    """
    Result of a generation call.

    Attributes:
        success: Whether options were generated and saved
        stage: DONE on success, FAILED otherwise
        failed_stage: Stage the failure happened in, if any
        options: Parsed comment options (empty on failure)
        provider: Provider that produced the completion
        model: Model used
        duration_ms: Time from validation to the end of persistence
        generation_id: Id of the saved Generation record
        error: Typed error on failure
        warnings: Non-fatal notes from validation and parsing
    """
    success: bool
    stage: GenerationStage
    options: list[CommentOption] = field(default_factory=list)
    provider: str = ""
    model: str = ""
    duration_ms: int = 0
    generation_id: str | None = None
    failed_stage: GenerationStage | None = None
    error: EngagimusError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        return self.error.user_message if self.error else ""


class CommentGenerator:
    """
    Orchestrates one comment generation per call.

    A Generation record is written only after parsing produced at least one
    option, and a failed write discards the options: callers either get
    saved options or a typed error, never an unsaved success.

    Usage:
        generator = CommentGenerator(dispatcher, InMemoryGenerationStore())
        outcome = await generator.generate(request)
        if outcome.success:
            for option in outcome.options:
                print(option.style.value, option.text)
        else:
            print(outcome.error_message)
    """

    def __init__(
        self,
        dispatcher: CompletionDispatcher,
        generation_store: GenerationStore,
        platform_prompts: PlatformPromptStore | None = None,
        prompt_builder: PromptBuilder | None = None,
        config: GenerationConfig | None = None,
    ):
        self.dispatcher = dispatcher
        self.generation_store = generation_store
        self.platform_prompts = platform_prompts
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.config = config or GenerationConfig()

    async def generate(
        self,
        request: GenerationRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationOutcome:
        """
        Generate comment options for a request.

        Args:
            request: Generation request
            cancel_event: Optional event checked at every suspension point

        Returns:
            GenerationOutcome; validation, dispatch, parse and persistence
            failures are reported on it rather than raised

        Raises:
            OperationCancelled: If cancel_event is set mid-generation
        """
        start_time = time.monotonic()

        # Validating
        validation = validate_generation_request(request)
        if not validation.valid:
            logger.info("Generation rejected: %s", validation.error_message)
            return _failed(
                GenerationStage.VALIDATING,
                ValidationError(validation.error_message, field=validation.field),
            )
        warnings = list(validation.warnings)

        # Prompting
        platform_prompt = self._get_platform_prompt(request.platform)
        prompt = self.prompt_builder.build(request, platform_prompt)

        # Dispatching
        try:
            result = await self.dispatcher.dispatch(
                prompt.messages,
                CompletionParams(
                    temperature=self.config.temperature,
                    max_tokens=self.config.max_tokens,
                ),
                cancel_event=cancel_event,
            )
        except DispatchError as e:
            logger.warning("Generation failed at dispatch: %s", e)
            return _failed(GenerationStage.DISPATCHING, e, warnings)

        # Parsing
        parsed = parse_llm_response(result.content)
        warnings.extend(parsed.parse_warnings)
        if parsed.is_empty:
            logger.warning(
                "No options parsed from %s response (%d chars)",
                result.provider,
                len(result.content),
            )
            return _failed(
                GenerationStage.PARSING,
                ParseError(ParseErrorCode.EMPTY_RESULT),
                warnings,
            )

        # Persisting
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelled("Generation cancelled before saving")

        duration_ms = int((time.monotonic() - start_time) * 1000)
        generation = Generation(
            client_id=request.client.id,
            platform=request.platform,
            source_content=request.content,
            existing_comments=request.existing_comments or None,
            poster_info=request.poster_info or None,
            hashtags=request.hashtags or None,
            include_cta=request.include_cta,
            num_options=request.num_options,
            options=parsed.options,
            provider=result.provider,
            model=result.model,
            duration_ms=duration_ms,
        )

        try:
            saved = self.generation_store.save(generation)
        except PersistenceError as e:
            logger.error("Generation discarded, save failed: %s", e)
            return _failed(GenerationStage.PERSISTING, e, warnings)
        except Exception as e:
            logger.exception("Unexpected error saving generation")
            return _failed(
                GenerationStage.PERSISTING,
                PersistenceError(f"Unexpected error saving generation: {e}"),
                warnings,
            )

        logger.info(
            "Generated %d options for client=%s, platform=%s via %s in %dms",
            len(saved.options),
            request.client.id,
            request.platform,
            result.provider,
            duration_ms,
        )

        return GenerationOutcome(
            success=True,
            stage=GenerationStage.DONE,
            options=saved.options,
            provider=result.provider,
            model=result.model,
            duration_ms=duration_ms,
            generation_id=saved.id,
            warnings=warnings,
        )

    def generate_sync(self, request: GenerationRequest) -> GenerationOutcome:
        """
        Synchronous wrapper for generate().

        Useful for Streamlit which has its own event loop management.
        Uses a fresh HTTP client per call to avoid event loop conflicts.
        """
        client = self.dispatcher.client

        async def _generate_with_fresh_client() -> GenerationOutcome:
            await client.reset()
            try:
                return await self.generate(request)
            finally:
                await client.close()

        return asyncio.run(_generate_with_fresh_client())

    def mark_as_used(self, generation_id: str, option_index: int) -> Generation:
        """
        Mark one option of a saved generation as used.

        Raises:
            KeyError: Unknown generation
            IndexError: Option index out of range
        """
        return self.generation_store.mark_used(generation_id, option_index)

    def build_clipboard_prompt(self, request: GenerationRequest) -> str:
        """
        Build the pasteable prompt for copy-to-chat mode. Never dispatches.

        Raises:
            ValidationError: If required fields are missing
        """
        validation = validate_generation_request(request)
        if not validation.valid:
            raise ValidationError(validation.error_message, field=validation.field)

        return self.prompt_builder.build_clipboard_prompt(
            request,
            self._get_platform_prompt(request.platform),
        )

    def _get_platform_prompt(self, platform: str) -> PlatformPrompt:
        """Organization override if stored, else the built-in default."""
        if self.platform_prompts is not None:
            try:
                prompt = self.platform_prompts.get(platform)
            except Exception as e:
                logger.warning("Platform prompt lookup failed for %s, using default: %s", platform, e)
                prompt = None
            if prompt is not None:
                return prompt
        return get_platform_prompt_defaults(platform)


def _failed(
    stage: GenerationStage,
    error: EngagimusError,
    warnings: list[str] | None = None,
) -> GenerationOutcome:
    return GenerationOutcome(
        success=False,
        stage=GenerationStage.FAILED,
        failed_stage=stage,
        error=error,
        warnings=list(warnings or []),
    )
