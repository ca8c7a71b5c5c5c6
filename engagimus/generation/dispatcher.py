"""Completion dispatch with ordered provider fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from engagimus.config import DispatchConfig
from engagimus.errors import (
    DispatchError,
    DispatchErrorCode,
    FailureKind,
    OperationCancelled,
    ProviderError,
    ProviderFailure,
)
from engagimus.generation.llm_client import ProviderClient
from engagimus.models import CompletionParams, CompletionResult, Message, ProviderConfig
from engagimus.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class CompletionDispatcher:
    """
    Tries providers one at a time until one returns a usable completion.

    Candidate order is recomputed from the registry on every call. Attempts
    are strictly sequential so a single logical request is billed by at most
    one provider at a time, and the first provider in configured order that
    can complete wins. Each attempt races a per-attempt timeout and an
    optional cancel event; a losing attempt is cancelled and its late result
    is never read.

    Usage:
        dispatcher = CompletionDispatcher(registry)
        result = await dispatcher.dispatch(messages, CompletionParams(temperature=0.8))
        print(result.provider, result.content)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        client: ProviderClient | None = None,
        config: DispatchConfig | None = None,
    ):
        """
        Initialize dispatcher.

        Args:
            registry: Source of provider records and candidate order
            client: Provider HTTP client (created from config if omitted)
            config: Dispatch configuration; defaults to the client's config
        """
        self.registry = registry
        self.config = config or (client.config if client else DispatchConfig())
        self.client = client or ProviderClient(self.config)

    async def dispatch(
        self,
        messages: Sequence[Message],
        params: CompletionParams | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> CompletionResult:
        """
        Dispatch a completion request through the fallback chain.

        Args:
            messages: Ordered chat messages
            params: Temperature and token limit (config defaults if omitted)
            cancel_event: Optional event; when set, the in-flight attempt is
                abandoned and OperationCancelled is raised

        Returns:
            CompletionResult from the first provider that succeeded

        Raises:
            DispatchError: NO_PROVIDERS before any network call when there are
                no eligible providers; ALL_FAILED with every recorded failure
                when all candidates failed
            OperationCancelled: When cancel_event is set
        """
        candidates = self.registry.candidates()
        if not candidates:
            logger.warning("Dispatch requested with no eligible providers")
            raise DispatchError(DispatchErrorCode.NO_PROVIDERS)

        params = params or CompletionParams(
            temperature=self.config.default_temperature,
            max_tokens=self.config.default_max_tokens,
        )
        messages = tuple(messages)
        failures: list[ProviderFailure] = []
        start_time = time.monotonic()

        for position, provider in enumerate(candidates, start=1):
            _raise_if_cancelled(cancel_event)

            logger.debug(
                "Dispatch attempt %d/%d: provider=%s, model=%s",
                position,
                len(candidates),
                provider.name,
                provider.model,
            )

            try:
                result = await self._attempt(provider, messages, params, cancel_event)
            except ProviderError as e:
                failure = ProviderFailure(provider=provider.name, kind=e.kind, message=str(e))
                failures.append(failure)
                logger.warning(
                    "Provider %s failed (attempt %d/%d): %s",
                    provider.name,
                    position,
                    len(candidates),
                    failure,
                )
                continue

            logger.info(
                "Dispatch complete: provider=%s, model=%s, failed_before=%d, total=%.1fs",
                result.provider,
                result.model,
                len(failures),
                time.monotonic() - start_time,
            )
            return result

        logger.error("All %d providers failed", len(failures))
        raise DispatchError(DispatchErrorCode.ALL_FAILED, failures)

    async def _attempt(
        self,
        provider: ProviderConfig,
        messages: tuple[Message, ...],
        params: CompletionParams,
        cancel_event: asyncio.Event | None,
    ) -> CompletionResult:
        """Run one provider call bounded by the timeout and the cancel event."""
        attempt = asyncio.ensure_future(self.client.complete(provider, messages, params))
        waiters: set[asyncio.Future] = {attempt}

        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=self.config.timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            if not attempt.done():
                _abandon(attempt)

        if attempt not in done:
            if cancel_waiter is not None and cancel_waiter in done:
                logger.info("Dispatch cancelled during attempt to %s", provider.name)
                raise OperationCancelled(f"Cancelled while waiting for {provider.name}")
            raise ProviderError(
                f"Request timed out after {self.config.timeout_seconds:.0f}s",
                FailureKind.TIMEOUT,
                provider.name,
            )

        try:
            return attempt.result()
        except ProviderError:
            raise
        except Exception as e:
            logger.exception("Unexpected error calling %s", provider.name)
            raise ProviderError(f"Unexpected error: {e}", FailureKind.OTHER, provider.name) from e

    def dispatch_sync(
        self,
        messages: Sequence[Message],
        params: CompletionParams | None = None,
    ) -> CompletionResult:
        """
        Synchronous wrapper for dispatch().

        Useful for Streamlit which has its own event loop management.
        Uses a fresh HTTP client per call to avoid event loop conflicts.
        """
        async def _dispatch_with_fresh_client() -> CompletionResult:
            await self.client.reset()
            try:
                return await self.dispatch(messages, params)
            finally:
                await self.client.close()

        return asyncio.run(_dispatch_with_fresh_client())

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _raise_if_cancelled(cancel_event: asyncio.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelled("Operation cancelled")


def _abandon(task: asyncio.Future) -> None:
    """Cancel a losing attempt and swallow whatever it eventually produces."""
    task.cancel()
    task.add_done_callback(_consume_result)


def _consume_result(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()
