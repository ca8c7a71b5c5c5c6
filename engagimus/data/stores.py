"""Persistence for generations, platform prompts, and the client list."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Protocol

from engagimus.errors import PersistenceError
from engagimus.models import Client, Generation, PlatformPrompt
from engagimus.platforms import PLATFORM_PROMPTS, SUPPORTED_PLATFORMS

logger = logging.getLogger(__name__)


class GenerationStore(Protocol):
    """Storage contract for generation records."""

    def save(self, generation: Generation) -> Generation: ...

    def mark_used(self, generation_id: str, option_index: int) -> Generation: ...


class PlatformPromptStore(Protocol):
    """Storage contract for per-platform style prompts."""

    def get(self, platform: str) -> PlatformPrompt | None: ...


@dataclass
class GenerationStats:
    """Aggregate counts over stored generations."""
    total: int = 0
    used: int = 0
    by_platform: dict[str, int] = field(default_factory=dict)
    by_provider: dict[str, int] = field(default_factory=dict)

    @property
    def usage_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.used / self.total * 100


class InMemoryGenerationStore:
    """
    Generation records held in memory, newest last.

    Usage:
        store = InMemoryGenerationStore()
        saved = store.save(generation)
        store.mark_used(saved.id, 0)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._generations: dict[str, Generation] = {}

    def save(self, generation: Generation) -> Generation:
        """
        Store a new generation and return it with an id assigned.

        Raises:
            PersistenceError: If the write fails
        """
        saved = replace(generation, id=generation.id or uuid.uuid4().hex)
        with self._lock:
            self._generations[saved.id] = saved
            try:
                self._persist()
            except PersistenceError:
                del self._generations[saved.id]
                raise

        logger.info(
            "Saved generation %s: client=%s, platform=%s, options=%d",
            saved.id,
            saved.client_id,
            saved.platform,
            len(saved.options),
        )
        return saved

    def get(self, generation_id: str) -> Generation | None:
        return self._generations.get(generation_id)

    def mark_used(self, generation_id: str, option_index: int) -> Generation:
        """
        Record that one option of a generation was posted.

        Raises:
            KeyError: If the generation does not exist
            IndexError: If option_index is out of range
            PersistenceError: If the write fails; the stored record is unchanged
        """
        with self._lock:
            current = self._require(generation_id)
            index = _check_index(current, option_index)
            options = list(current.options)
            options[index] = replace(options[index], is_used=True)
            updated = replace(
                current,
                options=options,
                selected_option_index=index,
                selected_option_style=options[index].style.value,
                is_used=True,
                used_at=datetime.now(),
            )
            self._commit(current, updated)

        logger.info("Marked option %d of generation %s as used", option_index, generation_id)
        return updated

    def mark_saved(self, generation_id: str, option_index: int) -> Generation:
        """Record that one option was kept as a client sample comment."""
        with self._lock:
            current = self._require(generation_id)
            index = _check_index(current, option_index)
            options = list(current.options)
            options[index] = replace(options[index], is_saved=True)
            updated = replace(current, options=options)
            self._commit(current, updated)
        return updated

    def list(
        self,
        client_id: str | None = None,
        platform: str | None = None,
        used_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Generation]:
        """Return generations newest first, filtered and paginated."""
        results = sorted(self._generations.values(), key=lambda g: g.created_at, reverse=True)
        if client_id:
            results = [g for g in results if g.client_id == client_id]
        if platform:
            results = [g for g in results if g.platform == platform]
        if used_only:
            results = [g for g in results if g.is_used]
        return results[offset:offset + limit]

    def stats(self) -> GenerationStats:
        generations = list(self._generations.values())
        return GenerationStats(
            total=len(generations),
            used=sum(1 for g in generations if g.is_used),
            by_platform=dict(Counter(g.platform for g in generations)),
            by_provider=dict(Counter(g.provider for g in generations)),
        )

    def _require(self, generation_id: str) -> Generation:
        generation = self._generations.get(generation_id)
        if generation is None:
            raise KeyError(f"Unknown generation: {generation_id}")
        return generation

    def _commit(self, current: Generation, updated: Generation) -> None:
        """Swap in an updated record, restoring the old one if the write fails."""
        self._generations[updated.id] = updated
        try:
            self._persist()
        except PersistenceError:
            self._generations[current.id] = current
            raise

    def _persist(self) -> None:
        """Hook for durable subclasses; called with the lock held."""

    def __len__(self) -> int:
        return len(self._generations)


class JsonGenerationStore(InMemoryGenerationStore):
    """
    Generation store backed by a JSON file, rewritten on every change.

    Usage:
        store = JsonGenerationStore("data/generations.json")
    """

    def __init__(self, path: Path | str):
        super().__init__()
        self.path = Path(path)

        if self.path.exists():
            data = json.loads(self.path.read_text(encoding="utf-8"))
            for index, row in enumerate(data):
                try:
                    generation = Generation.from_dict(row)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("Skipping invalid generation record %d: %s", index, e)
                    continue
                if generation.id:
                    self._generations[generation.id] = generation
            logger.info("Loaded %d generations from %s", len(self._generations), self.path)

    def _persist(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps([g.to_dict() for g in self._generations.values()], indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            logger.error("Failed to write generations to %s: %s", self.path, e)
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e


class InMemoryPlatformPromptStore:
    """
    Platform prompts: organization overrides over the system defaults.

    Usage:
        store = InMemoryPlatformPromptStore()
        store.upsert("linkedin", "Keep it crisp and expert.", max_length=180)
        store.get("linkedin").is_system  # False
    """

    def __init__(self, overrides: dict[str, PlatformPrompt] | None = None):
        self._overrides: dict[str, PlatformPrompt] = dict(overrides or {})

    def get(self, platform: str) -> PlatformPrompt | None:
        """Return the organization override, else the system default."""
        return self._overrides.get(platform) or PLATFORM_PROMPTS.get(platform)

    def list(self) -> list[PlatformPrompt]:
        return [self.get(platform) for platform in SUPPORTED_PLATFORMS]

    def upsert(
        self,
        platform: str,
        style_prompt: str,
        max_length: int | None = None,
    ) -> PlatformPrompt:
        """
        Create or replace the organization override for a platform.

        Raises:
            ValueError: If the platform is unknown or the prompt is blank
        """
        if platform not in SUPPORTED_PLATFORMS:
            raise ValueError(f"Unknown platform: {platform}")
        if not style_prompt or not style_prompt.strip():
            raise ValueError("Style prompt cannot be empty")

        prompt = PlatformPrompt(
            platform=platform,
            style_prompt=style_prompt.strip(),
            max_length=max_length,
            is_system=False,
        )
        self._overrides[platform] = prompt
        logger.info("Upserted platform prompt override for %s", platform)
        return prompt

    def reset(self, platform: str) -> bool:
        """Drop the override so the system default applies again."""
        return self._overrides.pop(platform, None) is not None


def load_clients(path: Path | str) -> list[Client]:
    """
    Load the read-only client list from a JSON file.

    Records missing an id or name are skipped. A missing file yields an
    empty list.
    """
    path = Path(path)
    if not path.exists():
        logger.warning("Clients file not found: %s", path)
        return []

    clients = []
    for index, row in enumerate(json.loads(path.read_text(encoding="utf-8"))):
        try:
            clients.append(Client(
                id=str(row["id"]),
                name=str(row["name"]),
                industry=row.get("industry") or "",
                keywords=tuple(k.strip() for k in row.get("keywords") or () if k and k.strip()),
                voice_prompt=row.get("voice_prompt") or "",
                voice_prompt_with_cta=row.get("voice_prompt_with_cta") or "",
                default_cta=row.get("default_cta") or "",
                description=row.get("description") or "",
                target_audience=row.get("target_audience") or "",
                sample_comments=tuple(row.get("sample_comments") or ()),
                is_active=bool(row.get("is_active", True)),
            ))
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning("Skipping invalid client record %d: %s", index, e)

    logger.info("Loaded %d clients from %s", len(clients), path)
    return clients


def _check_index(generation: Generation, option_index: int) -> int:
    if not 0 <= option_index < len(generation.options):
        raise IndexError(
            f"Option index {option_index} out of range for generation {generation.id}"
        )
    return option_index
