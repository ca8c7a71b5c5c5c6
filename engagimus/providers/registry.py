"""Provider registry: configured providers, default selection, and fallback order."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, replace
from pathlib import Path
from typing import Iterable, Iterator

from engagimus.models import ProviderConfig

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {"id", "name", "base_url", "model"}


class ProviderRegistry:
    """
    Owned, lock-guarded collection of ProviderConfig records.

    Records are immutable; every change builds a new tuple and swaps it in
    under the lock, so readers always see a consistent snapshot with at most
    one default. The lock is never held across network calls.

    JSON format:
        [{"id": "groq", "name": "Groq", "base_url": "...", "model": "...",
          "api_key": "...", "is_active": true, "is_default": true,
          "fallback_order": 1, ...}]

    Usage:
        registry = ProviderRegistry.load("data/providers.json")
        registry.set_default("groq")
        for provider in registry.candidates():
            ...
    """

    def __init__(self, providers: Iterable[ProviderConfig] | None = None):
        """
        Initialize registry with optional pre-loaded records.

        Args:
            providers: Records in insertion order. If several are flagged
                default, only the first keeps the flag.
        """
        self._lock = threading.Lock()
        self._providers: tuple[ProviderConfig, ...] = _normalize_defaults(tuple(providers or ()))
        self._source_path: Path | None = None

        ids = [p.id for p in self._providers]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate provider ids")

    @classmethod
    def load(cls, path: Path | str) -> ProviderRegistry:
        """
        Load registry from a JSON file.

        Args:
            path: Path to JSON file

        Returns:
            ProviderRegistry populated from the file

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not a JSON list
        """
        path = Path(path)

        if not path.exists():
            logger.warning("Provider registry file not found: %s", path)
            raise FileNotFoundError(f"Provider registry not found: {path}")

        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError("Provider registry must be a JSON list")

        providers: list[ProviderConfig] = []
        seen: set[str] = set()
        for index, row in enumerate(data):
            try:
                provider = _parse_record(row)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping invalid provider record %d: %s", index, e)
                continue
            if provider.id in seen:
                logger.warning("Skipping duplicate provider id %s", provider.id)
                continue
            seen.add(provider.id)
            providers.append(provider)

        registry = cls(providers)
        registry._source_path = path

        logger.info("Loaded provider registry: %d providers from %s", len(providers), path)
        return registry

    def save(self, path: Path | str | None = None) -> None:
        """
        Save registry to a JSON file.

        Args:
            path: Output path. If None, uses original source path.

        Raises:
            ValueError: If no path specified and registry wasn't loaded from file
        """
        if path is None:
            path = self._source_path
        if path is None:
            raise ValueError("No path specified and registry has no source path")

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        snapshot = self.list()
        path.write_text(
            json.dumps([asdict(p) for p in snapshot], indent=2),
            encoding="utf-8",
        )
        self._source_path = path

        logger.info("Saved provider registry: %d providers to %s", len(snapshot), path)

    def list(self) -> list[ProviderConfig]:
        """Return all records in insertion order."""
        return list(self._providers)

    def get(self, provider_id: str) -> ProviderConfig | None:
        for provider in self._providers:
            if provider.id == provider_id:
                return provider
        return None

    def get_default(self) -> ProviderConfig | None:
        for provider in self._providers:
            if provider.is_default:
                return provider
        return None

    def add(self, provider: ProviderConfig) -> ProviderConfig:
        """
        Add a provider record.

        A record added as default takes the flag from the current default.

        Raises:
            ValueError: If a record with the same id exists
        """
        with self._lock:
            if any(p.id == provider.id for p in self._providers):
                raise ValueError(f"Provider already exists: {provider.id}")
            providers = self._providers
            if provider.is_default:
                providers = tuple(replace(p, is_default=False) for p in providers)
            self._providers = providers + (provider,)

        logger.info("Added provider %s (model=%s)", provider.name, provider.model)
        return provider

    def update(self, provider_id: str, **changes) -> ProviderConfig:
        """
        Update fields of a provider record.

        Setting is_default=True is routed through the same single transition
        as set_default().

        Raises:
            KeyError: If the provider does not exist
        """
        changes.pop("id", None)
        with self._lock:
            index = self._index_of(provider_id)
            updated = replace(self._providers[index], **changes)
            providers = list(self._providers)
            providers[index] = updated
            if changes.get("is_default"):
                providers = [
                    p if i == index else replace(p, is_default=False)
                    for i, p in enumerate(providers)
                ]
            self._providers = tuple(providers)

        logger.info("Updated provider %s: %s", updated.name, sorted(k for k in changes if k != "api_key"))
        return updated

    def remove(self, provider_id: str) -> bool:
        """
        Remove a provider record.

        Returns:
            True if removed, False if not found
        """
        with self._lock:
            remaining = tuple(p for p in self._providers if p.id != provider_id)
            removed = len(remaining) != len(self._providers)
            self._providers = remaining

        if removed:
            logger.info("Removed provider %s", provider_id)
        return removed

    def set_default(self, provider_id: str) -> ProviderConfig:
        """
        Make one provider the default and clear the flag on all others.

        The new record set is built and swapped in as one transition.

        Raises:
            KeyError: If the provider does not exist (nothing is changed)
        """
        with self._lock:
            index = self._index_of(provider_id)
            self._providers = tuple(
                replace(p, is_default=(i == index)) for i, p in enumerate(self._providers)
            )
            new_default = self._providers[index]

        logger.info("Default provider set to %s", new_default.name)
        return new_default

    def reorder(self, ordered_ids: list[str]) -> None:
        """
        Assign fallback_order by position (1-based).

        Providers not listed keep their current fallback_order.

        Raises:
            KeyError: If any id is unknown (nothing is changed)
        """
        with self._lock:
            known = {p.id for p in self._providers}
            unknown = [pid for pid in ordered_ids if pid not in known]
            if unknown:
                raise KeyError(f"Unknown provider ids: {unknown}")

            positions = {pid: i + 1 for i, pid in enumerate(ordered_ids)}
            self._providers = tuple(
                replace(p, fallback_order=positions[p.id]) if p.id in positions else p
                for p in self._providers
            )

        logger.info("Fallback order updated: %s", ordered_ids)

    def candidates(self) -> list[ProviderConfig]:
        """
        Dispatch order for a single call.

        The default provider comes first if it is active and keyed, followed
        by every other active, keyed provider sorted by fallback_order. Ties
        keep insertion order (sorted() is stable).
        """
        snapshot = self._providers
        eligible = [p for p in snapshot if p.is_eligible]

        default = next((p for p in eligible if p.is_default), None)
        others = sorted(
            (p for p in eligible if p is not default),
            key=lambda p: p.fallback_order,
        )

        return ([default] if default else []) + others

    def has_configured_provider(self) -> bool:
        return any(p.is_eligible for p in self._providers)

    def seed_defaults(self, catalog: Iterable[ProviderConfig]) -> list[ProviderConfig]:
        """
        Add catalog providers whose names are not yet registered.

        Seeded providers start inactive until an API key is added.

        Returns:
            The records that were added
        """
        with self._lock:
            existing_names = {p.name for p in self._providers}
            existing_ids = {p.id for p in self._providers}
            to_create = [
                p for p in catalog
                if p.name not in existing_names and p.id not in existing_ids
            ]
            start = len(self._providers)
            created = [
                replace(p, is_active=False, is_default=False, fallback_order=start + i + 1)
                for i, p in enumerate(to_create)
            ]
            self._providers = self._providers + tuple(created)

        logger.info("Seeded %d default providers", len(created))
        return created

    def _index_of(self, provider_id: str) -> int:
        for i, provider in enumerate(self._providers):
            if provider.id == provider_id:
                return i
        raise KeyError(f"Unknown provider: {provider_id}")

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, provider_id: str) -> bool:
        return any(p.id == provider_id for p in self._providers)

    def __iter__(self) -> Iterator[ProviderConfig]:
        return iter(self._providers)


def _normalize_defaults(providers: tuple[ProviderConfig, ...]) -> tuple[ProviderConfig, ...]:
    """Keep the default flag on the first flagged record only."""
    seen_default = False
    normalized = []
    for provider in providers:
        if provider.is_default and seen_default:
            logger.warning("Clearing extra default flag on provider %s", provider.name)
            provider = replace(provider, is_default=False)
        seen_default = seen_default or provider.is_default
        normalized.append(provider)
    return tuple(normalized)


def _parse_record(row: dict) -> ProviderConfig:
    """Parse a JSON record into a ProviderConfig."""
    if not isinstance(row, dict):
        raise TypeError("Provider record must be an object")

    missing = REQUIRED_FIELDS - set(row)
    if missing:
        raise KeyError(f"missing fields {sorted(missing)}")

    fallback_order = int(row.get("fallback_order", 999))
    if fallback_order < 1:
        raise ValueError(f"fallback_order must be positive, got {fallback_order}")

    return ProviderConfig(
        id=str(row["id"]),
        name=str(row["name"]).strip(),
        base_url=str(row["base_url"]).strip().rstrip("/"),
        model=str(row["model"]).strip(),
        api_key=str(row.get("api_key") or ""),
        is_free=bool(row.get("is_free", False)),
        is_active=bool(row.get("is_active", True)),
        is_default=bool(row.get("is_default", False)),
        fallback_order=fallback_order,
        notes=str(row.get("notes") or ""),
    )
