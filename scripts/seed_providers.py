#!/usr/bin/env python3
"""
Script to seed the provider registry with the default provider catalog.

Usage:
    python scripts/seed_providers.py --output data/providers.json

Existing records are kept; only catalog entries not yet registered are
added, inactive until an API key is set. Pass --sample-clients to also
write a small example client list.
"""

import argparse
import json
import logging
from pathlib import Path

from engagimus.providers import DEFAULT_PROVIDERS, ProviderRegistry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


SAMPLE_CLIENTS = [
    {
        "id": "summit-roofing",
        "name": "Summit Roofing",
        "industry": "Home Improvement",
        "keywords": ["roofing", "roof", "shingles", "contractor", "gutters"],
        "voice_prompt": "Friendly, practical, and knowledgeable about home exteriors.",
        "voice_prompt_with_cta": "Friendly and practical. Invite readers to book a free roof inspection.",
        "default_cta": "Book a free inspection",
        "description": "Residential roofing contractor serving the Denver metro area.",
        "target_audience": "Homeowners",
        "sample_comments": [
            "Nothing beats a fresh roof before storm season!",
        ],
    },
    {
        "id": "greenleaf-dental",
        "name": "Greenleaf Dental",
        "industry": "Healthcare",
        "keywords": ["dentist", "dental", "teeth", "smile", "orthodontics"],
        "voice_prompt": "Warm, reassuring, and lightly humorous.",
        "description": "Family dental practice.",
        "target_audience": "Parents and young professionals",
    },
]


def load_or_create(path: Path) -> ProviderRegistry:
    """Load an existing registry, or start an empty one."""
    try:
        return ProviderRegistry.load(path)
    except FileNotFoundError:
        logger.info("Creating new provider registry at %s", path)
        return ProviderRegistry()


def main():
    parser = argparse.ArgumentParser(
        description="Seed the provider registry with the default catalog"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("data/providers.json"),
        help="Provider registry JSON file",
    )
    parser.add_argument(
        "--sample-clients",
        type=Path,
        default=None,
        metavar="PATH",
        help="Also write example clients to PATH (skipped if it exists)",
    )

    args = parser.parse_args()

    registry = load_or_create(args.output)
    created = registry.seed_defaults(DEFAULT_PROVIDERS)
    registry.save(args.output)
    logger.info("Added %d providers (%d total) to %s", len(created), len(registry), args.output)

    if args.sample_clients:
        if args.sample_clients.exists():
            logger.warning("Client file %s already exists, not overwriting", args.sample_clients)
        else:
            args.sample_clients.parent.mkdir(parents=True, exist_ok=True)
            args.sample_clients.write_text(json.dumps(SAMPLE_CLIENTS, indent=2), encoding="utf-8")
            logger.info("Wrote %d sample clients to %s", len(SAMPLE_CLIENTS), args.sample_clients)


if __name__ == "__main__":
    main()
