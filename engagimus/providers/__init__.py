"""Provider configuration and catalog."""

from .catalog import DEFAULT_PROVIDERS, CHAT_LINKS, list_chat_links
from .registry import ProviderRegistry

__all__ = [
    "DEFAULT_PROVIDERS",
    "CHAT_LINKS",
    "list_chat_links",
    "ProviderRegistry",
]
