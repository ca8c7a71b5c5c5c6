"""Built-in provider catalog and chat links for copy-to-chat mode."""

from __future__ import annotations

from engagimus.models import ChatLink, ProviderConfig

# All entries speak the OpenAI chat-completions format except Anthropic
DEFAULT_PROVIDERS: tuple[ProviderConfig, ...] = (
    ProviderConfig(
        id="groq",
        name="Groq",
        base_url="https://api.groq.com/openai/v1",
        model="llama-3.3-70b-versatile",
        is_free=True,
        notes="14,400 requests/day free. Extremely fast (300+ tokens/sec).",
    ),
    ProviderConfig(
        id="cerebras",
        name="Cerebras",
        base_url="https://api.cerebras.ai/v1",
        model="llama3.1-70b",
        is_free=True,
        notes="1M tokens/day free. Up to 2,600 tokens/sec.",
    ),
    ProviderConfig(
        id="google-gemini",
        name="Google Gemini",
        base_url="https://generativelanguage.googleapis.com/v1beta/openai",
        model="gemini-2.0-flash-lite",
        is_free=True,
        notes="1,000 requests/day free for Flash-Lite.",
    ),
    ProviderConfig(
        id="openrouter",
        name="OpenRouter",
        base_url="https://openrouter.ai/api/v1",
        model="meta-llama/llama-3.3-70b-instruct:free",
        is_free=True,
        notes="50 requests/day free (1,000/day with $10 deposit).",
    ),
    ProviderConfig(
        id="mistral",
        name="Mistral",
        base_url="https://api.mistral.ai/v1",
        model="mistral-small-latest",
        is_free=True,
        notes="1B tokens/month free.",
    ),
    ProviderConfig(
        id="deepseek",
        name="DeepSeek",
        base_url="https://api.deepseek.com/v1",
        model="deepseek-chat",
        notes="5M free credits. ~$0.0002 per comment.",
    ),
    ProviderConfig(
        id="openai",
        name="OpenAI",
        base_url="https://api.openai.com/v1",
        model="gpt-4o-mini",
        notes="Pay as you go. High quality.",
    ),
    ProviderConfig(
        id="anthropic",
        name="Anthropic",
        base_url="https://api.anthropic.com/v1",
        model="claude-3-haiku-20240307",
        notes="Pay as you go. High quality.",
    ),
)

CHAT_LINKS: tuple[ChatLink, ...] = (
    ChatLink(name="ChatGPT", url="https://chat.openai.com/", display_order=1),
    ChatLink(name="Claude", url="https://claude.ai/", display_order=2),
    ChatLink(name="Gemini", url="https://gemini.google.com/", display_order=3),
    ChatLink(name="Perplexity", url="https://www.perplexity.ai/", display_order=4),
    ChatLink(name="Poe", url="https://poe.com/", display_order=5),
    ChatLink(name="HuggingChat", url="https://huggingface.co/chat/", display_order=6),
)


def list_chat_links() -> list[ChatLink]:
    """Return chat links sorted for display."""
    return sorted(CHAT_LINKS, key=lambda link: link.display_order)
