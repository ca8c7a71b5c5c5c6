"""Data models for Maximus Engagimus."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class CommentStyle(Enum):
    """Fixed set of comment approaches a generation can produce."""

    CONVERSATIONAL = "conversational"
    PROFESSIONAL = "professional"
    QUESTION = "question"
    VALUE_ADD = "value-add"
    BRIEF = "brief"


class Relevance(Enum):
    """Relevance bucket for a content-to-client match."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ProviderConfig:
    """
    A configured chat-completion provider.

    Attributes:
        id: Stable identifier
        name: Display name (e.g., "Groq")
        base_url: API base URL, without the endpoint path
        api_key: Secret key; excluded from repr and never logged
        model: Model identifier sent with each request
        is_free: Whether the provider has a free tier
        is_active: Inactive providers are never dispatched to
        is_default: Tried first when eligible
        fallback_order: Position among non-default providers (ascending)
        notes: Free-text notes
    """
    id: str
    name: str
    base_url: str
    model: str
    api_key: str = field(default="", repr=False)
    is_free: bool = False
    is_active: bool = True
    is_default: bool = False
    fallback_order: int = 999
    notes: str = ""

    @property
    def has_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def is_eligible(self) -> bool:
        """Active and keyed providers are the only dispatch candidates."""
        return self.is_active and self.has_key

    @property
    def masked_key(self) -> str:
        """Key with all but the last four characters hidden."""
        if not self.has_key:
            return ""
        key = self.api_key.strip()
        return "*" * max(len(key) - 4, 4) + key[-4:]

    @property
    def is_anthropic(self) -> bool:
        return "anthropic.com" in self.base_url

    @property
    def is_openrouter(self) -> bool:
        return "openrouter.ai" in self.base_url


@dataclass(frozen=True)
class Message:
    """A single chat message in a completion request."""
    role: str  # "system" or "user"
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class CompletionParams:
    """Generation parameters passed through to the provider."""
    temperature: float = 0.7
    max_tokens: int = 1024


@dataclass
class TokenUsage:
    """Token usage reported by a provider, when available."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @property
    def is_empty(self) -> bool:
        return self.total_tokens == 0


@dataclass
class CompletionResult:
    """
    Result of a successful dispatch.

    Attributes:
        content: Completion text
        provider: Name of the provider that produced it
        model: Model identifier used
        duration_seconds: Wall-clock time of the winning attempt
        usage: Token usage if the provider reported it
    """
    content: str
    provider: str
    model: str
    duration_seconds: float = 0.0
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass
class CommentOption:
    """
    A single generated comment.

    Attributes:
        style: Comment approach
        text: The comment text
        char_count: Number of characters in text
        is_used: Set when the comment is posted
        is_saved: Set when the comment is kept as a client sample
    """
    style: CommentStyle
    text: str
    char_count: int
    is_used: bool = False
    is_saved: bool = False

    @classmethod
    def create(cls, text: str, style: CommentStyle = CommentStyle.CONVERSATIONAL) -> CommentOption:
        text = text.strip()
        return cls(style=style, text=text, char_count=len(text))

    def to_dict(self) -> dict:
        return {
            "style": self.style.value,
            "text": self.text,
            "char_count": self.char_count,
            "is_used": self.is_used,
            "is_saved": self.is_saved,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CommentOption:
        text = data.get("text", "")
        return cls(
            style=CommentStyle(data.get("style", CommentStyle.CONVERSATIONAL.value)),
            text=text,
            char_count=data.get("char_count", len(text)),
            is_used=data.get("is_used", False),
            is_saved=data.get("is_saved", False),
        )


@dataclass(frozen=True)
class Client:
    """
    Read-only client record used for prompting and matching.

    Attributes:
        id: Client identifier
        name: Client display name
        industry: Industry label
        keywords: Keywords used by keyword matching
        voice_prompt: Description of the client's voice
        voice_prompt_with_cta: Voice description used when a CTA is requested
        default_cta: Call to action text
        description: Business description
        target_audience: Audience description
        sample_comments: Example comments in the client's voice
        is_active: Inactive clients are skipped by keyword matching
    """
    id: str
    name: str
    industry: str = ""
    keywords: tuple[str, ...] = ()
    voice_prompt: str = ""
    voice_prompt_with_cta: str = ""
    default_cta: str = ""
    description: str = ""
    target_audience: str = ""
    sample_comments: tuple[str, ...] = ()
    is_active: bool = True


@dataclass(frozen=True)
class PlatformPrompt:
    """Style rules for one platform."""
    platform: str
    style_prompt: str
    max_length: Optional[int] = None
    is_system: bool = True


@dataclass(frozen=True)
class ChatLink:
    """External chat site used by the copy-to-chat mode."""
    name: str
    url: str
    display_order: int = 0


@dataclass(frozen=True)
class GenerationRequest:
    """
    Input for a single comment generation.

    Attributes:
        client: Client the comments are written for
        platform: Platform key (e.g., "linkedin")
        content: Post content being responded to
        existing_comments: Comments already on the post
        poster_info: Context about who posted
        hashtags: Hashtags used on the post
        include_cta: Whether a subtle call to action is wanted
        num_options: Number of comment options to request
    """
    client: Optional[Client]
    platform: str
    content: str
    existing_comments: str = ""
    poster_info: str = ""
    hashtags: str = ""
    include_cta: bool = False
    num_options: int = 3


@dataclass
class Generation:
    """
    Persisted record of a successful generation.

    Only the used/saved fields change after creation.
    """
    client_id: str
    platform: str
    source_content: str
    options: list[CommentOption]
    provider: str
    model: str
    duration_ms: int
    num_options: int = 3
    include_cta: bool = False
    existing_comments: Optional[str] = None
    poster_info: Optional[str] = None
    hashtags: Optional[str] = None
    id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    selected_option_index: Optional[int] = None
    selected_option_style: Optional[str] = None
    is_used: bool = False
    used_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "platform": self.platform,
            "source_content": self.source_content,
            "existing_comments": self.existing_comments,
            "poster_info": self.poster_info,
            "hashtags": self.hashtags,
            "include_cta": self.include_cta,
            "num_options": self.num_options,
            "options": [o.to_dict() for o in self.options],
            "provider": self.provider,
            "model": self.model,
            "duration_ms": self.duration_ms,
            "created_at": self.created_at.isoformat(),
            "selected_option_index": self.selected_option_index,
            "selected_option_style": self.selected_option_style,
            "is_used": self.is_used,
            "used_at": self.used_at.isoformat() if self.used_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Generation:
        used_at = data.get("used_at")
        return cls(
            id=data.get("id"),
            client_id=data["client_id"],
            platform=data["platform"],
            source_content=data["source_content"],
            existing_comments=data.get("existing_comments"),
            poster_info=data.get("poster_info"),
            hashtags=data.get("hashtags"),
            include_cta=data.get("include_cta", False),
            num_options=data.get("num_options", 3),
            options=[CommentOption.from_dict(o) for o in data.get("options", [])],
            provider=data.get("provider", ""),
            model=data.get("model", ""),
            duration_ms=data.get("duration_ms", 0),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else datetime.now(),
            selected_option_index=data.get("selected_option_index"),
            selected_option_style=data.get("selected_option_style"),
            is_used=data.get("is_used", False),
            used_at=datetime.fromisoformat(used_at) if used_at else None,
        )


@dataclass
class AnalysisMatch:
    """
    A client judged relevant to a piece of content.

    Attributes:
        client_id: Matched client
        client_name: Client display name
        relevance: Relevance bucket
        score: Numeric score the bucket was derived from
        matched_keywords: Keywords found in the content (may be empty)
        reasons: Human-readable reasons for the match
        angle: Suggested engagement angle
    """
    client_id: str
    client_name: str
    relevance: Relevance
    score: int
    matched_keywords: list[str] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    angle: str = ""
