"""Prompt builder for comment generation and content analysis requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from engagimus.models import Client, GenerationRequest, Message, PlatformPrompt
from engagimus.platforms import get_platform_prompt_defaults

logger = logging.getLogger(__name__)

CLIPBOARD_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class AssembledPrompt:
    """
    Complete prompt ready for dispatch.

    Attributes:
        system_prompt: System/instruction content
        user_prompt: User message content
        metadata: Additional info for logging/debugging
    """
    system_prompt: str
    user_prompt: str
    metadata: dict = field(default_factory=dict, compare=False)

    @property
    def messages(self) -> tuple[Message, ...]:
        return (
            Message(role="system", content=self.system_prompt),
            Message(role="user", content=self.user_prompt),
        )

    def to_clipboard_text(self) -> str:
        return f"{self.system_prompt}{CLIPBOARD_SEPARATOR}{self.user_prompt}"


class PromptBuilder:
    """
    Assembles prompts for comment generation and content analysis.

    Every method is a pure function of its arguments: no network or storage
    access, and identical inputs always produce identical text.

    Usage:
        builder = PromptBuilder()
        prompt = builder.build(request, platform_prompt)
        # prompt.messages ready for dispatch
    """

    def build(
        self,
        request: GenerationRequest,
        platform_prompt: PlatformPrompt | None = None,
    ) -> AssembledPrompt:
        """
        Build complete prompt for a generation request.

        Args:
            request: Generation request with client and content
            platform_prompt: Style rules; built-in defaults when omitted

        Returns:
            AssembledPrompt ready for dispatch
        """
        if request.client is None:
            raise ValueError("A client is required to build a prompt")

        platform_prompt = platform_prompt or get_platform_prompt_defaults(request.platform)

        system_prompt = self.build_system_prompt(
            request.client,
            request.platform,
            platform_prompt,
            include_cta=request.include_cta,
        )
        user_prompt = self.build_user_prompt(
            request.content,
            existing_comments=request.existing_comments,
            poster_info=request.poster_info,
            hashtags=request.hashtags,
            num_options=request.num_options,
            include_cta=request.include_cta,
        )

        logger.debug(
            "Built prompt for %s/%s: %d system chars, %d user chars",
            request.client.name,
            request.platform,
            len(system_prompt),
            len(user_prompt),
        )

        return AssembledPrompt(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            metadata={
                "client_id": request.client.id,
                "platform": request.platform,
                "num_options": request.num_options,
                "include_cta": request.include_cta,
            },
        )

    def build_system_prompt(
        self,
        client: Client,
        platform: str,
        platform_prompt: PlatformPrompt | None = None,
        include_cta: bool = False,
    ) -> str:
        """Build the system prompt with client voice and platform rules."""
        platform_prompt = platform_prompt or get_platform_prompt_defaults(platform)

        voice_prompt = (
            client.voice_prompt_with_cta
            if include_cta and client.voice_prompt_with_cta
            else client.voice_prompt
        )

        if client.sample_comments:
            samples = "\n".join(
                f'{i}. "{comment}"' for i, comment in enumerate(client.sample_comments, 1)
            )
        else:
            samples = "No samples provided."

        cta_section = ""
        if include_cta and client.default_cta:
            cta_section = f"## CALL TO ACTION (use subtly when appropriate)\n{client.default_cta}"

        max_length_line = ""
        if platform_prompt.max_length:
            max_length_line = f"Maximum length: {platform_prompt.max_length} characters"

        return f"""You are a social media engagement specialist writing comments for {client.name}.

## CLIENT PROFILE
- Industry: {client.industry or 'Not specified'}
- Description: {client.description or 'Not provided'}
- Target Audience: {client.target_audience or 'General audience'}

## VOICE & STYLE
{voice_prompt or 'Friendly, knowledgeable, and genuine.'}

{cta_section}

## SAMPLE COMMENTS (match this style)
{samples}

## PLATFORM-SPECIFIC GUIDELINES ({platform.upper()})
{platform_prompt.style_prompt}
{max_length_line}

## RULES
1. Sound human and authentic - never robotic or generic
2. Match the platform's typical tone and length
3. Add value to the conversation
4. Avoid hashtags unless specifically requested
5. Never repeat phrases from existing comments
6. Each option should have a distinctly different approach
7. Keep comments concise and impactful"""

    def build_user_prompt(
        self,
        content: str,
        existing_comments: str = "",
        poster_info: str = "",
        hashtags: str = "",
        num_options: int = 3,
        include_cta: bool = False,
    ) -> str:
        """Build the user prompt with the post being responded to."""
        sections = [f"## CONTENT TO RESPOND TO\n{content.strip()}"]

        if poster_info and poster_info.strip():
            sections.append(f"## POSTER INFORMATION\n{poster_info.strip()}")

        if hashtags and hashtags.strip():
            sections.append(f"## HASHTAGS USED\n{hashtags.strip()}")

        if existing_comments and existing_comments.strip():
            sections.append(
                f"## EXISTING COMMENTS (avoid similar phrasing)\n{existing_comments.strip()}"
            )

        if include_cta:
            cta_guidance = "Include a subtle call-to-action where it feels natural (not forced)."
        else:
            cta_guidance = "Do NOT include any promotional content or calls-to-action."

        sections.append(f"""## YOUR TASK
Generate exactly {num_options} unique comment options. Each should take a different approach:

1. **Conversational** - Friendly and casual, like chatting with a friend
2. **Professional** - Polished and knowledgeable, establishes expertise
3. **Question-Based** - Asks an engaging question to spark discussion
4. **Value-Add** - Provides a helpful tip, insight, or resource
5. **Brief** - Short and punchy, gets straight to the point

{cta_guidance}

## RESPONSE FORMAT
Respond with a JSON array. Each object should have:
- "style": The approach name (conversational, professional, question, value-add, or brief)
- "text": The comment text

Example:
[
  {{"style": "conversational", "text": "This is so relatable! I've been..."}},
  {{"style": "professional", "text": "Great insights on..."}},
  {{"style": "question", "text": "Have you considered..."}}
]

Generate {num_options} options now:""")

        return "\n\n".join(sections)

    def build_analysis_prompt(self, content: str, clients: Sequence[Client]) -> str:
        """Build the single prompt asking which clients a piece of content suits."""
        summaries = []
        for client in clients:
            keywords = ", ".join(client.keywords) or "None"
            summaries.append(
                f"### {client.name}\n"
                f"- Industry: {client.industry or 'Not specified'}\n"
                f"- Keywords: {keywords}\n"
                f"- Target Audience: {client.target_audience or 'Not specified'}\n"
                f"- Description: {client.description or 'Not provided'}"
            )
        client_summaries = "\n\n".join(summaries)

        return f"""You are a content analyst helping match social media content to relevant client profiles.

## CONTENT TO ANALYZE
{content.strip()}

## AVAILABLE CLIENTS
{client_summaries}

## YOUR TASK
Analyze the content and determine which clients it's relevant to.

For each relevant client, provide:
1. Relevance level: "high", "medium", or "low"
2. Why it's relevant (industry match, keyword match, audience fit)
3. A suggested engagement angle for that client

## RESPONSE FORMAT
Respond with a JSON array. Each object should have:
- "client_name": The client name
- "relevance": "high", "medium", or "low"
- "reasons": Array of strings explaining why it's relevant
- "angle": Suggested engagement angle

Only include clients with at least some relevance. Example:
[
  {{
    "client_name": "ABC Company",
    "relevance": "high",
    "reasons": ["Industry match: both in construction", "Keyword match: renovation"],
    "angle": "Comment on shared challenges in the renovation space"
  }}
]

Analyze now:"""

    def build_industry_site_prompt(
        self,
        industry: str,
        existing_sites: Sequence[str] = (),
    ) -> str:
        """Build the prompt asking for communities where an industry engages."""
        existing_list = ""
        if existing_sites:
            existing_list = f"\nAlready tracking: {', '.join(existing_sites)}"

        return f"""You are an expert in digital marketing and online communities.

## TASK
Suggest 5-10 online platforms, forums, and communities where {industry} professionals and enthusiasts actively engage.
{existing_list}

## REQUIREMENTS
- Focus on platforms with active discussions (not just company pages)
- Include a mix of: social platforms, forums, industry sites, Q&A sites, communities
- Prioritize platforms where commenting/engagement is common
- Don't suggest platforms already being tracked

## RESPONSE FORMAT
Respond with a JSON array. Each object should have:
- "name": Platform/site name
- "url": Full URL (if applicable)
- "type": One of: forum, community, directory, review_site, social_platform, news_site, other
- "description": Brief description of why it's good for engagement

Suggest platforms for the {industry} industry:"""

    def build_clipboard_prompt(
        self,
        request: GenerationRequest,
        platform_prompt: PlatformPrompt | None = None,
    ) -> str:
        """Single pasteable prompt for copy-to-chat mode. Performs no dispatch."""
        return self.build(request, platform_prompt).to_clipboard_text()
