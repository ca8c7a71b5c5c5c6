"""Built-in style prompts for each supported platform."""

from __future__ import annotations

from engagimus.models import PlatformPrompt

PLATFORM_PROMPTS: dict[str, PlatformPrompt] = {
    "instagram": PlatformPrompt(
        platform="instagram",
        style_prompt=(
            "Write in a warm, personable, and conversational tone. Use casual language that "
            "feels authentic. Keep it brief and engaging. Emojis are acceptable but use "
            "sparingly (1-2 max)."
        ),
        max_length=150,
    ),
    "facebook": PlatformPrompt(
        platform="facebook",
        style_prompt=(
            "Write in a friendly, approachable tone. Can be slightly longer than Instagram. "
            "Focus on building connection and encouraging discussion."
        ),
        max_length=200,
    ),
    "linkedin": PlatformPrompt(
        platform="linkedin",
        style_prompt=(
            "Write in a professional yet personable tone. Focus on adding value and "
            "demonstrating expertise. Avoid being too casual or using emojis. Use "
            "industry-relevant language."
        ),
        max_length=200,
    ),
    "x": PlatformPrompt(
        platform="x",
        style_prompt=(
            "Write in a punchy, concise style. Be direct and impactful. Can be witty or "
            "thought-provoking. No hashtags unless specifically requested."
        ),
        max_length=100,
    ),
    "tiktok": PlatformPrompt(
        platform="tiktok",
        style_prompt=(
            "Write in a casual, fun, and energetic tone. Use language that resonates with "
            "younger audiences. Be authentic and relatable. Can use trending phrases "
            "appropriately."
        ),
        max_length=100,
    ),
    "reddit": PlatformPrompt(
        platform="reddit",
        style_prompt=(
            "Write in an authentic, community-focused tone. Be helpful and genuine. Avoid "
            "anything that sounds promotional or corporate. Match the subreddit culture. "
            "Add value to the discussion."
        ),
        max_length=300,
    ),
    "forum": PlatformPrompt(
        platform="forum",
        style_prompt=(
            "Write in a helpful, informative tone. Focus on providing value and answering "
            "questions. Be respectful of the community and its norms. Can be more detailed."
        ),
        max_length=400,
    ),
    "houzz": PlatformPrompt(
        platform="houzz",
        style_prompt=(
            "Write in a helpful, knowledgeable tone about home design and renovation. Focus "
            "on expertise and practical advice. Be encouraging and supportive of homeowner "
            "projects."
        ),
        max_length=300,
    ),
    "youtube": PlatformPrompt(
        platform="youtube",
        style_prompt=(
            "Write engaging comments that add to the discussion. Reference specific parts of "
            "the video when relevant. Be authentic and conversational. Add your own "
            "perspective."
        ),
        max_length=200,
    ),
    "other": PlatformPrompt(
        platform="other",
        style_prompt=(
            "Write in a professional yet approachable tone. Adapt to the context and "
            "platform norms. Focus on adding value to the conversation."
        ),
        max_length=250,
    ),
}

SUPPORTED_PLATFORMS = tuple(PLATFORM_PROMPTS)


def get_platform_prompt_defaults(platform: str) -> PlatformPrompt:
    """Return the built-in prompt for a platform, falling back to 'other'."""
    return PLATFORM_PROMPTS.get(platform, PLATFORM_PROMPTS["other"])
