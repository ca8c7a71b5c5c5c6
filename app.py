"""
Maximus Engagimus - Main Streamlit Application.

Generate platform-specific social media comments for agency clients
using whichever configured AI provider is available, and match content
to the clients it is relevant to.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

import streamlit as st

from engagimus.analysis import ContentAnalyzer
from engagimus.config import get_config
from engagimus.data.stores import JsonGenerationStore, load_clients
from engagimus.errors import ValidationError
from engagimus.generation import CommentGenerator, CompletionDispatcher, test_provider
from engagimus.models import Client, GenerationRequest
from engagimus.platforms import SUPPORTED_PLATFORMS
from engagimus.providers import DEFAULT_PROVIDERS, ProviderRegistry, list_chat_links
from engagimus.utils import display_error, handle_error, setup_logging, to_app_error
from engagimus.utils.validators import validate_provider_config

logger = logging.getLogger(__name__)

# Page configuration
st.set_page_config(
    page_title="Maximus Engagimus",
    page_icon="💬",
    layout="wide",
    initial_sidebar_state="expanded",
)

PAGES = ("Generate", "Analyze", "Providers", "History")


def init_session_state() -> None:
    """Initialize session state variables."""
    defaults = {
        # View state
        "current_view": "Generate",
        "use_clipboard_mode": False,

        # Generation state
        "last_outcome": None,  # GenerationOutcome
        "clipboard_prompt": "",

        # Analysis state
        "last_analysis": None,  # AnalysisResult
    }

    for key, default in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = default


@st.cache_resource
def configure_logging() -> None:
    """Configure logging once per server process."""
    config = get_config()
    setup_logging(config.log_level, config.paths.logs_dir / "engagimus.log")


@st.cache_resource
def load_registry() -> ProviderRegistry:
    """Load the provider registry, seeding the default catalog on first run."""
    config = get_config()
    try:
        return ProviderRegistry.load(config.paths.providers_file)
    except FileNotFoundError:
        registry = ProviderRegistry()
        registry.seed_defaults(DEFAULT_PROVIDERS)
        registry.save(config.paths.providers_file)
        return registry


@st.cache_resource
def load_generation_store() -> JsonGenerationStore:
    return JsonGenerationStore(get_config().paths.generations_file)


@st.cache_data
def load_client_list() -> list[Client]:
    return load_clients(get_config().paths.clients_file)


def get_generator() -> CommentGenerator:
    config = get_config()
    dispatcher = CompletionDispatcher(load_registry(), config=config.dispatch)
    return CommentGenerator(dispatcher, load_generation_store(), config=config.generation)


def render_sidebar() -> None:
    """Render navigation and provider status."""
    with st.sidebar:
        st.header("Navigation")
        st.session_state.current_view = st.radio(
            "Page",
            options=PAGES,
            index=PAGES.index(st.session_state.current_view),
            label_visibility="collapsed",
        )

        st.divider()
        st.subheader("AI Providers")

        registry = load_registry()
        candidates = registry.candidates()
        if candidates:
            st.success(f"Active: {', '.join(p.name for p in candidates)}")
        else:
            st.warning("No AI providers configured")
            st.caption("Add an API key on the Providers page, or use copy-to-chat mode.")

        st.session_state.use_clipboard_mode = st.toggle(
            "Copy-to-chat mode",
            value=st.session_state.use_clipboard_mode or not candidates,
            help="Build the prompt for pasting into a chat site instead of calling an API",
        )

        clients = load_client_list()
        st.divider()
        st.caption(f"Clients loaded: {len(clients)}")


def render_generate_page() -> None:
    """Render the comment generation form and results."""
    st.header("Generate Comments")

    clients = [c for c in load_client_list() if c.is_active]
    if not clients:
        st.info(f"No clients found. Add clients to {get_config().paths.clients_file}.")
        return

    config = get_config()

    col1, col2 = st.columns(2)
    with col1:
        client = st.selectbox("Client", options=clients, format_func=lambda c: c.name)
    with col2:
        platform = st.selectbox("Platform", options=SUPPORTED_PLATFORMS)

    content = st.text_area("Post content", height=180, placeholder="Paste the post you're responding to")

    with st.expander("Additional context"):
        poster_info = st.text_input("Poster info")
        hashtags = st.text_input("Hashtags")
        existing_comments = st.text_area("Existing comments", height=100)

    col1, col2 = st.columns(2)
    with col1:
        num_options = st.slider(
            "Comment options",
            min_value=1,
            max_value=config.generation.max_options,
            value=config.generation.default_num_options,
        )
    with col2:
        include_cta = st.checkbox("Include call to action", value=False)

    request = GenerationRequest(
        client=client,
        platform=platform,
        content=content,
        existing_comments=existing_comments,
        poster_info=poster_info,
        hashtags=hashtags,
        include_cta=include_cta,
        num_options=num_options,
    )

    generator = get_generator()

    if st.session_state.use_clipboard_mode:
        render_clipboard_mode(generator, request)
        return

    if st.button("Generate", type="primary", use_container_width=True):
        with st.spinner("Generating comments..."):
            try:
                st.session_state.last_outcome = generator.generate_sync(request)
            except Exception as e:
                handle_error(e, context="generate")
                st.session_state.last_outcome = None

    render_generation_results(generator)


def render_clipboard_mode(generator: CommentGenerator, request: GenerationRequest) -> None:
    """Build the pasteable prompt and list chat sites."""
    if st.button("Build prompt", type="primary", use_container_width=True):
        try:
            st.session_state.clipboard_prompt = generator.build_clipboard_prompt(request)
        except ValidationError as e:
            display_error(to_app_error(e))
            st.session_state.clipboard_prompt = ""

    if st.session_state.clipboard_prompt:
        st.code(st.session_state.clipboard_prompt, language=None)
        st.caption("Copy the prompt above and paste it into any chat:")
        cols = st.columns(len(list_chat_links()))
        for col, link in zip(cols, list_chat_links()):
            with col:
                st.link_button(link.name, link.url, use_container_width=True)


def render_generation_results(generator: CommentGenerator) -> None:
    """Render the options from the last generation."""
    outcome = st.session_state.last_outcome
    if outcome is None:
        return

    if not outcome.success:
        display_error(to_app_error(outcome.error))
        return

    st.subheader("Options")
    st.caption(f"{outcome.provider} · {outcome.model} · {outcome.duration_ms / 1000:.1f}s")
    for warning in outcome.warnings:
        logger.debug("Generation warning: %s", warning)

    for index, option in enumerate(outcome.options):
        with st.container(border=True):
            st.markdown(f"**{option.style.value.replace('-', ' ').title()}** · {option.char_count} chars")
            st.code(option.text, language=None)
            if option.is_used:
                st.caption("Marked as used")
            elif st.button("Mark as used", key=f"use_{outcome.generation_id}_{index}"):
                try:
                    generator.mark_as_used(outcome.generation_id, index)
                    st.toast("Marked as used")
                    st.rerun()
                except (KeyError, IndexError) as e:
                    handle_error(e, context="mark_as_used")


def render_analyze_page() -> None:
    """Render content-to-client matching."""
    st.header("Analyze Content")

    clients = [c for c in load_client_list() if c.is_active]
    content = st.text_area("Content to analyze", height=180)

    registry = load_registry()
    modes = ["local", "ai"] if registry.has_configured_provider() else ["local"]
    mode = st.radio(
        "Matching",
        options=modes,
        format_func=lambda m: "Keyword matching" if m == "local" else "AI matching",
        horizontal=True,
    )

    if st.button("Analyze", type="primary"):
        config = get_config()
        analyzer = ContentAnalyzer(
            CompletionDispatcher(registry, config=config.dispatch),
            config=config.analysis,
        )
        with st.spinner("Analyzing..."):
            try:
                st.session_state.last_analysis = analyzer.analyze_sync(content, clients, mode)
            except Exception as e:
                handle_error(e, context="analyze")
                st.session_state.last_analysis = None

    result = st.session_state.last_analysis
    if result is None:
        return

    if result.error:
        display_error(to_app_error(result.error))
        return

    if result.fallback_reason:
        st.info(f"AI matching unavailable, showing keyword matches. {result.fallback_reason}")

    if not result.matches:
        st.warning("No matching clients found.")
        return

    for match in result.matches:
        with st.container(border=True):
            st.markdown(f"**{match.client_name}** · {match.relevance.value} ({match.score})")
            for reason in match.reasons:
                st.caption(f"- {reason}")
            if match.angle:
                st.write(match.angle)


def render_providers_page() -> None:
    """Render provider configuration: keys, default, order, tests."""
    st.header("AI Providers")

    registry = load_registry()

    col1, col2 = st.columns([3, 1])
    with col2:
        if st.button("Add default providers", use_container_width=True):
            created = registry.seed_defaults(DEFAULT_PROVIDERS)
            registry.save()
            st.toast(f"Added {len(created)} providers")
            st.rerun()

    providers = sorted(registry.list(), key=lambda p: (not p.is_default, p.fallback_order))
    if not providers:
        st.info("No providers yet. Add the default catalog to get started.")
        return

    for provider in providers:
        label = f"{provider.name} · {provider.model}"
        if provider.is_default:
            label += " · default"
        if not provider.is_eligible:
            label += " · inactive"

        with st.expander(label):
            if provider.notes:
                st.caption(provider.notes)

            api_key = st.text_input(
                "API key",
                value="",
                type="password",
                placeholder=provider.masked_key or "Not set",
                key=f"key_{provider.id}",
            )
            model = st.text_input("Model", value=provider.model, key=f"model_{provider.id}")
            is_active = st.checkbox("Active", value=provider.is_active, key=f"active_{provider.id}")
            fallback_order = st.number_input(
                "Fallback order",
                min_value=1,
                value=provider.fallback_order,
                key=f"order_{provider.id}",
            )

            col1, col2, col3 = st.columns(3)
            with col1:
                if st.button("Save", key=f"save_{provider.id}", use_container_width=True):
                    save_provider(registry, provider.id, api_key, model, is_active, int(fallback_order))
            with col2:
                if st.button(
                    "Make default",
                    key=f"default_{provider.id}",
                    disabled=provider.is_default,
                    use_container_width=True,
                ):
                    registry.set_default(provider.id)
                    registry.save()
                    st.rerun()
            with col3:
                if st.button("Test", key=f"test_{provider.id}", use_container_width=True):
                    with st.spinner(f"Testing {provider.name}..."):
                        result = asyncio.run(test_provider(provider))
                    if result.success:
                        st.success(f"{result.message}: {result.response}")
                    else:
                        st.error(result.message)


def save_provider(
    registry: ProviderRegistry,
    provider_id: str,
    api_key: str,
    model: str,
    is_active: bool,
    fallback_order: int,
) -> None:
    """Validate and persist edits to one provider."""
    changes = {"model": model.strip(), "is_active": is_active, "fallback_order": fallback_order}
    if api_key.strip():
        changes["api_key"] = api_key.strip()

    candidate = registry.get(provider_id)
    validation = validate_provider_config(replace(candidate, **changes))
    if not validation.valid:
        st.error(validation.error_message)
        return
    for warning in validation.warnings:
        st.warning(warning)

    try:
        registry.update(provider_id, **changes)
        registry.save()
    except (KeyError, OSError) as e:
        handle_error(e, context="save_provider")
        return

    st.toast("Provider saved")
    st.rerun()


def render_history_page() -> None:
    """Render recent generations and usage stats."""
    st.header("History")

    store = load_generation_store()
    stats = store.stats()

    col1, col2, col3 = st.columns(3)
    col1.metric("Generations", stats.total)
    col2.metric("Used", stats.used)
    col3.metric("Usage rate", f"{stats.usage_rate:.0f}%")

    clients = {c.id: c.name for c in load_client_list()}
    for generation in store.list(limit=25):
        client_name = clients.get(generation.client_id, generation.client_id)
        with st.expander(
            f"{generation.created_at:%Y-%m-%d %H:%M} · {client_name} · {generation.platform}"
        ):
            st.caption(generation.source_content[:300])
            for index, option in enumerate(generation.options):
                marker = "✅ " if index == generation.selected_option_index else ""
                st.markdown(f"{marker}**{option.style.value}**: {option.text}")
            st.caption(f"{generation.provider} · {generation.model} · {generation.duration_ms}ms")


def main() -> None:
    """Main application entry point."""
    configure_logging()
    init_session_state()

    st.title("Maximus Engagimus")
    st.caption("AI-assisted social media engagement")

    render_sidebar()

    view = st.session_state.current_view
    if view == "Analyze":
        render_analyze_page()
    elif view == "Providers":
        render_providers_page()
    elif view == "History":
        render_history_page()
    else:
        render_generate_page()

    # Footer
    st.divider()
    st.caption("Maximus Engagimus v0.1")


if __name__ == "__main__":
    main()
