"""Comment generation module."""

from .prompt_builder import PromptBuilder, AssembledPrompt, CLIPBOARD_SEPARATOR
from .response_parser import parse_llm_response, parse_comment_options, extract_json_array, ParsedResponse
from .llm_client import ProviderClient, ProviderTestResult, test_provider
from .dispatcher import CompletionDispatcher
from .orchestrator import CommentGenerator, GenerationOutcome, GenerationStage

__all__ = [
    # Prompt building
    "PromptBuilder",
    "AssembledPrompt",
    "CLIPBOARD_SEPARATOR",
    # Response parsing
    "parse_llm_response",
    "parse_comment_options",
    "extract_json_array",
    "ParsedResponse",
    # Provider calls
    "ProviderClient",
    "ProviderTestResult",
    "test_provider",
    "CompletionDispatcher",
    # Orchestration
    "CommentGenerator",
    "GenerationOutcome",
    "GenerationStage",
]
