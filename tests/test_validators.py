"""Tests for validation utilities."""

import pytest

from engagimus.models import Client, GenerationRequest, ProviderConfig
from engagimus.utils.validators import (
    ValidationResult,
    validate_analysis_input,
    validate_api_key,
    validate_content,
    validate_generation_request,
    validate_option_count,
    validate_platform,
    validate_provider_config,
)


@pytest.fixture
def sample_client() -> Client:
    return Client(id="c1", name="Summit Roofing", voice_prompt="Friendly.")


def make_provider(**kwargs) -> ProviderConfig:
    defaults = {
        "id": "groq",
        "name": "Groq",
        "base_url": "https://api.groq.com/openai/v1",
        "model": "llama-3.3-70b-versatile",
        "api_key": "gsk_0123456789abcdefghijkl",
    }
    defaults.update(kwargs)
    return ProviderConfig(**defaults)


class TestValidatePlatform:
    """Tests for platform validation."""

    def test_valid_platform(self):
        assert validate_platform("linkedin").valid is True

    def test_empty_platform(self):
        result = validate_platform("")
        assert result.valid is False
        assert result.field == "platform"

    def test_unknown_platform(self):
        result = validate_platform("myspace")
        assert result.valid is False
        assert "myspace" in result.error_message


class TestValidateContent:
    """Tests for content validation."""

    def test_valid_content(self):
        assert validate_content("A post").valid is True

    def test_blank_content(self):
        result = validate_content("  \n ")
        assert result.valid is False
        assert result.error_message == "Please enter content to respond to"

    def test_too_long(self):
        assert validate_content("x" * 20_001).valid is False


class TestValidateOptionCount:
    """Tests for option count validation."""

    @pytest.mark.parametrize("count,valid", [(0, False), (1, True), (3, True), (5, True), (6, False)])
    def test_bounds(self, count, valid):
        assert validate_option_count(count).valid is valid


class TestValidateGenerationRequest:
    """Tests for full request validation."""

    def test_valid_request(self, sample_client):
        request = GenerationRequest(client=sample_client, platform="x", content="Hello")
        result = validate_generation_request(request)

        assert result.valid is True
        assert result.warnings == []

    def test_client_checked_first(self):
        request = GenerationRequest(client=None, platform="", content="")
        result = validate_generation_request(request)

        assert result.error_message == "Please select a client"
        assert result.field == "client"

    def test_warns_without_voice(self):
        request = GenerationRequest(client=Client(id="c", name="Quiet"), platform="x", content="Hi")
        result = validate_generation_request(request)

        assert result.valid is True
        assert len(result.warnings) == 1


class TestValidateAnalysisInput:
    """Tests for analysis input validation."""

    def test_valid(self, sample_client):
        assert validate_analysis_input("Post", [sample_client]).valid is True

    def test_blank_content(self, sample_client):
        result = validate_analysis_input("", [sample_client])
        assert result.error_message == "Please enter content to analyze"

    def test_no_clients(self):
        result = validate_analysis_input("Post", [])
        assert result.error_message == "No active clients to match against"


class TestValidateApiKey:
    """Tests for API key validation."""

    def test_valid_key(self):
        result = validate_api_key("sk-abcdefghij1234567890")
        assert result.valid is True
        assert result.warnings == []

    def test_empty_key(self):
        assert validate_api_key("").valid is False
        assert validate_api_key("   ").valid is False

    def test_key_with_spaces(self):
        assert validate_api_key("sk-abc def").valid is False

    def test_too_short(self):
        result = validate_api_key("sk-short")
        assert result.valid is True
        assert len(result.warnings) > 0


class TestValidateProviderConfig:
    """Tests for provider record validation."""

    def test_valid(self):
        assert validate_provider_config(make_provider()).valid is True

    @pytest.mark.parametrize("changes,field", [
        ({"name": " "}, "name"),
        ({"base_url": "api.groq.com"}, "base_url"),
        ({"base_url": "ftp://api.groq.com"}, "base_url"),
        ({"model": ""}, "model"),
        ({"fallback_order": 0}, "fallback_order"),
        ({"api_key": "sk bad key with spaces"}, "api_key"),
    ])
    def test_invalid(self, changes, field):
        result = validate_provider_config(make_provider(**changes))
        assert result.valid is False
        assert result.field == field

    def test_active_without_key_warns(self):
        result = validate_provider_config(make_provider(api_key=""))
        assert result.valid is True
        assert any("no API key" in w for w in result.warnings)


class TestValidationResult:
    """Tests for ValidationResult dataclass."""

    def test_valid_result(self):
        result = ValidationResult(valid=True)
        assert result.valid is True
        assert result.error_message == ""
        assert result.warnings == []

    def test_invalid_result(self):
        result = ValidationResult(valid=False, error_message="Bad input", field="content")
        assert result.valid is False
        assert result.field == "content"

    def test_result_with_warnings(self):
        result = ValidationResult(valid=True, warnings=["Minor issue"])
        assert result.warnings == ["Minor issue"]
