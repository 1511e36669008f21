"""Tests for Settings."""

import pytest
from pydantic import ValidationError

from zenchat.config import DEFAULT_SYSTEM_PROMPT, Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    s = Settings(_env_file=None)
    assert s.max_iterations == 8
    assert s.max_context_tokens == 128_000
    assert s.compress_threshold == 0.7
    assert s.keep_recent == 4
    assert s.tool_result_max_chars == 5000
    assert s.search_timeout == 5.0
    assert not s.custom_api_active
    assert s.base_prompt == DEFAULT_SYSTEM_PROMPT


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("ZENCHAT_MAX_ITERATIONS", "3")
    monkeypatch.setenv("ZENCHAT_USE_CUSTOM_API", "true")
    monkeypatch.setenv("ZENCHAT_SEARCH_ENDPOINTS", '["https://searx.local/search"]')
    s = Settings(_env_file=None)
    assert s.max_iterations == 3
    assert s.use_custom_api is True
    assert s.search_endpoints == ["https://searx.local/search"]


def test_api_key_falls_back_to_openai_env(monkeypatch):
    monkeypatch.delenv("ZENCHAT_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-openai")
    s = Settings(_env_file=None, use_custom_api=True)
    assert s.api_key == "sk-from-openai"
    assert s.custom_api_active


def test_system_prompt_override():
    s = Settings(_env_file=None, system_prompt="Be terse.")
    assert s.base_prompt == "Be terse."


@pytest.mark.parametrize(
    "overrides",
    [
        {"compress_threshold": 0},
        {"compress_threshold": 1.5},
        {"keep_recent": 0},
        {"max_iterations": 0},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
