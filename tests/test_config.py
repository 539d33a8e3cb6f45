from __future__ import annotations

import pytest

from pr_reviewer.config import load_config_from_env
from pr_reviewer.errors import ConfigurationError

GITHUB_ENV = {
    "GITHUB_API_BASE_URL": "https://api.github.com",
    "GITHUB_TOKEN": "t",
    "GITHUB_WEBHOOK_SECRET": "s",
}


def test_load_config_requires_providers() -> None:
    with pytest.raises(ConfigurationError):
        load_config_from_env(environ=dict(GITHUB_ENV))


def test_load_config_requires_keys_for_each_provider() -> None:
    environ = {**GITHUB_ENV, "REVIEW_PROVIDERS": "openai,claude", "OPENAI_API_KEYS": "k1"}
    with pytest.raises(ConfigurationError):
        load_config_from_env(environ=environ)


def test_load_config_rejects_unknown_provider() -> None:
    environ = {**GITHUB_ENV, "REVIEW_PROVIDERS": "openai,llama", "OPENAI_API_KEYS": "k1"}
    with pytest.raises(ConfigurationError):
        load_config_from_env(environ=environ)


def test_load_config_requires_github() -> None:
    environ = {"REVIEW_PROVIDERS": "openai", "OPENAI_API_KEYS": "k1", "GITHUB_TOKEN": "t"}
    with pytest.raises(ConfigurationError):
        load_config_from_env(environ=environ)


def test_load_config_defaults() -> None:
    environ = {**GITHUB_ENV, "REVIEW_PROVIDERS": "openai", "OPENAI_API_KEYS": "k1, ,k2"}
    cfg = load_config_from_env(environ=environ)

    assert [p.name for p in cfg.providers] == ["openai"]
    assert cfg.providers[0].api_keys == ["k1", "k2"]
    assert cfg.providers[0].model is None
    assert cfg.review.max_chunk_size == 2000
    assert cfg.review.skip_patterns == []
    assert cfg.review.backend_timeout_seconds is None
    assert cfg.review.fail_fast is False
    assert cfg.log_level == "INFO"


def test_load_config_full() -> None:
    environ = {
        **GITHUB_ENV,
        "REVIEW_PROVIDERS": "Gemini, claude",
        "GEMINI_API_KEYS": "g1",
        "ANTHROPIC_API_KEYS": "a1,a2",
        "ANTHROPIC_MODEL": "claude-custom",
        "ANTHROPIC_TEMPERATURE": "0",
        "ANTHROPIC_TIMEOUT_MS": "5000",
        "MAX_CHUNK_SIZE": "4000",
        "SKIP_PATTERNS": "*.min.js,package-lock.json",
        "REVIEW_FOCUS": "security,error handling",
        "BACKEND_TIMEOUT_SECONDS": "12.5",
        "FAIL_FAST": "true",
        "MIN_CALL_INTERVAL_MS": "200",
        "LOG_LEVEL": "debug",
    }
    cfg = load_config_from_env(environ=environ)

    assert [p.name for p in cfg.providers] == ["gemini", "claude"]
    claude = cfg.providers[1]
    assert claude.api_keys == ["a1", "a2"]
    assert claude.model == "claude-custom"
    assert claude.temperature == 0.0
    assert claude.timeout_ms == 5000
    assert cfg.review.max_chunk_size == 4000
    assert cfg.review.skip_patterns == ["*.min.js", "package-lock.json"]
    assert cfg.review.focus == ["security", "error handling"]
    assert cfg.review.backend_timeout_seconds == 12.5
    assert cfg.review.fail_fast is True
    assert cfg.review.min_call_interval_ms == 200
    assert cfg.log_level == "DEBUG"


def test_load_config_rejects_invalid_numbers() -> None:
    environ = {**GITHUB_ENV, "REVIEW_PROVIDERS": "openai", "OPENAI_API_KEYS": "k", "MAX_CHUNK_SIZE": "0"}
    with pytest.raises(ConfigurationError):
        load_config_from_env(environ=environ)


def test_load_config_rejects_invalid_boolean() -> None:
    environ = {**GITHUB_ENV, "REVIEW_PROVIDERS": "openai", "OPENAI_API_KEYS": "k", "FAIL_FAST": "maybe"}
    with pytest.raises(ConfigurationError):
        load_config_from_env(environ=environ)


def test_load_config_rejects_unknown_log_level() -> None:
    environ = {**GITHUB_ENV, "REVIEW_PROVIDERS": "openai", "OPENAI_API_KEYS": "k", "LOG_LEVEL": "verbose"}
    with pytest.raises(ConfigurationError):
        load_config_from_env(environ=environ)
