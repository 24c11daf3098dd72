"""Tests for config/config_loader.py."""

from dataclasses import fields
from pathlib import Path

import pytest
import yaml

from config.config_loader import (
    AppConfig,
    ModelConfig,
    PacingConfig,
    PromptsConfig,
    RetryConfig,
    load_config,
)

_PROMPT_KEYS = [f.name for f in fields(PromptsConfig) if f.name != "sector_strategies"]

# Every placeholder any prompt template may use.
_FORMAT_KWARGS = dict(
    language_instruction="IMPORTANT: Output ALL text content values in ENGLISH.",
    issue="Cities should ban cars",
    resolution="Cities should ban cars",
    focus="",
    language="en",
    current_date="2026-01-01",
    sector="Statistics",
    target_count=10,
    strategy="Find numbers.",
    avoidance="",
    topic="car bans",
    country="Korea",
)


@pytest.fixture
def minimal_settings(tmp_path: Path) -> Path:
    """Write a minimal valid settings.yaml to a temp path."""
    settings = {
        "defaults": {
            "provider": "gemini",
            "language": "ko",
            "output_dir": "./output",
            "autoplay": False,
        },
        "models": {
            "gemini": {
                "sdk": "gemini",
                "model": "gemini-2.5-flash",
                "api_key_env": "TEST_GEMINI_KEY",
                "timeout_sec": 120,
                "max_tokens": 8192,
            }
        },
        "sector_strategies": {"Statistics": "Numbers about {topic}"},
        "prompts": {key: f"{key} prompt" for key in _PROMPT_KEYS},
    }
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(settings), encoding="utf-8")
    return path


def test_load_config_returns_app_config(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config, AppConfig)


def test_load_config_defaults(minimal_settings):
    config = load_config(minimal_settings)
    assert config.defaults.provider == "gemini"
    assert config.defaults.language == "ko"
    assert config.defaults.autoplay is False
    assert isinstance(config.defaults.output_dir, Path)


def test_load_config_models(minimal_settings):
    config = load_config(minimal_settings)
    assert "gemini" in config.models
    assert isinstance(config.models["gemini"], ModelConfig)
    assert config.models["gemini"].sdk == "gemini"
    assert config.models["gemini"].base_url is None


def test_load_config_prompts(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.prompts, PromptsConfig)
    assert config.prompts.pro_rebuttal == "pro_rebuttal prompt"
    assert config.prompts.sector_strategies == {"Statistics": "Numbers about {topic}"}


def test_pacing_and_retry_default_when_missing(minimal_settings):
    config = load_config(minimal_settings)
    assert config.pacing == PacingConfig()
    assert config.retry == RetryConfig()
    assert config.retry.retries == 10
    assert config.retry.initial_delay_sec == 10.0
    assert config.retry.backoff_factor == 1.5


def test_pacing_values_parsed(minimal_settings):
    raw = yaml.safe_load(minimal_settings.read_text(encoding="utf-8"))
    raw["pacing"] = {"typing_delay_sec": 0, "checkpoint_sec": "5"}
    raw["retry"] = {"retries": 2}
    minimal_settings.write_text(yaml.dump(raw), encoding="utf-8")

    config = load_config(minimal_settings)
    assert config.pacing.typing_delay_sec == 0.0
    assert config.pacing.checkpoint_sec == 5.0
    assert config.pacing.reading_delay_sec == 1.0
    assert config.retry.retries == 2


def test_load_config_available_providers_with_key(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_GEMINI_KEY", "test-key")
    config = load_config(minimal_settings)
    assert "gemini" in config.available_providers


def test_load_config_no_available_providers_without_key(minimal_settings, monkeypatch):
    monkeypatch.delenv("TEST_GEMINI_KEY", raising=False)
    config = load_config(minimal_settings)
    assert "gemini" not in config.available_providers


def test_blank_key_is_not_available(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_GEMINI_KEY", "   ")
    config = load_config(minimal_settings)
    assert config.available_providers == set()


def test_load_config_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config(Path("/nonexistent/settings.yaml"))


def test_missing_prompt_raises(minimal_settings):
    raw = yaml.safe_load(minimal_settings.read_text(encoding="utf-8"))
    del raw["prompts"]["analyst"]
    minimal_settings.write_text(yaml.dump(raw), encoding="utf-8")
    with pytest.raises(KeyError):
        load_config(minimal_settings)


# --- shipped settings.yaml ---


def test_shipped_settings_load():
    config = load_config()
    assert config.defaults.provider in config.models
    assert {m.sdk for m in config.models.values()} <= {"gemini", "openai"}


@pytest.mark.parametrize("key", _PROMPT_KEYS)
def test_shipped_prompts_format_cleanly(key):
    template = getattr(load_config().prompts, key)
    rendered = template.format(**_FORMAT_KWARGS)
    assert rendered.strip()


def test_shipped_sector_strategies_cover_every_sector():
    strategies = load_config().prompts.sector_strategies
    assert set(strategies) == {
        "Statistics", "PublicOpinion", "DomesticCases", "InternationalCases", "Theories", "Stakeholders",
    }
    for template in strategies.values():
        assert template.format(**_FORMAT_KWARGS)
