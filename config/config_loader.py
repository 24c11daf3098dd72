"""Load settings.yaml into typed dataclasses. Validates API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str               # "gemini" or "openai"
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class PromptsConfig:
    framer: str
    refiner: str
    generalize: str
    researcher: str
    coordinator: str
    pro_advocate: str
    con_advocate: str
    pro_answer: str
    con_answer: str
    pro_cross_examiner: str
    con_cross_examiner: str
    pro_rebuttal: str
    con_rebuttal: str
    analyst: str
    sector_strategies: dict[str, str] = field(default_factory=dict)


@dataclass
class DefaultsConfig:
    provider: str
    language: str
    output_dir: Path
    autoplay: bool = True


@dataclass
class PacingConfig:
    typing_delay_sec: float = 1.5
    reading_delay_sec: float = 1.0
    analysis_delay_sec: float = 3.0
    checkpoint_sec: float = 2.0


@dataclass
class RetryConfig:
    retries: int = 10
    initial_delay_sec: float = 10.0
    backoff_factor: float = 1.5


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    pacing: PacingConfig = field(default_factory=PacingConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    available_providers: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs warnings for missing API keys but does not raise; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        provider=str(defaults_raw["provider"]),
        language=str(defaults_raw.get("language", "en")),
        output_dir=Path(defaults_raw["output_dir"]),
        autoplay=bool(defaults_raw.get("autoplay", True)),
    )

    pacing_raw = raw.get("pacing", {})
    pacing = PacingConfig(**{k: float(v) for k, v in pacing_raw.items()})

    retry_raw = raw.get("retry", {})
    retry = RetryConfig(
        retries=int(retry_raw.get("retries", 10)),
        initial_delay_sec=float(retry_raw.get("initial_delay_sec", 10.0)),
        backoff_factor=float(retry_raw.get("backoff_factor", 1.5)),
    )

    prompts_raw = raw["prompts"]
    strategies_raw = raw.get("sector_strategies", {})
    prompts = PromptsConfig(
        framer=prompts_raw["framer"],
        refiner=prompts_raw["refiner"],
        generalize=prompts_raw["generalize"],
        researcher=prompts_raw["researcher"],
        coordinator=prompts_raw["coordinator"],
        pro_advocate=prompts_raw["pro_advocate"],
        con_advocate=prompts_raw["con_advocate"],
        pro_answer=prompts_raw["pro_answer"],
        con_answer=prompts_raw["con_answer"],
        pro_cross_examiner=prompts_raw["pro_cross_examiner"],
        con_cross_examiner=prompts_raw["con_cross_examiner"],
        pro_rebuttal=prompts_raw["pro_rebuttal"],
        con_rebuttal=prompts_raw["con_rebuttal"],
        analyst=prompts_raw["analyst"],
        sector_strategies={k: str(v) for k, v in strategies_raw.items()},
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        pacing=pacing,
        retry=retry,
        available_providers=available_providers,
    )
