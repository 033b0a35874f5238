"""Configuration management for Centered."""

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Use tomllib on Python 3.11+, fall back to tomli for 3.10
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

logger = logging.getLogger(__name__)

REASONING_ENDPOINT = "reasoning"
CHAT_ENDPOINT = "chat"
VALID_ENDPOINTS = (REASONING_ENDPOINT, CHAT_ENDPOINT)


@dataclass
class LLMConfig:
    """Language-model configuration for analyses.

    ``endpoint`` selects the request shape:
    - "reasoning" → OpenAI Responses API (``/v1/responses``), e.g. "gpt-5"
    - "chat"      → Chat Completions (``/v1/chat/completions``); routed through
                    litellm, or the openai SDK when ``api_base`` is set
    """

    model: str
    endpoint: str = REASONING_ENDPOINT
    api_base: str | None = None  # For local providers or custom endpoints
    api_key: str | None = None  # Explicit API key (SDKs also read env vars)


@dataclass
class AnalyzerConfig:
    """Thresholds and budgets for weekly/monthly analyses."""

    weekly_min_days: int = 2            # Distinct logged days needed for weekly
    monthly_min_days: int = 9           # Distinct logged days needed for monthly
    content_char_budget: int = 1000     # Max chars of journal content in a prompt
    monthly_entry_limit: int = 8        # Entries sampled for monthly prompts
    weekly_timeout: float = 30.0        # Seconds
    monthly_timeout: float = 60.0       # Seconds
    max_output_tokens: int = 2000       # Reasoning endpoint
    max_completion_tokens: int = 300    # Chat endpoint
    reasoning_effort: str = "low"


@dataclass
class Config:
    """Centered configuration."""

    llm: LLMConfig
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    debug_logging: bool = field(default=False)  # Enable debug logging to file (opt-in)


# Default configuration
DEFAULT_CONFIG = Config(
    llm=LLMConfig(
        model="gpt-5",
    ),
    analyzer=AnalyzerConfig(),
    debug_logging=False,
)

# Config file path
CONFIG_DIR = Path.home() / ".centered"
CONFIG_FILE = CONFIG_DIR / "config.toml"


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _load_analyzer_config(analyzer_data: dict[str, Any]) -> AnalyzerConfig:
    """Build AnalyzerConfig from a TOML table, keeping defaults for missing keys."""
    defaults = AnalyzerConfig()
    return AnalyzerConfig(
        weekly_min_days=analyzer_data.get("weekly_min_days", defaults.weekly_min_days),
        monthly_min_days=analyzer_data.get("monthly_min_days", defaults.monthly_min_days),
        content_char_budget=analyzer_data.get("content_char_budget", defaults.content_char_budget),
        monthly_entry_limit=analyzer_data.get("monthly_entry_limit", defaults.monthly_entry_limit),
        weekly_timeout=analyzer_data.get("weekly_timeout", defaults.weekly_timeout),
        monthly_timeout=analyzer_data.get("monthly_timeout", defaults.monthly_timeout),
        max_output_tokens=analyzer_data.get("max_output_tokens", defaults.max_output_tokens),
        max_completion_tokens=analyzer_data.get("max_completion_tokens", defaults.max_completion_tokens),
        reasoning_effort=analyzer_data.get("reasoning_effort", defaults.reasoning_effort),
    )


def _checked_endpoint(value: str, fallback: str) -> str:
    if value in VALID_ENDPOINTS:
        return value
    logger.warning(f"Ignoring unknown LLM endpoint {value!r}, using {fallback!r}")
    return fallback


def load_config() -> Config:
    """Load configuration from environment, file, or defaults.

    Priority (highest to lowest):
    1. Environment variables (CENTERED_*)
    2. Config file (~/.centered/config.toml)
    3. Hardcoded defaults

    API keys are read from the providers' standard env vars
    (OPENAI_API_KEY, ANTHROPIC_API_KEY, etc.) by the SDKs.
    """
    # Start with defaults
    llm_model = DEFAULT_CONFIG.llm.model
    endpoint = DEFAULT_CONFIG.llm.endpoint
    api_base = DEFAULT_CONFIG.llm.api_base
    debug_logging = DEFAULT_CONFIG.debug_logging
    analyzer_config = AnalyzerConfig()

    data = None
    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE, "rb") as f:
                data = tomllib.load(f)
        except (tomllib.TOMLDecodeError, OSError) as e:
            logger.warning(f"Failed to read config file {CONFIG_FILE}: {e}")

    if data is not None:
        llm_data = data.get("llm", {})
        llm_model = llm_data.get("model", llm_model)
        endpoint = _checked_endpoint(llm_data.get("endpoint", endpoint), endpoint)
        api_base = llm_data.get("api_base", api_base)
        debug_logging = data.get("debug_logging", debug_logging)

        analyzer_data = data.get("analyzer", {})
        if analyzer_data:
            analyzer_config = _load_analyzer_config(analyzer_data)

    # Environment variables override everything
    api_base = os.getenv("CENTERED_LLM_API_BASE", api_base)
    llm_model = os.getenv("CENTERED_LLM_MODEL", llm_model)
    endpoint_env = os.getenv("CENTERED_LLM_ENDPOINT")
    if endpoint_env is not None:
        endpoint = _checked_endpoint(endpoint_env, endpoint)
    debug_logging_env = os.getenv("CENTERED_DEBUG_LOGGING")
    if debug_logging_env is not None:
        debug_logging = _parse_bool(debug_logging_env)

    return Config(
        llm=LLMConfig(
            model=llm_model,
            endpoint=endpoint,
            api_base=api_base,
        ),
        analyzer=analyzer_config,
        debug_logging=debug_logging,
    )


def save_config(config: Config) -> None:
    """Save configuration to file.

    Note: API keys are never saved to the config file.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "llm": {
            "model": config.llm.model,
            "endpoint": config.llm.endpoint,
        },
        "debug_logging": config.debug_logging,
    }

    # Save api_base when set (for local/custom endpoints)
    if config.llm.api_base:
        data["llm"]["api_base"] = config.llm.api_base

    # Save analyzer config only if non-default
    default_analyzer = AnalyzerConfig()
    if config.analyzer != default_analyzer:
        data["analyzer"] = {
            "weekly_min_days": config.analyzer.weekly_min_days,
            "monthly_min_days": config.analyzer.monthly_min_days,
            "content_char_budget": config.analyzer.content_char_budget,
            "monthly_entry_limit": config.analyzer.monthly_entry_limit,
            "weekly_timeout": config.analyzer.weekly_timeout,
            "monthly_timeout": config.analyzer.monthly_timeout,
            "max_output_tokens": config.analyzer.max_output_tokens,
            "max_completion_tokens": config.analyzer.max_completion_tokens,
            "reasoning_effort": config.analyzer.reasoning_effort,
        }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)


def get_example_configs() -> dict[str, dict[str, Any]]:
    """Get example configurations for common LLM providers."""
    return {
        "openai": {
            "model": "gpt-5",
            "endpoint": REASONING_ENDPOINT,
            "description": "OpenAI Responses API (requires OPENAI_API_KEY env var)",
        },
        "openai-chat": {
            "model": "openai/gpt-5-mini",
            "endpoint": CHAT_ENDPOINT,
            "description": "OpenAI Chat Completions via litellm (requires OPENAI_API_KEY env var)",
        },
        "anthropic": {
            "model": "anthropic/claude-3-5-haiku-20241022",
            "endpoint": CHAT_ENDPOINT,
            "description": "Anthropic API via litellm (requires ANTHROPIC_API_KEY env var)",
        },
        "ollama": {
            "model": "ollama/qwen2.5:7b",
            "endpoint": CHAT_ENDPOINT,
            "description": "Ollama (native litellm support, no api_base needed)",
        },
        "lm-studio": {
            "api_base": "http://localhost:1234/v1",
            "model": "gpt-oss-20b",
            "endpoint": CHAT_ENDPOINT,
            "description": "LM Studio",
        },
    }
