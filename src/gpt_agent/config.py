from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from gpt_agent.models.agent_schemas import ConfigurationError

SUPPORTED_MODELS = ("gpt-4", "gpt-4-32k")


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    llm_api_key: str = Field("", validation_alias=AliasChoices("llm_api_key", "openai_key"))
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4"
    request_timeout: float = 600.0

    # Workspace the tools are confined to
    workdir: str = "."

    # Safety bound on transitions per request (0 = unbounded)
    agentic_max_steps: int = 0


settings = Settings()


def require_api_key(s: Settings | None = None) -> str:
    """Return the configured API key or fail; the key is required at startup."""
    key = (s or settings).llm_api_key
    if not key:
        raise ConfigurationError("LLM_API_KEY (or OPENAI_KEY) is not set")
    return key


def check_model(model: str) -> str:
    if model not in SUPPORTED_MODELS:
        raise ConfigurationError(
            f"unsupported model '{model}', expected one of: {', '.join(SUPPORTED_MODELS)}"
        )
    return model


@dataclass
class ModelConfig:
    model: str = ""
    base_url: str = ""
    api_key: str = ""
    timeout: float | None = None


_models_config_cache: dict | None = None


def _load_models_yaml() -> dict:
    global _models_config_cache
    if _models_config_cache is not None:
        return _models_config_cache

    config_path = os.environ.get("MODELS_CONFIG_PATH", "models.yaml")
    path = Path(config_path)
    if not path.is_file():
        _models_config_cache = {}
        return _models_config_cache

    import yaml

    with open(path) as f:
        _models_config_cache = yaml.safe_load(f) or {}
    return _models_config_cache


def get_model_config(agent_name: str = "") -> ModelConfig:
    """Get model config for an agent, merging default + agent override.

    Falls back to Settings env variables if models.yaml doesn't exist.
    The API key always comes from Settings.
    """
    data = _load_models_yaml()

    if not data:
        return ModelConfig(
            model=settings.llm_model,
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            timeout=settings.request_timeout,
        )

    default = data.get("default", {})
    merged = {
        "model": default.get("model", settings.llm_model),
        "base_url": default.get("base_url", settings.llm_base_url),
        "timeout": default.get("timeout", settings.request_timeout),
    }

    if agent_name:
        agents = data.get("agents", {})
        agent_override = agents.get(agent_name, {})
        for key, value in agent_override.items():
            if key in merged:
                merged[key] = value

    return ModelConfig(
        model=merged["model"],
        base_url=merged["base_url"],
        api_key=settings.llm_api_key,
        timeout=merged["timeout"],
    )
