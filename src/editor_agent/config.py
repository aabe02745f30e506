from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    llm_api_key: str = ""
    promptlayer_api_key: str = ""
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_model: str = "anthropic/claude-3.5-sonnet"

    # Agent loop
    agent_max_rounds: int = 4
    agent_history_window: int = 6
    agent_interactive: bool = False

    # Commands
    completion_context_lines: int = 10
    refactor_context_lines: int = 20

    # Local environment
    max_reference_results: int = 200
    max_file_size_kb: int = 100
    exclude_patterns: list[str] = [
        "__pycache__", ".git", ".venv", "venv", "node_modules", ".tox", "*.egg-info",
    ]


settings = Settings()


@dataclass
class ModelConfig:
    model: str = ""
    temperature: float | None = None
    max_tokens: int | None = None
    base_url: str = ""


MODEL_KEYS = tuple(f.name for f in fields(ModelConfig))

_models_config_cache: dict | None = None


def _load_models_yaml() -> dict:
    global _models_config_cache
    if _models_config_cache is not None:
        return _models_config_cache

    path = Path(os.environ.get("MODELS_CONFIG_PATH", "models.yaml"))
    if not path.is_file():
        _models_config_cache = {}
        return _models_config_cache

    import yaml

    with open(path) as f:
        _models_config_cache = yaml.safe_load(f) or {}
    logger.debug("Loaded model roles from %s", path)
    return _models_config_cache


def _section(data: dict, role: str) -> dict:
    section = data.get(role) if role == "default" else data.get("roles", {}).get(role)
    if not section:
        return {}
    unknown = sorted(set(section) - set(MODEL_KEYS))
    if unknown:
        logger.warning("Ignoring unknown keys for model role %r: %s", role, ", ".join(unknown))
    return {key: value for key, value in section.items() if key in MODEL_KEYS}


def get_model_config(role: str = "") -> ModelConfig:
    """Model config for a role (``agent``, ``completion``...).

    models.yaml layers ``roles.<role>`` over its ``default`` section, which in
    turn sits on the model and base URL from Settings.
    """
    config = ModelConfig(model=settings.llm_model, base_url=settings.llm_base_url)
    data = _load_models_yaml()
    if not data:
        return config

    merged = {**_section(data, "default")}
    if role:
        merged.update(_section(data, role))
    return replace(config, **merged)
