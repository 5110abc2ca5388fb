"""Game configuration (LLM connection, language, display toggles).

Resolution order, later wins:

    1. GameConfig defaults
    2. {data_dir}/config.json           ← written by save_config()
    3. {data_dir}/llm_api_config.json   ← optional hand-edited {"llm": {...}}
    4. CAMPUS_SIM_* environment variables (a .env file is loaded by the app)
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from campus_sim.models import GameConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"
LLM_FILE = "llm_api_config.json"

_ENV_KEYS = {
    "CAMPUS_SIM_PROVIDER": "provider",
    "CAMPUS_SIM_API_KEY": "api_key",
    "CAMPUS_SIM_BASE_URL": "base_url",
    "CAMPUS_SIM_MODEL": "model",
}

# llm_api_config.json is shared with the web client, which writes camelCase.
_CAMEL_KEYS = {
    "apiKey": "api_key",
    "baseUrl": "base_url",
    "maxTokens": "max_tokens",
}


def _read_json(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: not a JSON object", path)
        return {}
    return data


def _snake_llm(values: dict[str, Any]) -> dict[str, Any]:
    return {_CAMEL_KEYS.get(k, k): v for k, v in values.items()}


def merge_config(base: GameConfig, fields: dict[str, Any]) -> GameConfig:
    """Shallow-merge fields over base; the nested llm block is merged key by key.

    Raises pydantic.ValidationError when the result is invalid.
    """
    merged = base.model_dump()
    for key, value in fields.items():
        if key == "llm" and isinstance(value, dict):
            merged["llm"].update(_snake_llm(value))
        elif key in merged:
            merged[key] = value
        else:
            logger.debug("Ignoring unknown config key %r", key)
    return GameConfig.model_validate(merged)


def load_config(data_dir: Path) -> GameConfig:
    """Read config, returning defaults merged with stored values and env overrides."""
    config = GameConfig()
    for name in (CONFIG_FILE, LLM_FILE):
        stored = _read_json(data_dir / name)
        if not stored:
            continue
        try:
            config = merge_config(config, stored)
        except ValidationError as e:
            logger.warning("Ignoring invalid settings in %s: %s", name, e.errors()[0]["msg"])

    env = {field: os.environ[var] for var, field in _ENV_KEYS.items() if os.environ.get(var)}
    if env:
        try:
            config = merge_config(config, {"llm": env})
        except ValidationError as e:
            logger.warning("Ignoring invalid CAMPUS_SIM_* environment: %s", e.errors()[0]["msg"])
    return config


def save_config(data_dir: Path, config: GameConfig) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / CONFIG_FILE).write_text(json.dumps(config.model_dump(), indent=2))
