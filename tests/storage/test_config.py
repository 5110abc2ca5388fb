"""Tests for config loading: defaults, stored files, env overrides."""

import json

import pytest

from campus_sim.config import load_config, merge_config, save_config
from campus_sim.models import GameConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("CAMPUS_SIM_PROVIDER", "CAMPUS_SIM_API_KEY", "CAMPUS_SIM_BASE_URL", "CAMPUS_SIM_MODEL"):
        monkeypatch.delenv(var, raising=False)


def test_defaults_when_no_files(save_dir):
    config = load_config(save_dir)
    assert config.llm.provider == "openai"
    assert config.llm.base_url == "https://api.openai.com/v1"
    assert config.llm.model == "gpt-3.5-turbo"
    assert config.llm.max_tokens == 1000
    assert config.llm.temperature == 0.8
    assert config.auto_save is True
    assert config.language == "zh"


def test_save_and_reload(save_dir):
    config = merge_config(GameConfig(), {"language": "en", "llm": {"model": "gpt-4o"}})
    save_config(save_dir, config)
    reloaded = load_config(save_dir)
    assert reloaded.language == "en"
    assert reloaded.llm.model == "gpt-4o"


def test_llm_file_accepts_camel_case(save_dir):
    save_dir.mkdir(parents=True)
    (save_dir / "llm_api_config.json").write_text(
        json.dumps({"llm": {"apiKey": "sk-file", "baseUrl": "https://proxy/v1", "maxTokens": 64}})
    )
    config = load_config(save_dir)
    assert config.llm.api_key == "sk-file"
    assert config.llm.base_url == "https://proxy/v1"
    assert config.llm.max_tokens == 64


def test_env_overrides_files(save_dir, monkeypatch):
    save_config(save_dir, merge_config(GameConfig(), {"llm": {"api_key": "stored"}}))
    monkeypatch.setenv("CAMPUS_SIM_API_KEY", "from-env")
    monkeypatch.setenv("CAMPUS_SIM_PROVIDER", "gemini")
    config = load_config(save_dir)
    assert config.llm.api_key == "from-env"
    assert config.llm.provider == "gemini"


def test_invalid_file_ignored(save_dir):
    save_dir.mkdir(parents=True)
    (save_dir / "config.json").write_text("{not json")
    assert load_config(save_dir) == GameConfig()


def test_invalid_values_ignored(save_dir):
    save_dir.mkdir(parents=True)
    (save_dir / "config.json").write_text(json.dumps({"language": "klingon"}))
    assert load_config(save_dir).language == "zh"


def test_merge_keeps_unrelated_llm_keys():
    base = GameConfig()
    merged = merge_config(base, {"llm": {"api_key": "k"}, "unknown": 1})
    assert merged.llm.api_key == "k"
    assert merged.llm.model == base.llm.model
