"""Global app configuration (LLM and critic connections, engine tuning).

Stored values in {data_dir}/config.json are merged over the defaults below;
environment variables (typically from .env) override both.
"""

import json
import os
from pathlib import Path
from typing import Any

_data_dir: Path | None = None

_CONFIG_DEFAULTS: dict[str, Any] = {
    "llm_connection": {
        "provider_url": "http://localhost:5001",
        "api_key": "",
        "provider_format": "koboldcpp",
        "model": "",
        "timeout": 120.0,
    },
    "critic_connection": {
        "provider_url": "",
        "api_key": "",
        "model": "",
        "timeout": 60.0,
    },
    "engine": {
        "observation_count": 1,
        "thinking_attempts": 3,
        "retry_delay": 1.0,
        "check_mode": "probability",
        "plausibility_threshold": 0.0,
        "rank_actions": False,
        "transcript_width": 91,
    },
    "world_file": "",
}

_ENV_OVERRIDES = {
    "LLM_URL": ("llm_connection", "provider_url"),
    "LLM_API_KEY": ("llm_connection", "api_key"),
    "LLM_FORMAT": ("llm_connection", "provider_format"),
    "LLM_MODEL": ("llm_connection", "model"),
    "CRITIC_URL": ("critic_connection", "provider_url"),
}

_SECTIONS = ("llm_connection", "critic_connection", "engine")


def init_config(data_dir: Path) -> None:
    global _data_dir
    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_config() before using config"
    return _data_dir


def _config_path() -> Path:
    return data_dir() / "config.json"


def _defaults() -> dict[str, Any]:
    return json.loads(json.dumps(_CONFIG_DEFAULTS))


def _merge(config: dict[str, Any], fields: dict[str, Any]) -> None:
    for section in _SECTIONS:
        vals = fields.get(section)
        if isinstance(vals, dict):
            config[section].update({k: v for k, v in vals.items() if k in config[section]})
    if "world_file" in fields:
        config["world_file"] = fields["world_file"]


def _stored() -> dict[str, Any]:
    config = _defaults()
    path = _config_path()
    if path.is_file():
        _merge(config, json.loads(path.read_text()))
    return config


def get_config() -> dict[str, Any]:
    """Read config: defaults, then stored values, then environment overrides."""
    config = _stored()
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value:
            config[section][key] = value
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into the stored config and persist. Returns the effective config."""
    config = _stored()
    _merge(config, fields)
    _config_path().write_text(json.dumps(config, indent=2))
    return get_config()
