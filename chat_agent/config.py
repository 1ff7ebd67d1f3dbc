from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from chat_agent.query_guard import DEFAULT_ROW_LIMIT, MAX_ROW_LIMIT


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class ToolsConfig:
    stage: str
    db_path: str
    default_row_limit: int
    max_row_limit: int


_ENV_KEYS = {
    "stage": "STAGE",
    "db_path": "CHAT_AGENT_DB_PATH",
    "default_row_limit": "CHAT_AGENT_DEFAULT_ROW_LIMIT",
    "max_row_limit": "CHAT_AGENT_MAX_ROW_LIMIT",
}


def _as_limit(name: str, value: Any) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if n < 0:
        raise ConfigError(f"{name} must not be negative, got {n}")
    return n


def find_config_path(explicit: str | None) -> Path | None:
    if explicit:
        p = Path(explicit).expanduser().resolve()
        if not p.exists():
            raise ConfigError(f"Config not found: {p}")
        return p

    repo_local = Path("chat-agent.yaml").resolve()
    if repo_local.exists():
        return repo_local

    xdg_home = Path(os.getenv("XDG_CONFIG_HOME") or (Path.home() / ".config")).expanduser()
    p = xdg_home / "chat-agent" / "config.yaml"
    if p.exists():
        return p.resolve()
    return None


def load_config_dict(path: Path) -> dict[str, Any]:
    try:
        obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return obj


def load_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> ToolsConfig:
    """Build the config from defaults, then the YAML file, then the environment."""
    env = os.environ if env is None else env
    values: dict[str, Any] = {
        "stage": "dev",
        "db_path": "chat_agent.sqlite3",
        "default_row_limit": DEFAULT_ROW_LIMIT,
        "max_row_limit": MAX_ROW_LIMIT,
    }
    if path is not None:
        file_values = load_config_dict(path)
        unknown = sorted(set(file_values) - set(values))
        if unknown:
            raise ConfigError(f"Unknown config keys in {path}: {', '.join(unknown)}")
        values.update(file_values)
    for key, var in _ENV_KEYS.items():
        if env.get(var):
            values[key] = env[var]

    cfg = ToolsConfig(
        stage=str(values["stage"]),
        db_path=str(values["db_path"]),
        default_row_limit=_as_limit("default_row_limit", values["default_row_limit"]),
        max_row_limit=_as_limit("max_row_limit", values["max_row_limit"]),
    )
    if cfg.default_row_limit > cfg.max_row_limit:
        raise ConfigError(
            f"default_row_limit ({cfg.default_row_limit}) exceeds max_row_limit ({cfg.max_row_limit})"
        )
    return cfg


def with_db_path(cfg: ToolsConfig, db_path: str | None) -> ToolsConfig:
    return replace(cfg, db_path=db_path) if db_path else cfg
