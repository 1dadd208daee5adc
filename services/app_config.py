from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from typing import Any

from loguru import logger

# --------------------------------------------------------------------------------------
# Config location
# --------------------------------------------------------------------------------------

# If you set APP_CONFIG_PATH, it overrides the default location (useful for production/testing).
ENV_CONFIG_VAR = "APP_CONFIG_PATH"
DEFAULT_CONFIG_FILE = os.path.join("config", "app_config.json")


def get_config_path() -> str:
    """
    Canonical config path resolver.

    Priority:
      1) APP_CONFIG_PATH env override (absolute or relative)
      2) config/app_config.json
    """
    return os.environ.get(ENV_CONFIG_VAR) or DEFAULT_CONFIG_FILE


# ------------------------------------------------------------------ Worker Names (authoritative)

WORKER_DEMO_ROBOT = "demo_robot"
WORKER_LOG_REPLAY = "log_replay"

DEFAULT_COMMANDS_KEY = "commands"


# ------------------------------------------------------------------ Config models

@dataclass
class CommandsConfig:
    # a published key is used when it starts with one of these prefixes
    source_keys: list[str] = field(default_factory=lambda: [DEFAULT_COMMANDS_KEY])
    debounce_ms: int = 100
    refresh_ms: int = 50
    history_size: int = 200


@dataclass
class UiConfig:
    title: str = "Command Tree Monitor"
    dark_mode: bool = False


@dataclass
class DemoRobotEntry:
    key: str = DEFAULT_COMMANDS_KEY
    publish_interval_ms: int = 50
    autostart: bool = True


@dataclass
class LogReplayEntry:
    path: str = ""
    loop: bool = True
    speed: float = 1.0
    autoplay: bool = True


@dataclass
class WorkersConfig:
    # These names must match WORKER_* constants
    enabled_workers: list[str] = field(default_factory=lambda: [WORKER_DEMO_ROBOT])
    configs: dict[str, Any] = field(default_factory=dict)


@dataclass
class AppConfig:
    ui: UiConfig = field(default_factory=UiConfig)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    workers: WorkersConfig = field(default_factory=WorkersConfig)


_APP_CONFIG: AppConfig | None = None


def clear_app_config_cache() -> None:
    global _APP_CONFIG
    _APP_CONFIG = None


def get_app_config() -> AppConfig:
    global _APP_CONFIG
    if _APP_CONFIG is None:
        _APP_CONFIG = load_app_config()
    return _APP_CONFIG


def load_app_config(path: str | None = None) -> AppConfig:
    config_path = path or get_config_path()
    log = logger.bind(component="AppConfig", path=config_path)

    if not os.path.exists(config_path):
        log.warning("Config not found. Writing defaults.")
        cfg = AppConfig()
        save_app_config(cfg, config_path)
        return cfg

    with open(config_path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        log.warning(f"Config root is {type(raw).__name__}, expected object. Using defaults.")
        return AppConfig()
    return _from_dict(raw)


def save_app_config(cfg: AppConfig, path: str | None = None) -> None:
    global _APP_CONFIG
    config_path = path or get_config_path()
    parent = os.path.dirname(config_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(_to_dict(cfg), f, indent=2, sort_keys=True)

    # Keep cache in sync
    _APP_CONFIG = cfg


def _to_dict(cfg: AppConfig) -> dict[str, Any]:
    return asdict(cfg)


# ------------------------------------------------------------------ Parsing

def _from_dict(data: dict[str, Any]) -> AppConfig:
    ui_raw = _section(data, "ui")
    ui_cfg = UiConfig(
        title=str(ui_raw.get("title", UiConfig().title)),
        dark_mode=bool(ui_raw.get("dark_mode", False)),
    )

    cmd_raw = _section(data, "commands")
    defaults = CommandsConfig()
    source_keys = cmd_raw.get("source_keys", defaults.source_keys)
    if not isinstance(source_keys, list):
        source_keys = defaults.source_keys
    commands_cfg = CommandsConfig(
        source_keys=[str(k) for k in source_keys if str(k)],
        debounce_ms=_int(cmd_raw.get("debounce_ms"), defaults.debounce_ms),
        refresh_ms=_int(cmd_raw.get("refresh_ms"), defaults.refresh_ms),
        history_size=_int(cmd_raw.get("history_size"), defaults.history_size),
    )

    workers_raw = _section(data, "workers")
    configs = workers_raw.get("configs")
    if not isinstance(configs, dict):
        configs = {k: v for k, v in workers_raw.items() if k != "enabled_workers"}

    enabled = workers_raw.get("enabled_workers", WorkersConfig().enabled_workers)
    if not isinstance(enabled, list):
        enabled = WorkersConfig().enabled_workers

    workers_cfg = WorkersConfig(enabled_workers=[str(w) for w in enabled], configs=configs)

    return AppConfig(ui=ui_cfg, commands=commands_cfg, workers=workers_cfg)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    return value if isinstance(value, dict) else {}


def _int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    return default


# ------------------------------------------------------------------ Helpers

def get_worker_config(cfg: AppConfig, worker_name: str) -> dict[str, Any]:
    config = cfg.workers.configs.get(worker_name)
    return config if isinstance(config, dict) else {}


def get_demo_robot_entry(cfg: AppConfig) -> DemoRobotEntry:
    raw = get_worker_config(cfg, WORKER_DEMO_ROBOT)
    known = {k: v for k, v in raw.items() if k in DemoRobotEntry.__dataclass_fields__}
    return DemoRobotEntry(**known)


def get_log_replay_entry(cfg: AppConfig) -> LogReplayEntry:
    raw = get_worker_config(cfg, WORKER_LOG_REPLAY)
    known = {k: v for k, v in raw.items() if k in LogReplayEntry.__dataclass_fields__}
    return LogReplayEntry(**known)
