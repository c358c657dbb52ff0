from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

try:
    import tomllib  # py3.11+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib

DEFAULT_DIRECTORY = "data"
DEFAULT_POLL_INTERVAL_S = 1.0


def get_bool_env(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    val = val.lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def get_notifier_config(default_enabled: bool = False):
    return {
        "enabled": get_bool_env("ATLAS_NOTIFY", default_enabled),
        "pushover_token": os.getenv("PUSHOVER_TOKEN"),
        "pushover_user": os.getenv("PUSHOVER_USER"),
    }


def load_toml_config(path: str) -> dict:
    """Load TOML configuration from path."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _get_cfg(cfg: dict, section: str, key: str, default=None):
    sec = cfg.get(section, {})
    if not isinstance(sec, dict):
        return default
    return sec.get(key, default)


def _split_imeis(value) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(v).strip() for v in value if str(v).strip())


@dataclass(frozen=True)
class Settings:
    directory: str = DEFAULT_DIRECTORY
    imeis: Tuple[str, ...] = field(default_factory=tuple)
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    json_logs: bool = False
    notify_enabled: bool = False
    pushover_token: Optional[str] = None
    pushover_user: Optional[str] = None


def load_settings(path: Optional[str] = None) -> Settings:
    """Build settings from an optional TOML file, then the environment.

    Environment variables win over the file."""
    cfg = load_toml_config(path) if path else {}

    directory = os.getenv("ATLAS_DIRECTORY") or _get_cfg(cfg, "storage", "directory", DEFAULT_DIRECTORY)
    imeis = _split_imeis(os.getenv("ATLAS_IMEIS") or _get_cfg(cfg, "storage", "imeis", ()))
    poll_interval_s = float(os.getenv("ATLAS_POLL_INTERVAL") or _get_cfg(cfg, "watch", "poll_interval", DEFAULT_POLL_INTERVAL_S))
    json_logs = get_bool_env("ATLAS_JSON_LOGS", bool(_get_cfg(cfg, "logging", "json", False)))

    notifier = get_notifier_config(bool(_get_cfg(cfg, "notify", "enabled", False)))
    return Settings(
        directory=str(directory),
        imeis=imeis,
        poll_interval_s=poll_interval_s,
        json_logs=json_logs,
        notify_enabled=notifier["enabled"],
        pushover_token=notifier["pushover_token"] or _get_cfg(cfg, "notify", "pushover_token"),
        pushover_user=notifier["pushover_user"] or _get_cfg(cfg, "notify", "pushover_user"),
    )
