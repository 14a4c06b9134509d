# config.py
# Typed, validated settings read from the environment.

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from application.errors import ConfigError

# At 64 symbols per character, 8-character ids leave the 32-try retry bound
# unreachable in practice.
DEFAULT_PARAMS: dict = {
    "bind":           "0.0.0.0:8000",
    "ttl":            "5m",
    "id_length":      8,
    "sweep_interval": None,   # None -> same as ttl
    "max_retries":    32,
    "max_size":       1024 * 1024,
}

ENV_VARS: dict[str, str] = {
    "bind":           "PASTEBIN_BIND",
    "ttl":            "PASTEBIN_EXPIRY",
    "id_length":      "PASTEBIN_ID_LENGTH",
    "sweep_interval": "PASTEBIN_SWEEP_INTERVAL",
    "max_retries":    "PASTEBIN_MAX_RETRIES",
    "max_size":       "PASTEBIN_MAX_SIZE",
}

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smhd]?)\s*$", re.IGNORECASE)
_DURATION_UNITS: dict[str, int] = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


@dataclass(frozen=True)
class AppConfig:
    bind: str
    ttl: float
    id_length: int
    sweep_interval: float
    max_retries: int
    max_size: int
    debug: bool = False

    @property
    def host(self) -> str:
        return self.bind.rsplit(":", 1)[0] or "0.0.0.0"

    @property
    def port(self) -> int:
        return int(self.bind.rsplit(":", 1)[1])


def parse_duration(value) -> float:
    """Parse '90', '90s', '5m', '1h', '2d' (or a number) into seconds."""
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ConfigError(
            f"Invalid duration: '{value}'.\n"
            f"    → Use seconds or a suffixed value such as 30s, 5m, 1h, 1d."
        )
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit.lower()]


def _parse_int(value, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Parameter '{name}' must be an integer. Got: '{value}'.")


def _parse_bool(value) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def validate_config(cfg: AppConfig) -> AppConfig:
    """Raise ConfigError if *cfg* would break the store's invariants."""
    if cfg.ttl <= 0:
        raise ConfigError(f"Expiry must be positive. Got: {cfg.ttl}s.")
    if cfg.sweep_interval <= 0:
        raise ConfigError(f"Sweep interval must be positive. Got: {cfg.sweep_interval}s.")
    if not (1 <= cfg.id_length <= 64):
        raise ConfigError(
            f"Parameter 'id_length' must be between 1 and 64. Got: {cfg.id_length}."
        )
    if cfg.max_retries < 1:
        raise ConfigError(f"Parameter 'max_retries' must be at least 1. Got: {cfg.max_retries}.")
    if cfg.max_size < 1:
        raise ConfigError(f"Parameter 'max_size' must be at least 1. Got: {cfg.max_size}.")
    host, sep, port = cfg.bind.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(
            f"Invalid bind address: '{cfg.bind}'.\n"
            f"    → Use host:port, for example 0.0.0.0:8000."
        )
    return cfg


def load_config(environ: Optional[Mapping[str, str]] = None, **overrides) -> AppConfig:
    """Build an AppConfig from *environ* (default os.environ).

    Keyword *overrides* win over the environment; None values are ignored
    so argparse namespaces can be passed straight through.
    """
    if environ is None:
        environ = os.environ

    raw: dict = dict(DEFAULT_PARAMS)
    for key, env_var in ENV_VARS.items():
        if env_var in environ and environ[env_var] != "":
            raw[key] = environ[env_var]
    raw.update({k: v for k, v in overrides.items() if v is not None and k in raw})

    ttl = parse_duration(raw["ttl"])
    sweep = raw["sweep_interval"]
    # Derived sweep interval is clamped so a tiny TTL cannot spin the sweeper.
    sweep_interval = parse_duration(sweep) if sweep is not None else max(ttl, 1.0)

    debug = overrides.get("debug")
    if debug is None:
        debug = _parse_bool(environ.get("FLASK_DEBUG", "false"))

    cfg = AppConfig(
        bind=str(raw["bind"]),
        ttl=ttl,
        id_length=_parse_int(raw["id_length"], "id_length"),
        sweep_interval=sweep_interval,
        max_retries=_parse_int(raw["max_retries"], "max_retries"),
        max_size=_parse_int(raw["max_size"], "max_size"),
        debug=bool(debug),
    )
    return validate_config(cfg)

