from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping

from .errors import ConfigError
from .record_codec import parse_duration

DEFAULT_REGION = "us-east-1"
DEFAULT_PROFILE = "default"
DEFAULT_SESSION_TTL = timedelta(seconds=3600)
DEFAULT_SKEW_PAD = timedelta(seconds=120)
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 30.0

AWS_PROFILE = "AWS_PROFILE"
AWS_REGION = "AWS_REGION"
SESSION_TTL = "SESSION_TTL"
SKEW_PAD = "SKEW_PAD"
AWBUS_KEYRING_SERVICE = "AWBUS_KEYRING_SERVICE"
AWBUS_CONNECT_TIMEOUT = "AWBUS_CONNECT_TIMEOUT"
AWBUS_READ_TIMEOUT = "AWBUS_READ_TIMEOUT"
AWBUS_LOG_EVENTS = "AWBUS_LOG_EVENTS"


@dataclass(frozen=True)
class Settings:
    profile: str = DEFAULT_PROFILE
    region: str = DEFAULT_REGION
    session_ttl: timedelta = DEFAULT_SESSION_TTL
    skew_pad: timedelta = DEFAULT_SKEW_PAD
    keyring_service: str = "awbus"
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    log_events: bool = False


def _truthy(raw: str | None) -> bool:
    return str(raw or "").strip().lower() in {"1", "true", "yes", "on"}


def _env_str(env: Mapping[str, str], name: str, default: str) -> str:
    return (env.get(name) or "").strip() or default


def _env_duration(env: Mapping[str, str], name: str, default: timedelta) -> timedelta:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        val = parse_duration(raw)
    except ValueError as e:
        raise ConfigError(f"invalid {name}: {e}") from e
    # Zero means "unset", same as for record fields.
    return val or default


def _env_seconds(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError as e:
        raise ConfigError(f"invalid {name}: expected seconds, got {raw!r}") from e
    if val <= 0:
        raise ConfigError(f"invalid {name}: must be positive")
    return val


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env
    return Settings(
        profile=_env_str(env, AWS_PROFILE, DEFAULT_PROFILE),
        region=_env_str(env, AWS_REGION, DEFAULT_REGION),
        session_ttl=_env_duration(env, SESSION_TTL, DEFAULT_SESSION_TTL),
        skew_pad=_env_duration(env, SKEW_PAD, DEFAULT_SKEW_PAD),
        keyring_service=_env_str(env, AWBUS_KEYRING_SERVICE, "awbus"),
        connect_timeout=_env_seconds(env, AWBUS_CONNECT_TIMEOUT, DEFAULT_CONNECT_TIMEOUT),
        read_timeout=_env_seconds(env, AWBUS_READ_TIMEOUT, DEFAULT_READ_TIMEOUT),
        log_events=_truthy(env.get(AWBUS_LOG_EVENTS)),
    )
