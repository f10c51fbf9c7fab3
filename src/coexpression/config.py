from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from coexpression.errors import ConfigError
from coexpression.models import DEFAULT_TIMEOUT_S


CONFIG_ENV_VAR = "COEXPRESSION_CONFIG_PATH"
TIMEOUT_ENV_VAR = "CDMI_TIMEOUT"


@dataclass
class ServiceConfig:
    url: Optional[str] = None
    timeout_s: Optional[float] = None


@dataclass
class AuthConfig:
    token: Optional[str] = None
    user_id: Optional[str] = None
    password: Optional[str] = None
    auth_url: Optional[str] = None


@dataclass
class ClientConfig:
    raw: Dict[str, Any]
    service: ServiceConfig
    auth: AuthConfig
    path: Optional[Path] = None


def _default_config_path() -> Path:
    return Path.home() / ".coexpression" / "config.yaml"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(
            f"CoExpression config file not found at '{path}'. "
            f"Set {CONFIG_ENV_VAR} to a valid YAML config."
        )
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config YAML at '{path}': {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config at '{path}' must be a YAML mapping/object.")
    return data


def _optional_str(section: Dict[str, Any], key: str) -> Optional[str]:
    value = section.get(key)
    if value is None:
        return None
    return str(value)


def _coerce_timeout(value: Any, source: str) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{source} must be a number of seconds, got {value!r}.") from exc
    if timeout <= 0:
        raise ConfigError(f"{source} must be positive, got {value!r}.")
    return timeout


def _coerce_service(section: Any) -> ServiceConfig:
    if not section:
        return ServiceConfig()
    if not isinstance(section, dict):
        raise ConfigError("'service' section must be a mapping/object.")
    timeout = section.get("timeout")
    return ServiceConfig(
        url=_optional_str(section, "url"),
        timeout_s=_coerce_timeout(timeout, "'service.timeout'") if timeout is not None else None,
    )


def _coerce_auth(section: Any) -> AuthConfig:
    if not section:
        return AuthConfig()
    if not isinstance(section, dict):
        raise ConfigError("'auth' section must be a mapping/object.")
    return AuthConfig(
        token=_optional_str(section, "token"),
        user_id=_optional_str(section, "user_id"),
        password=_optional_str(section, "password"),
        auth_url=_optional_str(section, "auth_url"),
    )


def load_config(path: Optional[Path] = None) -> ClientConfig:
    """
    Load the client configuration file.

    Precedence:
    1. An explicit `path` argument.
    2. The path in COEXPRESSION_CONFIG_PATH if set.
    3. `~/.coexpression/config.yaml`, which may be absent (empty config).
    """

    explicit = path
    if explicit is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            explicit = Path(env_path).expanduser()

    if explicit is None:
        default = _default_config_path()
        if not default.exists():
            return ClientConfig(raw={}, service=ServiceConfig(), auth=AuthConfig())
        explicit = default

    raw = _load_yaml(explicit)
    return ClientConfig(
        raw=raw,
        service=_coerce_service(raw.get("service")),
        auth=_coerce_auth(raw.get("auth")),
        path=explicit,
    )


def resolve_timeout(explicit: Optional[float] = None, config: Optional[ClientConfig] = None) -> float:
    """
    Pick the request timeout in seconds.

    An explicit value wins, then CDMI_TIMEOUT, then `service.timeout` from the
    config file, then the 30 minute default.
    """

    if explicit is not None:
        return _coerce_timeout(explicit, "timeout")
    env_value = os.environ.get(TIMEOUT_ENV_VAR)
    if env_value:
        return _coerce_timeout(env_value, TIMEOUT_ENV_VAR)
    if config is not None and config.service.timeout_s is not None:
        return config.service.timeout_s
    return float(DEFAULT_TIMEOUT_S)


__all__ = [
    "CONFIG_ENV_VAR",
    "TIMEOUT_ENV_VAR",
    "ServiceConfig",
    "AuthConfig",
    "ClientConfig",
    "load_config",
    "resolve_timeout",
]
