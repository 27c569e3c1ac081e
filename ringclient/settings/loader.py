"""Helpers for loading client configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

try:  # pragma: no cover - Python 3.11+ includes tomllib
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older versions
    import tomli as tomllib  # type: ignore[no-redef]

CONFIG_ENV_VAR = "RINGCLIENT_CONFIG"
DEFAULT_USER_AGENT = "ringclient/0.1"


@dataclass(slots=True)
class ClientSettings:
    """Defaults applied to every request built by an ``HttpClient``."""

    socket_timeout: float | None = None
    conn_timeout: float | None = None
    max_redirects: int = 20
    max_retries: int = 3
    user_agent: str | None = DEFAULT_USER_AGENT
    decompress_body: bool = True
    insecure: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientSettings":
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown [http] settings: {', '.join(unknown)}")
        return cls(
            socket_timeout=_optional_float(data.get("socket_timeout")),
            conn_timeout=_optional_float(data.get("conn_timeout")),
            max_redirects=int(data.get("max_redirects", 20)),
            max_retries=int(data.get("max_retries", 3)),
            user_agent=data.get("user_agent", DEFAULT_USER_AGENT) or None,
            decompress_body=bool(data.get("decompress_body", True)),
            insecure=bool(data.get("insecure", False)),
        )


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _config_path(explicit: str | os.PathLike[str] | None = None) -> Path | None:
    if explicit:
        return Path(explicit)
    env_value = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_value) if env_value else None


def _load_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("rb") as fp:
        return tomllib.load(fp)


def load_settings(config_path: str | os.PathLike[str] | None = None) -> ClientSettings:
    """Load settings from the ``[http]`` table of a TOML file.

    Without an explicit path the ``RINGCLIENT_CONFIG`` environment variable is
    consulted; when neither is set the defaults are returned.
    """

    path = _config_path(config_path)
    if path is None:
        return ClientSettings()
    data = _load_toml(path)
    return ClientSettings.from_dict(data.get("http", {}))
