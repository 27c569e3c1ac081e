"""Settings package exports."""

from .loader import CONFIG_ENV_VAR, DEFAULT_USER_AGENT, ClientSettings, load_settings

__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_USER_AGENT",
    "ClientSettings",
    "load_settings",
]
