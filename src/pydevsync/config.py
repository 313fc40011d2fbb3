"""Client configuration for pydevsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pydevsync._constants import DEFAULT_BASE_URL, DEFAULT_POLL_INTERVAL, DEFAULT_TITLE_SUFFIX
from pydevsync.exceptions import DevSyncConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise DevSyncConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class DevToolsConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Developer tools server root (``http://host:port``).
    graphql_path : str
        Path of the GraphQL endpoint on the server. The same path serves
        queries over HTTP and subscriptions over WebSocket.
    poll_interval : float
        Seconds between snapshot polls of the project state.
    push_enabled : bool
        Open the message subscription. When disabled the console only
        reflects the bulk load and the snapshot polls.
    resubscribe_delay : float
        Seconds to wait before reopening the subscription after it failed
        or completed.
    request_timeout : float
        Total timeout in seconds for a single GraphQL HTTP request.
    api_trace_enabled : bool
        Log redacted GraphQL requests/responses at DEBUG level.
    title_suffix : str
        Product name used by :meth:`DevToolsClient.window_title`.
    """

    base_url: str = DEFAULT_BASE_URL
    graphql_path: str = "/graphql"
    poll_interval: float = DEFAULT_POLL_INTERVAL
    push_enabled: bool = True
    resubscribe_delay: float = 1.0
    request_timeout: float = 10.0
    api_trace_enabled: bool = False
    title_suffix: str = DEFAULT_TITLE_SUFFIX

    def __post_init__(self) -> None:
        if not self.base_url.startswith(("http://", "https://")):
            raise DevSyncConfigError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        if self.poll_interval <= 0:
            raise DevSyncConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.resubscribe_delay < 0:
            raise DevSyncConfigError(f"resubscribe_delay must not be negative, got {self.resubscribe_delay}")

    @property
    def graphql_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.graphql_path}"

    @property
    def subscription_url(self) -> str:
        """WebSocket URL for the message subscription."""
        url = self.graphql_url
        if url.startswith("https://"):
            return "wss://" + url[len("https://") :]
        return "ws://" + url[len("http://") :]

    @classmethod
    def from_env(cls, **overrides: Any) -> DevToolsConfig:
        """Create configuration from environment variables.

        Reads optional ``DEVTOOLS_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        DevToolsConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "DEVTOOLS_BASE_URL": "base_url",
            "DEVTOOLS_GRAPHQL_PATH": "graphql_path",
            "DEVTOOLS_TITLE_SUFFIX": "title_suffix",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "DEVTOOLS_POLL_INTERVAL": "poll_interval",
            "DEVTOOLS_RESUBSCRIBE_DELAY": "resubscribe_delay",
            "DEVTOOLS_REQUEST_TIMEOUT": "request_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        if "push_enabled" not in overrides:
            config_kwargs["push_enabled"] = _env_bool(env.get("DEVTOOLS_PUSH_ENABLED"), True)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("DEVTOOLS_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
