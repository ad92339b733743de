"""Proxy configuration resolved from the Lambda environment.

The forwarding handler never reads ``os.environ`` itself; the Lambda
adapter builds a ``ProxyConfig`` once per invocation and passes it in.
Missing host or token is not an error here: the handler reports it to
the caller as a 500 so preflight requests still succeed.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping
from typing import Optional

from pipeline_proxy.exceptions import InvalidConfigurationError
from pipeline_proxy.services.secrets import get_auth_token
from pipeline_proxy.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_HOST_VARIABLES = ("TURSO_DATABASE_HOST", "TURSO_DATABASE_URL")
TOKEN_VARIABLE = "TURSO_AUTH_TOKEN"
TOKEN_SECRET_ARN_VARIABLE = "TURSO_AUTH_TOKEN_SECRET_ARN"
TOKEN_SECRET_KEY_VARIABLE = "TURSO_AUTH_TOKEN_SECRET_KEY"
ORIGIN_VARIABLE = "PUBLIC_SITE_ORIGIN"

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "Pipeline-Proxy/1.0"
DEFAULT_BACKEND_PATH = "/v2/pipeline"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class BodyMode(str, Enum):
    """How the inbound POST body is forwarded."""

    RAW = "raw"
    JSON = "json"


@dataclass(frozen=True)
class ProxyConfig:
    """Everything the forwarding handler needs for one invocation."""

    database_host: Optional[str] = None
    auth_token: Optional[str] = None
    allowed_origin: str = "*"
    body_mode: BodyMode = BodyMode.RAW
    include_debug: bool = False
    host_variables: tuple[str, ...] = DEFAULT_HOST_VARIABLES
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    default_path: str = DEFAULT_BACKEND_PATH
    auth_token_secret_arn: Optional[str] = None

    def __repr__(self) -> str:
        # Keep the token out of tracebacks and debug logs
        return (
            f"ProxyConfig(database_host={self.database_host!r}, "
            f"auth_token={'<set>' if self.auth_token else None}, "
            f"allowed_origin={self.allowed_origin!r}, "
            f"body_mode={self.body_mode.value!r}, "
            f"include_debug={self.include_debug}, "
            f"timeout_seconds={self.timeout_seconds})"
        )

    def missing_settings(self) -> list[str]:
        """Return the names of required settings that are not set."""
        missing: list[str] = []
        if not self.database_host:
            missing.append(" or ".join(self.host_variables))
        if not self.auth_token:
            if self.auth_token_secret_arn:
                missing.append(
                    f"{TOKEN_VARIABLE} (secret {self.auth_token_secret_arn})"
                )
            else:
                missing.append(TOKEN_VARIABLE)
        return missing


def load_config(environ: Optional[Mapping[str, str]] = None) -> ProxyConfig:
    """Build a ProxyConfig from environment variables.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        The resolved configuration.

    Raises:
        InvalidConfigurationError: If an optional setting has an invalid value.
    """
    env = os.environ if environ is None else environ

    host_variables = _parse_host_variables(env.get("PROXY_HOST_VARIABLES"))
    database_host = _first_set(env, host_variables)

    auth_token = _clean(env.get(TOKEN_VARIABLE))
    secret_arn = _clean(env.get(TOKEN_SECRET_ARN_VARIABLE))
    if not auth_token and secret_arn:
        auth_token = _token_from_secret(
            secret_arn, _clean(env.get(TOKEN_SECRET_KEY_VARIABLE)) or "token"
        )

    return ProxyConfig(
        database_host=database_host,
        auth_token=auth_token,
        allowed_origin=_clean(env.get(ORIGIN_VARIABLE)) or "*",
        body_mode=_parse_body_mode(env.get("PROXY_BODY_MODE")),
        include_debug=(env.get("PROXY_DEBUG_ERRORS") or "").strip().lower()
        in _TRUE_VALUES,
        host_variables=host_variables,
        timeout_seconds=_parse_timeout(env.get("PROXY_TIMEOUT_SECONDS")),
        user_agent=_clean(env.get("PROXY_USER_AGENT")) or DEFAULT_USER_AGENT,
        auth_token_secret_arn=secret_arn,
    )


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _first_set(env: Mapping[str, str], names: tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = _clean(env.get(name))
        if value:
            return value
    return None


def _parse_host_variables(raw: Optional[str]) -> tuple[str, ...]:
    if not raw:
        return DEFAULT_HOST_VARIABLES
    names = tuple(name.strip() for name in raw.split(",") if name.strip())
    return names or DEFAULT_HOST_VARIABLES


def _parse_body_mode(raw: Optional[str]) -> BodyMode:
    if not raw or not raw.strip():
        return BodyMode.RAW
    try:
        return BodyMode(raw.strip().lower())
    except ValueError as exc:
        raise InvalidConfigurationError(
            "PROXY_BODY_MODE",
            hint="PROXY_BODY_MODE must be 'raw' or 'json'.",
        ) from exc


def _parse_timeout(raw: Optional[str]) -> float:
    if not raw or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise InvalidConfigurationError(
            "PROXY_TIMEOUT_SECONDS",
            hint="PROXY_TIMEOUT_SECONDS must be a number of seconds.",
        ) from exc
    if timeout <= 0:
        raise InvalidConfigurationError(
            "PROXY_TIMEOUT_SECONDS",
            hint="PROXY_TIMEOUT_SECONDS must be greater than zero.",
        )
    return timeout


def _token_from_secret(secret_arn: str, key: str) -> Optional[str]:
    try:
        return get_auth_token(secret_arn, key)
    except Exception as exc:
        # Reported to the caller as a missing token by the handler
        logger.warning(
            f"Could not read auth token from secret: {type(exc).__name__}: {exc}"
        )
        return None
