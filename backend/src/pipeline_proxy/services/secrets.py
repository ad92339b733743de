"""Auth token lookup in AWS Secrets Manager.

Lets the database token live in Secrets Manager instead of a plain
Lambda environment variable. Secrets are cached for the lifetime of
the execution environment so warm invocations make no AWS calls.
"""

from __future__ import annotations

import base64
import json
from typing import Any

import boto3

_SECRET_CACHE: dict[str, dict[str, Any]] = {}
_CLIENT: Any = None


def get_secretsmanager_client() -> Any:
    """Return the cached Secrets Manager client."""
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = boto3.client("secretsmanager")  # type: ignore[call-overload]
    return _CLIENT


def get_secret_json(secret_arn: str) -> dict[str, Any]:
    """Fetch a secret from AWS Secrets Manager and parse JSON."""
    if secret_arn in _SECRET_CACHE:
        return _SECRET_CACHE[secret_arn]

    client = get_secretsmanager_client()
    response = client.get_secret_value(SecretId=secret_arn)
    secret_str = response.get("SecretString")
    if not secret_str and response.get("SecretBinary"):
        secret_str = base64.b64decode(response["SecretBinary"]).decode("utf-8")
    if not secret_str:
        raise RuntimeError("Secret value is empty")

    secret_payload = json.loads(secret_str)
    if not isinstance(secret_payload, dict):
        raise RuntimeError("Secret value is not a JSON object")
    _SECRET_CACHE[secret_arn] = secret_payload
    return secret_payload


def get_auth_token(secret_arn: str, key: str = "token") -> str | None:
    """Return the auth token stored under ``key`` in the secret.

    Returns None when the key is absent or empty.
    """
    value = get_secret_json(secret_arn).get(key)
    if value is None:
        return None
    return str(value).strip() or None


def clear_secret_cache() -> None:
    """Clear cached secrets and client (useful in tests)."""
    global _CLIENT
    _SECRET_CACHE.clear()
    _CLIENT = None
