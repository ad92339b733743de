"""Pydantic schemas for proxy error responses."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ConfigStatusSchema(BaseModel):
    """Which required settings were found."""

    has_host: bool
    has_token: bool


class ErrorSchema(BaseModel):
    """JSON body returned for every proxy-generated error.

    Only ``error`` is always present; the other fields are dropped from
    the payload when unset.
    """

    error: str
    message: Optional[str] = None
    detail: Optional[str] = None
    hint: Optional[str] = None
    details: Optional[ConfigStatusSchema] = None
    stack: Optional[str] = None
