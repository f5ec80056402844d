"""
Safeguards SDK — Data Models
"""

from __future__ import annotations

from pydantic import BaseModel


class CheckResult(BaseModel):
    """Result of a POST /check call."""
    allowed: bool
    reason: str | None = None       # matched term when denied
    source: str | None = None       # title | summary | upgrade | params
    message: str = ""
    raw: dict                       # full response body


class TxResult(BaseModel):
    """Result of a POST /tx call."""
    accepted: bool
    error: str | None = None
    code: int | None = None
    codespace: str | None = None
    raw: dict


class PolicyResult(BaseModel):
    """Result of GET/PUT /policy."""
    success: bool
    enabled: bool | None = None
    restricted_keywords: list[str] = []
    restricted_modules: list[str] = []
    raw: dict
