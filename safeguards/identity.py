"""
Operator Access

Operators who may change the live policy are listed in identities.json,
each with a SHA-256 key fingerprint and the actions the key grants:

    {"operators": {"human:operator": {"key_fingerprint": "sha256:...",
                                      "permissions": ["policy:replace"]}}}

The file is re-read on every check, so a key is rotated or revoked by
editing it; no restart is needed.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import os
import secrets
from dataclasses import dataclass
from typing import Any, Iterable

from safeguards.errors import OperatorAuthError

IDENTITIES_PATH_ENV = "SAFEGUARDS_IDENTITIES_PATH"
_DEFAULT_IDENTITIES_PATH = os.path.join(os.path.dirname(__file__), "identities.json")

POLICY_REPLACE = "policy:replace"
KEY_PREFIX = "sgk_"


@dataclass(frozen=True)
class OperatorGrant:
    """An authenticated operator and the action their key was checked for."""
    actor_id: str
    action: str


def hash_api_key(raw_key: str) -> str:
    """Return ``sha256:<hex>`` fingerprint of a raw API key."""
    digest = hashlib.sha256(raw_key.encode()).hexdigest()
    return f"sha256:{digest}"


def load_operators(path: str | None = None) -> dict[str, dict[str, Any]]:
    path = path or os.environ.get(IDENTITIES_PATH_ENV, _DEFAULT_IDENTITIES_PATH)
    with open(path, "r") as f:
        return json.load(f).get("operators", {})


def require_operator(authorization: str, action: str = POLICY_REPLACE) -> OperatorGrant:
    """Resolve an ``Authorization`` header to an operator allowed to ``action``.

    Raises OperatorAuthError with status 401 when the header is not a Bearer
    key of a listed operator, and 403 when the key is known but its
    permissions do not include ``action``.
    """
    if not authorization.startswith("Bearer "):
        raise OperatorAuthError("Missing Bearer token.")
    token_fp = hash_api_key(authorization[len("Bearer "):])

    for actor_id, entry in load_operators().items():
        fingerprint = entry.get("key_fingerprint")
        if not fingerprint or not hmac.compare_digest(token_fp, fingerprint):
            continue
        if action not in entry.get("permissions", ()):
            raise OperatorAuthError(f"{actor_id} may not {action}", status_code=403)
        return OperatorGrant(actor_id=actor_id, action=action)

    raise OperatorAuthError("Unknown operator key.")


def new_operator_entry(actor_id: str,
                       permissions: Iterable[str] = (POLICY_REPLACE,)) -> tuple[str, dict[str, Any]]:
    """Mint a raw key and the identities.json entry that admits it."""
    raw = KEY_PREFIX + secrets.token_urlsafe(32)
    entry = {actor_id: {"key_fingerprint": hash_api_key(raw), "permissions": list(permissions)}}
    return raw, entry
