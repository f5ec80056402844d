"""
Operator Access Test Suite
Bearer key resolution against the identities.json allowlist, and key minting.

Usage:  pytest tests/test_identity.py
"""

from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import pytest

from safeguards.errors import OperatorAuthError
from safeguards.identity import (
    POLICY_REPLACE,
    OperatorGrant,
    hash_api_key,
    load_operators,
    new_operator_entry,
    require_operator,
)
from tests.conftest import ADMIN_KEY, OBSERVER_KEY, REVOKED_KEY

_SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "keygen.py"
_spec = importlib.util.spec_from_file_location("keygen", _SCRIPT)
keygen = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(keygen)


def test_hash_api_key_format():
    fp = hash_api_key("sgk_abc")
    assert fp.startswith("sha256:")
    assert len(fp) == len("sha256:") + 64


def test_bundled_allowlist_admits_default_operator_key():
    operators = load_operators(str(Path(__file__).resolve().parent.parent / "safeguards" / "identities.json"))
    assert operators["human:operator"]["key_fingerprint"] == hash_api_key(ADMIN_KEY)
    assert POLICY_REPLACE in operators["human:operator"]["permissions"]


# ---------------------------------------------------------------------------
# require_operator
# ---------------------------------------------------------------------------

def test_operator_with_permission_is_granted(identities_file):
    grant = require_operator(f"Bearer {ADMIN_KEY}")
    assert grant == OperatorGrant(actor_id="human:operator", action=POLICY_REPLACE)


@pytest.mark.parametrize("header", ["", f"Token {ADMIN_KEY}", "Bearer sgk_unknown"])
def test_missing_or_unknown_key_is_401(identities_file, header):
    with pytest.raises(OperatorAuthError) as exc_info:
        require_operator(header)
    assert exc_info.value.status_code == 401


@pytest.mark.parametrize("token", [REVOKED_KEY, OBSERVER_KEY])
def test_known_key_without_permission_is_403(identities_file, token):
    with pytest.raises(OperatorAuthError) as exc_info:
        require_operator(f"Bearer {token}")
    assert exc_info.value.status_code == 403


def test_other_actions_checked_against_permissions(identities_file):
    assert require_operator(f"Bearer {OBSERVER_KEY}", action="policy:read").actor_id == "agent:observer"


def test_allowlist_edits_apply_without_reload(identities_file):
    data = json.loads(identities_file.read_text())
    data["operators"]["human:operator"]["permissions"] = []
    identities_file.write_text(json.dumps(data))
    with pytest.raises(OperatorAuthError):
        require_operator(f"Bearer {ADMIN_KEY}")


# ---------------------------------------------------------------------------
# Key minting
# ---------------------------------------------------------------------------

def test_new_operator_entry_is_admitted(identities_file):
    raw, entry = new_operator_entry("human:alice")
    assert raw.startswith("sgk_")
    assert entry["human:alice"] == {"key_fingerprint": hash_api_key(raw), "permissions": [POLICY_REPLACE]}

    data = json.loads(identities_file.read_text())
    data["operators"].update(entry)
    identities_file.write_text(json.dumps(data))
    assert require_operator(f"Bearer {raw}").actor_id == "human:alice"


def test_keygen_prints_key_and_entry(capsys):
    assert keygen.main(["ci:policy-sync", "--permission", "policy:read"]) == 0
    first, rest = capsys.readouterr().out.split("\n", 1)
    raw = first[len("key: "):]
    entry = json.loads(rest)
    assert entry == {"ci:policy-sync": {"key_fingerprint": hash_api_key(raw), "permissions": ["policy:read"]}}
