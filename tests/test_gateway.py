"""
Governance Safeguards Gateway Test Suite
Content checks, transaction admission and policy administration through
the FastAPI app.

Usage:  pytest tests/test_gateway.py
"""

from __future__ import annotations

import base64
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from main import create_app
from safeguards.config import default_app_config
from safeguards.errors import ConfigError
from safeguards.policy import Policy
from safeguards.store import PolicyStore
from tests.conftest import ADMIN_KEY, OBSERVER_KEY, REVOKED_KEY

SUBMIT = "/cosmos.gov.v1.MsgSubmitProposal"
UPGRADE_URL = "/cosmos.upgrade.v1beta1.MsgSoftwareUpgrade"


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


@pytest.fixture
def store(recorder):
    return PolicyStore(Policy(), logger=recorder)


@pytest.fixture
def client(store):
    return TestClient(create_app(config=default_app_config(), store=store))


# ---------------------------------------------------------------------------
# Health + wiring
# ---------------------------------------------------------------------------

def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "operational"
    assert body["enforcement_active"] is True
    assert body["chain_id"] == "osmosis-spot-1"


def test_invalid_spot_only_config_refuses_to_start():
    config = default_app_config()
    config.spot_only.max_leverage = Decimal("3")
    with pytest.raises(ConfigError):
        create_app(config=config)


def test_blank_configured_term_refuses_to_start():
    config = default_app_config()
    config.governance_safeguards.additional_restricted_types = [""]
    with pytest.raises(ConfigError):
        create_app(config=config)


def test_app_built_from_config_uses_additional_terms():
    config = default_app_config()
    config.governance_safeguards.additional_restricted_types = ["options"]
    client = TestClient(create_app(config=config))
    body = client.post("/check", json={"title": "Enable options vaults"}).json()
    assert body["reason"] == "options"


# ---------------------------------------------------------------------------
# /check
# ---------------------------------------------------------------------------

def test_check_clean_content(client):
    resp = client.post("/check", json={
        "title": "Update Pool Parameters",
        "summary": "improves efficiency",
    })
    assert resp.status_code == 200
    assert resp.json() == {
        "allowed": True,
        "reason": None,
        "source": None,
        "message": "proposal content allowed",
    }


def test_check_restricted_sub_message(client, recorder):
    resp = client.post("/check", json={
        "title": "v31",
        "messages": [{"@type": UPGRADE_URL, "value": _b64("install x/lending")}],
    })
    body = resp.json()
    assert body["allowed"] is False
    assert body["reason"] == "lending"
    assert body["source"] == "upgrade"
    # lint does not go through the store's audit path
    assert recorder.records == []


def test_check_skips_undecodable_payload_only(client):
    resp = client.post("/check", json={
        "title": "v31",
        "messages": [
            {"@type": UPGRADE_URL, "value": "not base64!"},
            {"@type": UPGRADE_URL, "value": _b64("install x/perpetuals")},
        ],
    })
    assert resp.status_code == 200
    assert resp.json()["reason"] == "perpetuals"

    resp = client.post("/check", json={
        "title": "v31",
        "messages": [{"@type": UPGRADE_URL, "value": "%%%"}],
    })
    assert resp.status_code == 200
    assert resp.json()["allowed"] is True


def test_tx_with_undecodable_payload_still_screens_others(client):
    resp = client.post("/tx", json={"msgs": [{
        "@type": SUBMIT,
        "title": "Software upgrade",
        "messages": [
            {"@type": UPGRADE_URL, "value": "??"},
            {"@type": UPGRADE_URL, "value": _b64("derivatives module")},
        ],
    }]})
    assert resp.status_code == 400
    assert "derivatives" in resp.json()["error"]


# ---------------------------------------------------------------------------
# /tx
# ---------------------------------------------------------------------------

def test_tx_with_allowed_proposal_accepted(client):
    resp = client.post("/tx", json={"msgs": [{
        "@type": SUBMIT,
        "title": "Update Pool Parameters",
        "summary": "This proposal updates pool parameters",
    }]})
    assert resp.status_code == 200
    assert resp.json() == {"accepted": True, "msg_count": 1}


def test_tx_with_restricted_proposal_rejected(client, recorder):
    resp = client.post("/tx", json={"msgs": [
        {"@type": "/cosmos.bank.v1beta1.MsgSend", "amount": "10uosmo"},
        {"@type": SUBMIT, "title": "Enable Perpetual Trading", "proposer": "osmo1xyz"},
    ]})
    assert resp.status_code == 400
    body = resp.json()
    assert body["accepted"] is False
    assert "governance proposal validation failed" in body["error"]
    assert "perpetual" in body["error"]
    assert body["code"] == 18
    assert body["codespace"] == "sdk"
    assert recorder.levels() == ["info"]
    assert recorder.records[0][2]["proposer"] == "osmo1xyz"


def test_empty_tx_rejected(client):
    resp = client.post("/tx", json={"msgs": []})
    assert resp.status_code == 400
    assert "at least one message" in resp.json()["error"]


def test_non_proposal_messages_pass(client):
    resp = client.post("/tx", json={"msgs": [
        {"@type": "/cosmos.bank.v1beta1.MsgSend", "memo": "margin call"},
    ]})
    assert resp.status_code == 200


# ---------------------------------------------------------------------------
# /policy
# ---------------------------------------------------------------------------

def test_get_policy(client):
    body = client.get("/policy").json()
    assert body["enabled"] is True
    assert "perpetual" in body["restricted_keywords"]
    assert "perpetuals" in body["restricted_modules"]


def test_put_policy_requires_operator_permission(client, identities_file):
    payload = {"enabled": False, "restricted_keywords": ["margin"], "restricted_modules": ["margins"]}

    assert client.put("/policy", json=payload).status_code == 422      # header missing
    assert client.put("/policy", json=payload,
                      headers={"Authorization": "Token abc"}).status_code == 401
    assert client.put("/policy", json=payload,
                      headers={"Authorization": "Bearer wrong"}).status_code == 401
    assert client.put("/policy", json=payload,
                      headers={"Authorization": f"Bearer {REVOKED_KEY}"}).status_code == 403
    assert client.put("/policy", json=payload,
                      headers={"Authorization": f"Bearer {OBSERVER_KEY}"}).status_code == 403
    assert client.get("/policy").json()["enabled"] is True


def test_put_policy_replaces_live_policy(client, store, identities_file):
    resp = client.put(
        "/policy",
        json={"enabled": False, "restricted_keywords": ["margin"], "restricted_modules": ["margins"]},
        headers={"Authorization": f"Bearer {ADMIN_KEY}"},
    )
    assert resp.status_code == 200
    assert resp.json()["replaced_by"] == "human:operator"
    assert store.is_enforcement_active() is False

    resp = client.post("/tx", json={"msgs": [{"@type": SUBMIT, "title": "Enable Perpetual Trading"}]})
    assert resp.status_code == 200


def test_put_inconsistent_policy_rejected(client, identities_file):
    resp = client.put(
        "/policy",
        json={"enabled": True, "restricted_keywords": [], "restricted_modules": ["margins"]},
        headers={"Authorization": f"Bearer {ADMIN_KEY}"},
    )
    assert resp.status_code == 422
    assert "no restricted keywords" in resp.json()["detail"]


@pytest.mark.parametrize("keywords,modules", [
    [["margin", " "], ["margins"]],
    [["margin"], [""]],
])
def test_put_blank_term_rejected(client, identities_file, keywords, modules):
    resp = client.put(
        "/policy",
        json={"enabled": True, "restricted_keywords": keywords, "restricted_modules": modules},
        headers={"Authorization": f"Bearer {ADMIN_KEY}"},
    )
    assert resp.status_code == 422
    assert "blank" in resp.json()["detail"]
    assert "perpetual" in client.get("/policy").json()["restricted_keywords"]
