"""
Safeguards SDK — Client
Thin synchronous wrapper over the governance safeguards gateway.
"""

from __future__ import annotations

import base64
from typing import Any, Iterable, Union

import httpx

from safeguards_sdk.models import CheckResult, PolicyResult, TxResult

MSG_SUBMIT_PROPOSAL_TYPE_URL = "/cosmos.gov.v1.MsgSubmitProposal"


def encode_sub_message(type_url: str, value: Union[bytes, str]) -> dict[str, str]:
    """Build the JSON ``Any`` form the gateway expects (payload base64)."""
    if isinstance(value, str):
        value = value.encode()
    return {"@type": type_url, "value": base64.b64encode(value).decode()}


class SafeguardsClient:
    """
    Client for the governance safeguards gateway.

    Lints proposal content, submits transactions through the ante chain,
    and lets an operator read or replace the live policy.
    """

    def __init__(
        self,
        gateway_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Args:
            gateway_url: Base URL of the gateway (e.g. "http://localhost:8000")
            api_key: Operator Bearer token, only needed for set_policy
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (tests, custom networking)
        """
        self.gateway_url = gateway_url.rstrip("/")
        self.api_key = api_key
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def check(
        self,
        title: str,
        summary: str = "",
        messages: Iterable[dict[str, Any]] = (),
    ) -> CheckResult:
        """Lint proposal content against the live policy."""
        resp = self._client.post(
            f"{self.gateway_url}/check",
            json={"title": title, "summary": summary, "messages": list(messages)},
        )
        resp.raise_for_status()
        body = resp.json()

        return CheckResult(
            allowed=body.get("allowed", False),
            reason=body.get("reason"),
            source=body.get("source"),
            message=body.get("message", ""),
            raw=body,
        )

    def submit_proposal(
        self,
        title: str,
        summary: str = "",
        messages: Iterable[dict[str, Any]] = (),
        proposer: str = "",
    ) -> TxResult:
        """Submit a single-message MsgSubmitProposal transaction."""
        return self.submit_tx([{
            "@type": MSG_SUBMIT_PROPOSAL_TYPE_URL,
            "title": title,
            "summary": summary,
            "proposer": proposer,
            "messages": list(messages),
        }])

    def submit_tx(self, msgs: list[dict[str, Any]], memo: str = "") -> TxResult:
        """Run a transaction through the node's ante chain."""
        resp = self._client.post(
            f"{self.gateway_url}/tx",
            json={"msgs": msgs, "memo": memo},
        )
        body = resp.json()

        return TxResult(
            accepted=resp.status_code == 200 and body.get("accepted", False),
            error=body.get("error"),
            code=body.get("code"),
            codespace=body.get("codespace"),
            raw=body,
        )

    def get_policy(self) -> PolicyResult:
        resp = self._client.get(f"{self.gateway_url}/policy")
        body = resp.json()
        return PolicyResult(
            success=resp.status_code == 200,
            enabled=body.get("enabled"),
            restricted_keywords=body.get("restricted_keywords", []),
            restricted_modules=body.get("restricted_modules", []),
            raw=body,
        )

    def set_policy(
        self,
        enabled: bool,
        restricted_keywords: list[str],
        restricted_modules: list[str],
    ) -> PolicyResult:
        """
        Replace the live policy via PUT /policy.

        Requires api_key to be set on the client.
        """
        if not self.api_key:
            return PolicyResult(
                success=False,
                raw={"error": "No api_key configured on client."},
            )

        resp = self._client.put(
            f"{self.gateway_url}/policy",
            json={
                "enabled": enabled,
                "restricted_keywords": restricted_keywords,
                "restricted_modules": restricted_modules,
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        body = resp.json()
        policy = body.get("policy", {})

        return PolicyResult(
            success=resp.status_code == 200,
            enabled=policy.get("enabled"),
            restricted_keywords=policy.get("restricted_keywords", []),
            restricted_modules=policy.get("restricted_modules", []),
            raw=body,
        )

    def health(self) -> dict:
        """Check gateway health via GET /health."""
        resp = self._client.get(f"{self.gateway_url}/health")
        return resp.json()
