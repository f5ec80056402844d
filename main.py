"""
Governance Safeguards Gateway

HTTP front for a node's governance safeguards. Proposal content can be
linted against the live policy, whole transactions can be pushed through
the ante chain, and operators can inspect or replace the policy.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import Any, Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
import uvicorn

from safeguards.ante import (
    MSG_SUBMIT_PROPOSAL_TYPE_URL,
    Context,
    MsgSubmitProposal,
    Tx,
    new_ante_handler,
)
from safeguards.audit import logger_from_env
from safeguards.config import AppConfig, check_policy_consistency, load_app_config
from safeguards.errors import ConfigError, InvalidRequestError, OperatorAuthError
from safeguards.identity import POLICY_REPLACE, require_operator
from safeguards.policy import Policy, ProposalView, SubMessage, evaluate
from safeguards.store import PolicyStore

log = logging.getLogger("safeguards.gateway")


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class AnyMsg(BaseModel):
    """Protobuf ``Any`` in JSON form: type URL plus base64 payload.

    ``value`` stays a string here; it is decoded per sub-message so one
    undecodable payload cannot reject the rest of the proposal.
    """
    model_config = ConfigDict(populate_by_name=True)

    type_url: str = Field(alias="@type")
    value: str = ""


class ContentCheck(BaseModel):
    title: str = ""
    summary: str = ""
    messages: list[AnyMsg] = []


class TxMsg(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type_url: str = Field(alias="@type")
    title: str = ""
    summary: str = ""
    proposer: str = ""
    metadata: str = ""
    messages: list[AnyMsg] = []


class TxRequest(BaseModel):
    chain_id: str = ""
    memo: str = ""
    msgs: list[TxMsg]


class PolicyBody(BaseModel):
    enabled: bool
    restricted_keywords: list[str]
    restricted_modules: list[str]


class OpaqueMsg:
    """Any non-proposal message; the safeguard only needs its type URL."""

    def __init__(self, type_url: str, body: dict[str, Any]):
        self.type_url = type_url
        self.body = body


def _sub_messages(messages: list[AnyMsg]) -> list[SubMessage]:
    """Decode each payload; a sub-message whose value is not base64 is skipped."""
    result = []
    for m in messages:
        try:
            value = base64.b64decode(m.value, validate=True)
        except (binascii.Error, ValueError):
            log.debug("skipping sub-message %s: value is not base64", m.type_url)
            continue
        result.append(SubMessage(type_url=m.type_url, value=value))
    return result


def _to_host_msg(msg: TxMsg):
    if msg.type_url == MSG_SUBMIT_PROPOSAL_TYPE_URL:
        return MsgSubmitProposal(
            messages=_sub_messages(msg.messages),
            title=msg.title,
            summary=msg.summary,
            proposer=msg.proposer,
            metadata=msg.metadata,
        )
    return OpaqueMsg(msg.type_url, msg.model_dump(by_alias=True))


def _require_operator(authorization: str, action: str):
    try:
        return require_operator(authorization, action)
    except OperatorAuthError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(config: Optional[AppConfig] = None,
               store: Optional[PolicyStore] = None) -> FastAPI:
    config = config or load_app_config()
    config.spot_only.validate()

    if store is None:
        policy = config.governance_safeguards.to_policy()
        check_policy_consistency(policy)
        store = PolicyStore(policy, logger=logger_from_env())

    ante_handler = new_ante_handler(store)

    app = FastAPI(
        title="Governance Safeguards Gateway",
        version="1.0.0",
    )
    app.state.store = store
    app.state.config = config

    @app.get("/health")
    def health():
        return {
            "status": "operational",
            "service": "governance-safeguards",
            "chain_id": config.spot_only.chain_id,
            "enforcement_active": store.is_enforcement_active(),
        }

    @app.post("/check")
    def check(request: ContentCheck):
        """Lint proposal content against the live policy. Nothing is recorded."""
        view = ProposalView(
            title=request.title,
            summary=request.summary,
            sub_messages=tuple(_sub_messages(request.messages)),
        )
        return evaluate(store.current(), view).to_dict()

    @app.post("/tx")
    def submit_tx(request: TxRequest):
        """
        Run a transaction through the ante chain.

        Any restricted proposal rejects the whole transaction with the host's
        invalid-request error.
        """
        tx = Tx(msgs=[_to_host_msg(m) for m in request.msgs], memo=request.memo)
        ctx = Context(chain_id=request.chain_id or config.spot_only.chain_id)

        try:
            ante_handler(ctx, tx, False)
        except InvalidRequestError as exc:
            return JSONResponse(
                status_code=400,
                content={
                    "accepted": False,
                    "error": str(exc),
                    "codespace": exc.codespace,
                    "code": exc.code,
                },
            )

        return {"accepted": True, "msg_count": len(tx.msgs)}

    @app.get("/policy")
    def get_policy():
        return store.current().to_dict()

    @app.put("/policy")
    def put_policy(body: PolicyBody, authorization: str = Header(...)):
        """Replace the live policy. Requires an operator key granted policy:replace."""
        operator = _require_operator(authorization, POLICY_REPLACE)

        policy = Policy(
            enabled=body.enabled,
            restricted_keywords=tuple(body.restricted_keywords),
            restricted_modules=tuple(body.restricted_modules),
        )
        try:
            check_policy_consistency(policy)
        except ConfigError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

        store.replace(policy)
        log.info("policy replaced by %s (enabled=%s)", operator.actor_id, policy.enabled)

        return {"replaced_by": operator.actor_id, "policy": policy.to_dict()}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.environ.get("SAFEGUARDS_HOST", "127.0.0.1"),
        port=app.state.config.deployment.api_port,
    )
