"""
Governance Safeguard Ante Decorator

Admission control for governance proposals. Runs in the ante chain after
basic transaction checks and before any governance state is touched: a
transaction carrying a restricted MsgSubmitProposal is rejected as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from safeguards.errors import InvalidRequestError, PolicyDenied
from safeguards.policy import ProposalView, SubMessage
from safeguards.store import PolicyStore

MSG_SUBMIT_PROPOSAL_TYPE_URL = "/cosmos.gov.v1.MsgSubmitProposal"


# ---------------------------------------------------------------------------
# Host shapes
# ---------------------------------------------------------------------------

@dataclass
class Context:
    """Per-transaction execution context handed along the ante chain."""
    chain_id: str = ""
    block_height: int = 0
    is_check_tx: bool = True
    events: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class MsgSubmitProposal:
    messages: list[SubMessage] = field(default_factory=list)
    title: str = ""
    summary: str = ""
    proposer: str = ""
    metadata: str = ""
    type_url: str = MSG_SUBMIT_PROPOSAL_TYPE_URL


@dataclass
class Tx:
    msgs: list[Any] = field(default_factory=list)
    memo: str = ""

    def get_msgs(self) -> list[Any]:
        return self.msgs

    def validate_basic(self) -> None:
        if not self.msgs:
            raise InvalidRequestError("transaction must contain at least one message")


AnteHandler = Callable[[Context, Tx, bool], Context]


def is_submit_proposal(msg: Any) -> bool:
    """Anything exposing title, summary and messages is a proposal submission."""
    return all(hasattr(msg, attr) for attr in ("title", "summary", "messages"))


def proposal_view(msg: Any) -> ProposalView:
    return ProposalView(
        title=msg.title or "",
        summary=msg.summary or "",
        sub_messages=tuple(msg.messages or ()),
        proposal_id=0,     # not assigned until governance accepts it
        proposer=getattr(msg, "proposer", "") or "",
    )


# ---------------------------------------------------------------------------
# Decorators
# ---------------------------------------------------------------------------

class ValidateBasicDecorator:
    """Stateless well-formedness check; belongs ahead of the safeguard."""

    def ante_handle(self, ctx: Context, tx: Tx, simulate: bool,
                    next_handler: AnteHandler) -> Context:
        tx.validate_basic()
        return next_handler(ctx, tx, simulate)


class GovernanceSafeguardDecorator:
    """Reject transactions whose proposal submissions hit the leverage policy."""

    def __init__(self, store: PolicyStore):
        self.store = store

    def ante_handle(self, ctx: Context, tx: Tx, simulate: bool,
                    next_handler: AnteHandler) -> Context:
        if not self.store.is_enforcement_active():
            return next_handler(ctx, tx, simulate)

        for msg in tx.get_msgs():
            if is_submit_proposal(msg):
                self._validate_submit_proposal(msg)

        return next_handler(ctx, tx, simulate)

    def _validate_submit_proposal(self, msg: Any) -> None:
        try:
            self.store.validate_proposal(proposal_view(msg))
        except PolicyDenied as exc:
            raise InvalidRequestError(
                f"governance proposal validation failed: {exc}"
            ) from exc


# ---------------------------------------------------------------------------
# Chaining
# ---------------------------------------------------------------------------

def _terminal(ctx: Context, tx: Tx, simulate: bool) -> Context:
    return ctx


def chain_ante_decorators(decorators: Sequence[Any],
                          terminal: Optional[AnteHandler] = None) -> AnteHandler:
    """
    Compose decorators into one handler. Each decorator receives the next
    stage as its continuation; ``terminal`` runs after the last one.
    """
    handler: AnteHandler = terminal or _terminal
    for decorator in reversed(list(decorators)):
        handler = _bind(decorator, handler)
    return handler


def _bind(decorator: Any, next_handler: AnteHandler) -> AnteHandler:
    def handle(ctx: Context, tx: Tx, simulate: bool) -> Context:
        return decorator.ante_handle(ctx, tx, simulate, next_handler)
    return handle


def new_ante_handler(store: PolicyStore,
                     terminal: Optional[AnteHandler] = None) -> AnteHandler:
    """Basic checks first, then the governance safeguard."""
    return chain_ante_decorators(
        [ValidateBasicDecorator(), GovernanceSafeguardDecorator(store)],
        terminal,
    )
