"""
Policy Store

Owns the single live Policy for a node. Policy values are immutable, so
publishing a new one is a reference swap: readers either see the old value
or the new one, never a mix.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from safeguards.audit import NopLogger, SafeguardLogger
from safeguards.errors import PolicyDenied
from safeguards.policy import Decision, Policy, ProposalView, default_policy, evaluate

_log = logging.getLogger(__name__)


class PolicyStore:
    """
    Holder of the live leverage-restriction policy.

    Construct one per node and hand it to the ante decorator; replace() is the
    administrative hook for hot updates.
    """

    def __init__(self, policy: Policy | None = None,
                 logger: SafeguardLogger | None = None):
        self._policy = policy or default_policy()
        self._write_lock = threading.Lock()
        self.logger = logger or NopLogger()

    # -- administrative surface --------------------------------------------

    def current(self) -> Policy:
        return self._policy

    def replace(self, policy: Policy) -> None:
        """Swap in ``policy``. Evaluations that start afterwards see it."""
        with self._write_lock:
            self._policy = policy

    def is_enforcement_active(self) -> bool:
        return self.current().enabled

    # -- validation ----------------------------------------------------------

    def _emit(self, level: str, msg: str, **fields: Any) -> None:
        try:
            getattr(self.logger, level)(msg, **fields)
        except Exception:
            # A broken sink must not turn into a validation failure.
            _log.warning("safeguard log sink failed: %s", msg, exc_info=True)

    def validate_proposal(self, proposal: ProposalView) -> Decision:
        """
        Evaluate ``proposal`` against the current policy.

        Returns the allow Decision, or raises PolicyDenied carrying the
        matched term.
        """
        decision = evaluate(self.current(), proposal)

        if not decision.allowed:
            self._emit(
                "info",
                "Governance proposal rejected by leverage restrictions",
                proposal_id=proposal.proposal_id,
                proposer=proposal.proposer,
                term=decision.reason,
                source=decision.source,
            )
            raise PolicyDenied(decision)

        self._emit(
            "debug",
            "Governance proposal passed leverage restrictions",
            proposal_id=proposal.proposal_id,
            title=proposal.title,
        )
        return decision
