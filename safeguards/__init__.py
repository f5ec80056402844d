"""
Governance safeguards for spot-only chains.

Blocks governance proposals that would introduce or parameterize leveraged
trading modules before they reach the governance module.
"""

from safeguards.ante import GovernanceSafeguardDecorator, new_ante_handler
from safeguards.errors import ConfigError, InvalidRequestError, PolicyDenied, SafeguardError
from safeguards.policy import Decision, Policy, ProposalView, SubMessage, evaluate
from safeguards.store import PolicyStore

__all__ = [
    "ConfigError",
    "Decision",
    "GovernanceSafeguardDecorator",
    "InvalidRequestError",
    "Policy",
    "PolicyDenied",
    "PolicyStore",
    "ProposalView",
    "SafeguardError",
    "SubMessage",
    "evaluate",
    "new_ante_handler",
]
