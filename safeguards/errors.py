"""
Safeguard error taxonomy.

PolicyDenied is an expected outcome, not a fault. InvalidRequestError is what
the transaction pipeline surfaces to the submitter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from safeguards.policy import Decision


# Host SDK registered error: sdk/18 "invalid request"
INVALID_REQUEST_CODESPACE = "sdk"
INVALID_REQUEST_CODE = 18


class SafeguardError(Exception):
    """Base class for everything raised by the safeguards package."""


class PolicyDenied(SafeguardError):
    """Proposal content matched a restricted keyword or module."""

    def __init__(self, decision: "Decision"):
        self.decision = decision
        self.term: Optional[str] = decision.reason
        super().__init__(decision.message)


class InvalidRequestError(SafeguardError):
    codespace = INVALID_REQUEST_CODESPACE
    code = INVALID_REQUEST_CODE

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"{detail}: invalid request")


class ConfigError(SafeguardError):
    """Configuration could not be loaded or is internally inconsistent."""


class OperatorAuthError(SafeguardError):
    """Caller could not be resolved to an operator holding the requested action."""

    def __init__(self, detail: str, status_code: int = 401):
        self.status_code = status_code
        super().__init__(detail)
