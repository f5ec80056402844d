"""Client SDK for the governance safeguards gateway."""

from safeguards_sdk.client import SafeguardsClient
from safeguards_sdk.models import CheckResult, PolicyResult, TxResult

__all__ = ["SafeguardsClient", "CheckResult", "PolicyResult", "TxResult"]
