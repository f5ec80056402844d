"""
Leverage Restriction Policy
Spot-only chains: governance must not re-introduce leveraged trading.

Pure evaluation of proposal content against the restricted keyword and
module lists. Nothing in this module performs I/O or holds state, so the
same functions back the ante decorator, the gateway's /check endpoint and
the offline lint script.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

# ---------------------------------------------------------------------------
# Default rule set
# ---------------------------------------------------------------------------

LEVERAGE_RESTRICTED_KEYWORDS: tuple[str, ...] = (
    "perpetual",
    "margin",
    "leverage",
    "futures",
    "derivatives",
    "perp",
    "leveraged",
    "borrow",
    "lending",
    "collateral",
)

LEVERAGE_RESTRICTED_MODULES: tuple[str, ...] = (
    "perpetuals",
    "margins",
    "leverage",
    "futures",
    "derivatives",
    "lending",
    "borrowing",
)

# Sub-message routes that are scanned. Everything else is left to other checks.
UPGRADE_ROUTE = "upgrade"
PARAMS_ROUTE = "params"


def _normalize(terms: Iterable[str]) -> tuple[str, ...]:
    if isinstance(terms, str):
        terms = (terms,)
    return tuple(str(t).lower() for t in terms)


# ---------------------------------------------------------------------------
# Domain types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Policy:
    enabled: bool = True
    restricted_keywords: tuple[str, ...] = LEVERAGE_RESTRICTED_KEYWORDS
    restricted_modules: tuple[str, ...] = LEVERAGE_RESTRICTED_MODULES

    def __post_init__(self):
        # frozen: write through object.__setattr__
        object.__setattr__(self, "restricted_keywords", _normalize(self.restricted_keywords))
        object.__setattr__(self, "restricted_modules", _normalize(self.restricted_modules))

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "restricted_keywords": list(self.restricted_keywords),
            "restricted_modules": list(self.restricted_modules),
        }


def default_policy() -> Policy:
    return Policy()


@dataclass(frozen=True)
class SubMessage:
    """A proposal sub-message: the type URL plus its raw encoded payload."""
    type_url: str
    value: bytes = b""


@dataclass(frozen=True)
class ProposalView:
    title: str = ""
    summary: str = ""
    sub_messages: Sequence[Any] = field(default_factory=tuple)
    proposal_id: int = 0     # 0 until governance assigns one
    proposer: str = ""


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None      # exact matched term when denied
    source: Optional[str] = None      # "title" | "summary" | "upgrade" | "params"

    @property
    def message(self) -> str:
        if self.allowed:
            return "proposal content allowed"
        if self.source == UPGRADE_ROUTE:
            return f"upgrade proposal contains restricted module: {self.reason}"
        if self.source == PARAMS_ROUTE:
            return f"parameter change proposal contains restricted content: {self.reason}"
        return f"proposal contains restricted leverage-related content: {self.reason}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "source": self.source,
            "message": self.message,
        }


ALLOWED = Decision(allowed=True)


# ---------------------------------------------------------------------------
# Matching helpers
# ---------------------------------------------------------------------------

def _first_match(text: str, terms: Sequence[str]) -> Optional[str]:
    """Return the first term (in list order) contained in ``text``."""
    for term in terms:
        if term in text:
            return term
    return None


def _payload_text(sub_message: Any) -> Optional[str]:
    """Lower-cased payload text, or None when the payload is unusable.

    Missing or non-bytes payloads are treated as non-matching. Invalid UTF-8
    is decoded with replacement so the valid bytes around it still match.
    """
    value = getattr(sub_message, "value", None)
    if isinstance(value, str):
        return value.lower()
    if not isinstance(value, (bytes, bytearray, memoryview)):
        return None
    return bytes(value).decode("utf-8", errors="replace").lower()


def _check_sub_message(policy: Policy, sub_message: Any) -> Optional[Decision]:
    type_url = getattr(sub_message, "type_url", None)
    if not isinstance(type_url, str):
        return None

    inspect_upgrade = UPGRADE_ROUTE in type_url
    inspect_params = PARAMS_ROUTE in type_url
    if not (inspect_upgrade or inspect_params):
        return None

    text = _payload_text(sub_message)
    if text is None:
        return None

    if inspect_upgrade:
        module = _first_match(text, policy.restricted_modules)
        if module is not None:
            return Decision(allowed=False, reason=module, source=UPGRADE_ROUTE)

    if inspect_params:
        keyword = _first_match(text, policy.restricted_keywords)
        if keyword is not None:
            return Decision(allowed=False, reason=keyword, source=PARAMS_ROUTE)

    return None


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

def evaluate(policy: Policy, proposal: ProposalView) -> Decision:
    """
    Apply ``policy`` to a proposal.

    Order of checks:
      1. disabled policy -> allowed, nothing else is looked at
      2. restricted keywords against title, then summary (first keyword wins)
      3. sub-messages in order: upgrade routes against restricted modules,
         params routes against restricted keywords

    Matching is plain substring containment on lower-cased text, so
    "borrowed" matches "borrow".
    """
    if not policy.enabled:
        return ALLOWED

    title = (proposal.title or "").lower()
    summary = (proposal.summary or "").lower()

    for keyword in policy.restricted_keywords:
        if keyword in title:
            return Decision(allowed=False, reason=keyword, source="title")
        if keyword in summary:
            return Decision(allowed=False, reason=keyword, source="summary")

    for sub_message in proposal.sub_messages or ():
        denial = _check_sub_message(policy, sub_message)
        if denial is not None:
            return denial

    return ALLOWED


# ---------------------------------------------------------------------------
# Standalone content lint
# ---------------------------------------------------------------------------

def validate_proposal_content(title: str, summary: str,
                              policy: Policy | None = None) -> Decision:
    """Lint free text with the default policy (or the one given)."""
    return evaluate(policy or default_policy(), ProposalView(title=title, summary=summary))


def is_leverage_related(content: str) -> bool:
    """True if ``content`` contains any default restricted keyword."""
    return _first_match(content.lower(), LEVERAGE_RESTRICTED_KEYWORDS) is not None
