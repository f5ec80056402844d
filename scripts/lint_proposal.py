#!/usr/bin/env python3
"""
Proposal Content Lint

Checks a draft governance proposal against the leverage restrictions
offline, before it is ever submitted on chain. Uses the node config when
SAFEGUARDS_CONFIG_PATH is set, the built-in defaults otherwise.

Input: JSON on stdin
    {"title": "...", "summary": "...",
     "messages": [{"type_url": "/cosmos.upgrade.v1beta1.MsgSoftwareUpgrade",
                   "value": "<payload text>"}]}
or argv:  python scripts/lint_proposal.py "<title>" ["<summary>"]

Exit codes:
    0 — allowed
    1 — denied (matched term printed)
    3 — bad input or config
"""

from __future__ import annotations

import json
import os
import sys

# Ensure the project root is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from safeguards.config import check_policy_consistency, load_app_config
from safeguards.errors import ConfigError
from safeguards.policy import ProposalView, SubMessage, evaluate


def _read_proposal(argv: list[str], stdin_text: str) -> ProposalView:
    raw_input = stdin_text.strip()
    if not raw_input:
        if len(argv) < 2:
            raise ValueError("No proposal provided via stdin or args.")
        return ProposalView(title=argv[1], summary=argv[2] if len(argv) > 2 else "")

    payload = json.loads(raw_input)
    messages = [
        SubMessage(type_url=m["type_url"], value=m.get("value", "").encode())
        for m in payload.get("messages", [])
    ]
    return ProposalView(
        title=payload.get("title", ""),
        summary=payload.get("summary", ""),
        sub_messages=tuple(messages),
    )


def main(argv: list[str] | None = None, stdin_text: str | None = None) -> int:
    argv = sys.argv if argv is None else argv
    if stdin_text is None:
        stdin_text = "" if sys.stdin.isatty() else sys.stdin.read()

    try:
        policy = load_app_config().governance_safeguards.to_policy()
        check_policy_consistency(policy)
    except ConfigError as exc:
        print(f"[safeguards] ERROR: {exc}", file=sys.stderr)
        return 3

    try:
        proposal = _read_proposal(argv, stdin_text)
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        print(f"[safeguards] ERROR: Invalid input — {exc}", file=sys.stderr)
        return 3

    decision = evaluate(policy, proposal)
    if decision.allowed:
        print("[safeguards] ALLOWED")
        return 0

    print(f"[safeguards] DENIED ({decision.source})")
    print(f"  - {decision.message}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
