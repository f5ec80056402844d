#!/usr/bin/env python3
"""
Mint an operator key for the safeguards gateway.

Prints the raw key once (hand it to the operator) and the identities.json
entry to merge under "operators". Only the fingerprint is ever stored.

Usage:  python scripts/keygen.py human:alice
        python scripts/keygen.py ci:policy-sync --permission policy:replace
"""

from __future__ import annotations

import argparse
import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from safeguards.identity import POLICY_REPLACE, new_operator_entry


def main(argv=None, out=None) -> int:
    out = out or sys.stdout
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("actor_id", help="operator id, e.g. human:alice")
    parser.add_argument("--permission", action="append", dest="permissions",
                        help=f"action to grant (repeatable, default {POLICY_REPLACE})")
    args = parser.parse_args(argv)

    raw, entry = new_operator_entry(args.actor_id, args.permissions or [POLICY_REPLACE])
    print(f"key: {raw}", file=out)
    print(json.dumps(entry, indent=2), file=out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
