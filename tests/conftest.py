from __future__ import annotations

import json

import pytest

from safeguards.identity import IDENTITIES_PATH_ENV, POLICY_REPLACE, hash_api_key

ADMIN_KEY = "sgk_test-key-change-me"
REVOKED_KEY = "sgk_revoked-key"
OBSERVER_KEY = "sgk_observer"


class RecordingLogger:
    """Captures leveled key/value calls."""

    def __init__(self):
        self.records: list[tuple[str, str, dict]] = []

    def debug(self, msg, **fields):
        self.records.append(("debug", msg, fields))

    def info(self, msg, **fields):
        self.records.append(("info", msg, fields))

    def error(self, msg, **fields):
        self.records.append(("error", msg, fields))

    def levels(self) -> list[str]:
        return [r[0] for r in self.records]


@pytest.fixture
def recorder() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def identities_file(tmp_path, monkeypatch):
    path = tmp_path / "identities.json"
    path.write_text(json.dumps({
        "operators": {
            "human:operator": {
                "key_fingerprint": hash_api_key(ADMIN_KEY),
                "permissions": [POLICY_REPLACE],
            },
            "human:retired": {
                "key_fingerprint": hash_api_key(REVOKED_KEY),
                "permissions": [],
            },
            "agent:observer": {
                "key_fingerprint": hash_api_key(OBSERVER_KEY),
                "permissions": ["policy:read"],
            },
        }
    }))
    monkeypatch.setenv(IDENTITIES_PATH_ENV, str(path))
    return path
