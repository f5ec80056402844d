"""
Safeguard Logging Sinks

Leveled key/value loggers the PolicyStore writes evaluation outcomes to.
StdlibLogger feeds the process log; AuditSpineLogger appends a durable,
hash-chained record to the audit_events ledger (the chaining trigger lives
in PostgreSQL).
"""

from __future__ import annotations

import json
import logging
import os
import queue
import threading
import time
from typing import Any, Callable, Optional, Protocol

import psycopg2
import psycopg2.errors

AUDIT_DSN_ENV = "SAFEGUARDS_AUDIT_DSN"
POLICY_VERSION = "1.0.0"

_log = logging.getLogger(__name__)

LEVELS = {"DEBUG": logging.DEBUG, "INFO": logging.INFO, "ERROR": logging.ERROR}


class SafeguardLogger(Protocol):
    def debug(self, msg: str, **fields: Any) -> None: ...
    def info(self, msg: str, **fields: Any) -> None: ...
    def error(self, msg: str, **fields: Any) -> None: ...


# ---------------------------------------------------------------------------
# Process log
# ---------------------------------------------------------------------------

def _render(msg: str, fields: dict[str, Any]) -> str:
    if not fields:
        return msg
    pairs = " ".join(f"{k}={v!r}" for k, v in fields.items())
    return f"{msg} {pairs}"


class StdlibLogger:
    """Forward leveled key/value calls to a ``logging.Logger``."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("safeguards")

    def _log(self, level: int, msg: str, fields: dict[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, _render(msg, fields), extra={"fields": fields})

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, fields)


class NopLogger:
    def debug(self, msg: str, **fields: Any) -> None:
        pass

    def info(self, msg: str, **fields: Any) -> None:
        pass

    def error(self, msg: str, **fields: Any) -> None:
        pass


class FanoutLogger:
    """Send every call to each wrapped logger in turn."""

    def __init__(self, *loggers: SafeguardLogger):
        self._loggers = loggers

    def debug(self, msg: str, **fields: Any) -> None:
        for logger in self._loggers:
            logger.debug(msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        for logger in self._loggers:
            logger.info(msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        for logger in self._loggers:
            logger.error(msg, **fields)


# ---------------------------------------------------------------------------
# Audit Spine
# ---------------------------------------------------------------------------

_STOP = object()


class AuditSpineLogger:
    """
    Append-only writer of safeguard evaluations to ``audit_events``.

    Each log call becomes one row with action_type ``SAFEGUARD_EVAL:<LEVEL>``.
    Calls only enqueue; a background writer thread owns every database
    round trip, so admission control never waits on PostgreSQL. Records
    below ``min_level`` are dropped, as are records arriving while
    ``max_pending`` writes are already queued.
    """

    def __init__(self, dsn: str, min_level: str = "INFO",
                 connect: Callable[..., Any] | None = None,
                 actor_id: str = "module:governance-safeguards",
                 max_pending: int = 1000):
        if min_level not in LEVELS:
            raise ValueError(f"Unknown log level: {min_level}")
        self._dsn = dsn
        self._min_level = LEVELS[min_level]
        self._connect_fn = connect or psycopg2.connect
        self.actor_id = actor_id
        self.dropped = 0
        self._pending: queue.Queue = queue.Queue(maxsize=max_pending)
        self._writer = threading.Thread(
            target=self._drain, name="audit-spine-writer", daemon=True,
        )
        self._writer.start()

    def _connect(self):
        return self._connect_fn(self._dsn)

    def log_event(
        self,
        action_type: str,
        intent_payload: dict[str, Any],
        policy_version: str = POLICY_VERSION,
        _max_retries: int = 3,
    ) -> str:
        """
        Write an event synchronously and return its UUID. Retries when a
        concurrent insert races for the same previous_event_hash.
        """
        for attempt in range(_max_retries):
            conn = self._connect()
            try:
                cur = conn.cursor()
                cur.execute(
                    "INSERT INTO audit_events "
                    "(actor_id, action_type, intent_payload, policy_version) "
                    "VALUES (%s, %s, %s, %s) "
                    "RETURNING id",
                    (
                        self.actor_id,
                        action_type,
                        json.dumps(intent_payload, default=str),
                        policy_version,
                    ),
                )
                event_id = str(cur.fetchone()[0])
                conn.commit()
                cur.close()
                return event_id
            except (psycopg2.errors.UniqueViolation, psycopg2.errors.DeadlockDetected):
                conn.rollback()
                if attempt < _max_retries - 1:
                    time.sleep(0.05 * (attempt + 1))
                    continue
                raise
            finally:
                conn.close()
        raise RuntimeError("log_event: exhausted retries")

    # -- background writer -----------------------------------------------------

    def _drain(self) -> None:
        while True:
            item = self._pending.get()
            try:
                if item is _STOP:
                    return
                action_type, payload = item
                try:
                    self.log_event(action_type, payload)
                except Exception:
                    _log.warning("audit spine write failed: %s", action_type, exc_info=True)
            finally:
                self._pending.task_done()

    def flush(self) -> None:
        """Block until every queued record has been written or failed."""
        self._pending.join()

    def close(self) -> None:
        self._pending.put(_STOP)
        self._writer.join()

    def _write(self, level: str, msg: str, fields: dict[str, Any]) -> None:
        if LEVELS[level] < self._min_level:
            return
        try:
            self._pending.put_nowait(
                (f"SAFEGUARD_EVAL:{level}", {"message": msg, **fields})
            )
        except queue.Full:
            self.dropped += 1
            _log.warning("audit spine backlog full, dropped %s record", level)

    def debug(self, msg: str, **fields: Any) -> None:
        self._write("DEBUG", msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._write("INFO", msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._write("ERROR", msg, fields)


def logger_from_env(base: logging.Logger | None = None) -> SafeguardLogger:
    """Process logger, plus the Audit Spine when SAFEGUARDS_AUDIT_DSN is set."""
    process = StdlibLogger(base)
    dsn: Optional[str] = os.environ.get(AUDIT_DSN_ENV)
    if not dsn:
        return process
    return FanoutLogger(process, AuditSpineLogger(dsn))
