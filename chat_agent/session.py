"""Agent session handles.

Tools never look up "the current agent" on their own; the session they act on
is passed in explicitly through ``ToolContext``. ``AgentSession`` is the surface
tools rely on. ``LocalSession`` implements it on top of ``SqliteStorage`` for
tests and the CLI: schedules are recorded in ``agent_schedules`` but nothing
ever fires them.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Callable, Protocol, Union

from chat_agent.storage import SqliteStorage, SqlStorageLike

logger = logging.getLogger(__name__)

# datetime -> scheduled, int seconds -> delayed, str -> cron
When = Union[dt.datetime, int, str]


@dataclass(frozen=True)
class Schedule:
    id: str
    callback: str
    payload: Any
    type: str
    time: int | None
    delay_in_seconds: int | None = None
    cron: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AgentSession(Protocol):
    storage: SqlStorageLike

    def schedule(self, when: When, callback: str, payload: Any) -> Schedule: ...

    def get_schedules(self) -> list[Schedule]: ...

    def cancel_schedule(self, schedule_id: str) -> bool: ...


_SCHEMA = """
CREATE TABLE IF NOT EXISTS agent_schedules (
    id TEXT PRIMARY KEY,
    callback TEXT NOT NULL,
    payload TEXT,
    type TEXT NOT NULL CHECK (type IN ('scheduled', 'delayed', 'cron')),
    time INTEGER,
    delay_in_seconds INTEGER,
    cron TEXT,
    created_at INTEGER NOT NULL
)
"""


def _validate_cron(expr: str) -> str:
    fields = expr.split()
    if len(fields) not in (5, 6):
        raise ValueError(f"Invalid cron expression: {expr!r}")
    return " ".join(fields)


class LocalSession:
    """SQLite-backed session used outside the hosted runtime."""

    def __init__(self, storage: SqliteStorage | None = None, *, clock: Callable[[], float] = time.time):
        self.storage = storage if storage is not None else SqliteStorage()
        self._clock = clock
        self.storage.exec(_SCHEMA)

    def schedule(self, when: When, callback: str, payload: Any) -> Schedule:
        now = int(self._clock())
        delay: int | None = None
        cron: str | None = None
        if isinstance(when, dt.datetime):
            kind = "scheduled"
            if when.tzinfo is None:
                when = when.replace(tzinfo=dt.timezone.utc)
            at: int | None = int(when.timestamp())
        elif isinstance(when, int) and not isinstance(when, bool):
            if when < 0:
                raise ValueError("delay must not be negative")
            kind = "delayed"
            delay = when
            at = now + when
        elif isinstance(when, str):
            kind = "cron"
            cron = _validate_cron(when)
            at = None
        else:
            raise ValueError(f"Unsupported schedule input: {when!r}")

        sched = Schedule(
            id=uuid.uuid4().hex[:12],
            callback=callback,
            payload=payload,
            type=kind,
            time=at,
            delay_in_seconds=delay,
            cron=cron,
        )
        self.storage.exec(
            """
            INSERT INTO agent_schedules (id, callback, payload, type, time, delay_in_seconds, cron, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            sched.id,
            sched.callback,
            json.dumps(payload),
            sched.type,
            sched.time,
            sched.delay_in_seconds,
            sched.cron,
            now,
        )
        logger.info("Scheduled %s task %s for %s", kind, sched.id, callback)
        return sched

    def get_schedules(self) -> list[Schedule]:
        rows = self.storage.exec(
            """
            SELECT id, callback, payload, type, time, delay_in_seconds, cron
            FROM agent_schedules
            ORDER BY created_at, rowid
            """
        ).to_array()
        out: list[Schedule] = []
        for row in rows:
            try:
                row["payload"] = json.loads(row["payload"]) if row["payload"] is not None else None
            except json.JSONDecodeError:
                pass
            out.append(Schedule(**row))
        return out

    def cancel_schedule(self, schedule_id: str) -> bool:
        cur = self.storage.exec("DELETE FROM agent_schedules WHERE id = ?", schedule_id)
        return cur.rowcount > 0
