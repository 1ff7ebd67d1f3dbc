"""Tests for the schedule_task, get_scheduled_tasks and cancel_scheduled_task tools."""
from __future__ import annotations

import datetime as dt
import json
from unittest.mock import MagicMock

import pytest

from chat_agent.session import LocalSession, Schedule
from chat_agent.tools import scheduling
from chat_agent.tools.registry import ToolContext, ToolRegistry, ToolStatus


@pytest.fixture
def registry():
    reg = ToolRegistry()
    scheduling.register(reg)
    return reg


@pytest.fixture
def session():
    return MagicMock()


def _run(registry, session, name, arguments):
    return registry.execute(name, arguments, ToolContext(session=session))


class TestScheduleTask:
    """schedule_task hands the request to the session."""

    def test_delayed(self, registry, session):
        result = _run(
            registry, session, "schedule_task", {"description": "ping me", "when": {"type": "delayed", "delay_in_seconds": 60}}
        )

        session.schedule.assert_called_once_with(60, "execute_task", "ping me")
        assert result.to_text() == 'Task scheduled for type "delayed" : 60'

    def test_scheduled_date(self, registry, session):
        result = _run(
            registry,
            session,
            "schedule_task",
            {"description": "standup", "when": {"type": "scheduled", "date": "2026-10-20T09:00:00Z"}},
        )

        when = session.schedule.call_args.args[0]
        assert when == dt.datetime(2026, 10, 20, 9, 0, tzinfo=dt.timezone.utc)
        assert result.to_text() == 'Task scheduled for type "scheduled" : 2026-10-20T09:00:00+00:00'

    def test_cron(self, registry, session):
        result = _run(
            registry, session, "schedule_task", {"description": "weekly report", "when": {"type": "cron", "cron": "0 9 * * 1"}}
        )

        session.schedule.assert_called_once_with("0 9 * * 1", "execute_task", "weekly report")
        assert result.ok

    def test_no_schedule_is_rejected(self, registry, session):
        result = _run(registry, session, "schedule_task", {"description": "whenever", "when": {"type": "no-schedule"}})

        assert result.status is ToolStatus.REJECTED
        assert result.to_text() == "Not a valid schedule input"
        session.schedule.assert_not_called()

    def test_missing_value_for_type_is_rejected(self, registry, session):
        result = _run(registry, session, "schedule_task", {"description": "soon", "when": {"type": "delayed"}})

        assert result.status is ToolStatus.REJECTED
        assert result.to_text() == "not a valid schedule input"
        session.schedule.assert_not_called()

    def test_unknown_type_is_rejected(self, registry, session):
        result = _run(registry, session, "schedule_task", {"description": "x", "when": {"type": "someday"}})

        assert result.status is ToolStatus.REJECTED
        assert result.message.startswith("invalid_arguments")

    def test_session_error(self, registry, session):
        session.schedule.side_effect = ValueError("Invalid cron expression: 'nope'")

        result = _run(registry, session, "schedule_task", {"description": "x", "when": {"type": "cron", "cron": "nope"}})

        assert result.status is ToolStatus.FAILED
        assert result.to_text() == "Error scheduling task: Invalid cron expression: 'nope'"


class TestGetScheduledTasks:
    def test_empty(self, registry, session):
        session.get_schedules.return_value = []

        result = _run(registry, session, "get_scheduled_tasks", {})

        assert result.ok
        assert result.to_text() == "No scheduled tasks found."

    def test_lists_schedules(self, registry, session):
        session.get_schedules.return_value = [
            Schedule(id="abc", callback="execute_task", payload="ping", type="delayed", time=160, delay_in_seconds=60)
        ]

        result = _run(registry, session, "get_scheduled_tasks", {})

        assert json.loads(result.to_text()) == [
            {
                "id": "abc",
                "callback": "execute_task",
                "payload": "ping",
                "type": "delayed",
                "time": 160,
                "delay_in_seconds": 60,
                "cron": None,
            }
        ]

    def test_session_error(self, registry, session):
        session.get_schedules.side_effect = RuntimeError("storage offline")

        result = _run(registry, session, "get_scheduled_tasks", {})

        assert result.to_text() == "Error listing scheduled tasks: storage offline"


class TestCancelScheduledTask:
    def test_cancel(self, registry, session):
        session.cancel_schedule.return_value = True

        result = _run(registry, session, "cancel_scheduled_task", {"task_id": "abc"})

        session.cancel_schedule.assert_called_once_with("abc")
        assert result.to_text() == "Task abc has been successfully canceled."

    def test_unknown_id(self, registry, session):
        session.cancel_schedule.return_value = False

        result = _run(registry, session, "cancel_scheduled_task", {"task_id": "zzz"})

        assert result.status is ToolStatus.FAILED
        assert result.to_text() == "Error canceling task zzz: no such task"

    def test_session_error(self, registry, session):
        session.cancel_schedule.side_effect = RuntimeError("locked")

        result = _run(registry, session, "cancel_scheduled_task", {"task_id": "abc"})

        assert result.to_text() == "Error canceling task abc: locked"

    def test_missing_task_id(self, registry, session):
        result = _run(registry, session, "cancel_scheduled_task", {})

        assert result.status is ToolStatus.REJECTED
        session.cancel_schedule.assert_not_called()


class TestSchedulingWithLocalSession:
    """End to end against the SQLite-backed session."""

    def test_schedule_list_cancel(self, registry):
        session = LocalSession(clock=lambda: 1_000)

        _run(registry, session, "schedule_task", {"description": "ping", "when": {"type": "delayed", "delay_in_seconds": 30}})
        listed = json.loads(_run(registry, session, "get_scheduled_tasks", {}).to_text())

        assert len(listed) == 1
        assert listed[0]["payload"] == "ping"
        assert listed[0]["time"] == 1_030

        task_id = listed[0]["id"]
        assert _run(registry, session, "cancel_scheduled_task", {"task_id": task_id}).ok
        assert _run(registry, session, "get_scheduled_tasks", {}).to_text() == "No scheduled tasks found."
