"""Scheduling tools - schedule, list and cancel tasks on the agent session.

The session owns the actual scheduler; these tools only translate the model's
request into ``session.schedule`` / ``get_schedules`` / ``cancel_schedule``
calls and report the outcome as text.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Literal

from pydantic import BaseModel, Field

from chat_agent.session import Schedule

from .registry import EmptyInput, ToolContext, ToolRegistry, ToolResult

logger = logging.getLogger(__name__)

SCHEDULE_TOOL = "schedule_task"
LIST_TOOL = "get_scheduled_tasks"
CANCEL_TOOL = "cancel_scheduled_task"

# Session callback invoked when a scheduled task comes due.
EXECUTE_CALLBACK = "execute_task"


class ScheduleWhen(BaseModel):
    type: Literal["scheduled", "delayed", "cron", "no-schedule"] = Field(
        description="'scheduled' for a fixed date, 'delayed' for a delay in seconds, "
        "'cron' for a recurring cron pattern, 'no-schedule' when no time was given",
    )
    date: dt.datetime | None = Field(
        default=None, description="Date and time to run the task (only when type is 'scheduled')"
    )
    delay_in_seconds: int | None = Field(
        default=None, ge=0, description="Seconds to wait before running the task (only when type is 'delayed')"
    )
    cron: str | None = Field(default=None, description="Cron pattern for recurring tasks (only when type is 'cron')")


class ScheduleInput(BaseModel):
    description: str = Field(description="What the task should do")
    when: ScheduleWhen


class CancelInput(BaseModel):
    task_id: str = Field(description="The ID of the task to cancel")


def _display(value: Any) -> str:
    if isinstance(value, dt.datetime):
        return value.isoformat()
    return str(value)


def _schedule_handler(params: ScheduleInput, ctx: ToolContext) -> ToolResult:
    when = params.when
    if when.type == "no-schedule":
        return ToolResult.rejected("Not a valid schedule input")

    value = {
        "scheduled": when.date,
        "delayed": when.delay_in_seconds,
        "cron": when.cron,
    }[when.type]
    if value is None:
        return ToolResult.rejected("not a valid schedule input")

    try:
        ctx.session.schedule(value, EXECUTE_CALLBACK, params.description)
    except Exception as e:
        logger.exception("error scheduling task")
        return ToolResult.failed(f"Error scheduling task: {e}")
    return ToolResult.success(f'Task scheduled for type "{when.type}" : {_display(value)}')


def _list_handler(params: EmptyInput, ctx: ToolContext) -> ToolResult:
    try:
        tasks = ctx.session.get_schedules()
    except Exception as e:
        logger.exception("Error listing scheduled tasks")
        return ToolResult.failed(f"Error listing scheduled tasks: {e}")

    if not tasks:
        return ToolResult.success([], message="No scheduled tasks found.")
    return ToolResult.success([t.to_dict() if isinstance(t, Schedule) else dict(t) for t in tasks])


def _cancel_handler(params: CancelInput, ctx: ToolContext) -> ToolResult:
    task_id = params.task_id
    try:
        cancelled = ctx.session.cancel_schedule(task_id)
    except Exception as e:
        logger.exception("Error canceling scheduled task")
        return ToolResult.failed(f"Error canceling task {task_id}: {e}")

    if not cancelled:
        return ToolResult.failed(f"Error canceling task {task_id}: no such task")
    return ToolResult.success(f"Task {task_id} has been successfully canceled.")


def register(registry: ToolRegistry) -> None:
    """Register the scheduling tools with the registry."""
    registry.register(
        SCHEDULE_TOOL,
        description="A tool to schedule a task to be executed at a later time",
        input_model=ScheduleInput,
        handler=_schedule_handler,
    )
    registry.register(
        LIST_TOOL,
        description="List all tasks that have been scheduled",
        input_model=EmptyInput,
        handler=_list_handler,
    )
    registry.register(
        CANCEL_TOOL,
        description="Cancel a scheduled task using its ID",
        input_model=CancelInput,
        handler=_cancel_handler,
    )
