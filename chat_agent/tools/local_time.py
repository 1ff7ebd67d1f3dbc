"""get_local_time tool - Local time for a location (stubbed)."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from .registry import ToolContext, ToolRegistry, ToolResult

logger = logging.getLogger(__name__)

TOOL_NAME = "get_local_time"


class LocalTimeInput(BaseModel):
    location: str


def _handler(params: LocalTimeInput, ctx: ToolContext) -> ToolResult:
    logger.info("Getting local time for %s", params.location)
    return ToolResult.success("10am")


def register(registry: ToolRegistry) -> None:
    registry.register(
        TOOL_NAME,
        description="get the local time for a specified location",
        input_model=LocalTimeInput,
        handler=_handler,
    )
