"""get_weather_information tool - Weather lookup for a city.

Stubbed: no weather provider is wired up, every city is sunny.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from .registry import ToolContext, ToolRegistry, ToolResult

logger = logging.getLogger(__name__)

TOOL_NAME = "get_weather_information"


class WeatherInput(BaseModel):
    city: str


def _handler(params: WeatherInput, ctx: ToolContext) -> ToolResult:
    logger.info("Getting weather information for %s", params.city)
    return ToolResult.success(f"The weather in {params.city} is sunny")


def register(registry: ToolRegistry) -> None:
    """Register the get_weather_information tool with the registry."""
    registry.register(
        TOOL_NAME,
        description="show the weather in a given city to the user",
        input_model=WeatherInput,
        handler=_handler,
    )
