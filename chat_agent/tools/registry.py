"""Tool registry for chat agent tools.

Tools are functions the LLM can select by name. Each tool:
1. Declares a natural-language description shown to the model
2. Declares a pydantic input model (its JSON schema is the tool's input schema)
3. Either executes automatically (has a handler) or waits for confirmation
4. Returns a tagged ToolResult, never an unhandled exception
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, ValidationError

if TYPE_CHECKING:
    from chat_agent.session import AgentSession

logger = logging.getLogger(__name__)


class ToolStatus(str, Enum):
    OK = "ok"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class ToolResult:
    """Result from tool execution.

    ``rejected`` means the tool refused the request before touching the session;
    ``failed`` means the session or storage raised while serving it.
    """

    status: ToolStatus
    data: Any = None
    message: str | None = None

    @classmethod
    def success(cls, data: Any = None, message: str | None = None) -> "ToolResult":
        return cls(status=ToolStatus.OK, data=data, message=message)

    @classmethod
    def rejected(cls, message: str) -> "ToolResult":
        return cls(status=ToolStatus.REJECTED, message=message)

    @classmethod
    def failed(cls, message: str) -> "ToolResult":
        return cls(status=ToolStatus.FAILED, message=message)

    @property
    def ok(self) -> bool:
        return self.status is ToolStatus.OK

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"ok": self.ok, "status": self.status.value}
        if self.ok:
            result["data"] = self.data
            if self.message:
                result["message"] = self.message
        else:
            result["error"] = self.message or "unknown_error"
        return result

    def to_text(self) -> str:
        """Render the outcome the way the model reads it."""
        if not self.ok:
            return self.message or "unknown_error"
        if isinstance(self.data, str):
            return self.data
        if not self.data:
            return self.message or ""
        return json.dumps(self.data, indent=2, default=str)


@dataclass
class ToolContext:
    """Context passed to tool handlers during execution."""

    session: "AgentSession"
    default_row_limit: int = 100
    max_row_limit: int = 500


class EmptyInput(BaseModel):
    """Input model for tools that take no arguments."""


Handler = Callable[[BaseModel, ToolContext], ToolResult]


@dataclass
class ToolSpec:
    """Specification for a registered tool."""

    name: str
    description: str
    input_model: type[BaseModel]
    handler: Handler | None = None

    @property
    def requires_confirmation(self) -> bool:
        return self.handler is None

    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema()


class ToolRegistry:
    """Registry of available tools."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}
        # Implementations of confirmation-required tools, keyed by tool name.
        self.executions: dict[str, Handler] = {}

    def register(
        self,
        name: str,
        *,
        description: str,
        input_model: type[BaseModel],
        handler: Handler | None = None,
    ) -> None:
        """Register a tool with the registry.

        Leave ``handler`` unset for tools that need human confirmation and put
        their implementation in ``executions`` instead.
        """
        self._tools[name] = ToolSpec(
            name=name,
            description=description,
            input_model=input_model,
            handler=handler,
        )
        logger.debug("Registered tool: %s", name)

    def get(self, name: str) -> ToolSpec | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[str]:
        """List all registered tool names."""
        return list(self._tools.keys())

    def function_specs(self) -> list[dict[str, Any]]:
        """OpenAI-style function definitions for every registered tool."""
        return [
            {
                "type": "function",
                "function": {
                    "name": spec.name,
                    "description": spec.description,
                    "parameters": spec.input_schema(),
                },
            }
            for spec in self._tools.values()
        ]

    def execute(
        self,
        name: str,
        arguments: dict[str, Any] | None,
        ctx: ToolContext,
        *,
        confirmed: bool = False,
    ) -> ToolResult:
        """Validate arguments and execute a tool by name."""
        tool = self._tools.get(name)
        if not tool:
            return ToolResult.rejected(f"unknown_tool: {name}")

        handler = tool.handler
        if handler is None:
            if not confirmed:
                return ToolResult.rejected(f"confirmation_required: {name}")
            handler = self.executions.get(name)
            if handler is None:
                return ToolResult.failed(f"no_execution: {name}")

        try:
            params = tool.input_model.model_validate(arguments or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
            )
            return ToolResult.rejected(f"invalid_arguments: {problems}")

        try:
            return handler(params, ctx)
        except Exception as e:
            logger.exception("Tool %s failed", name)
            return ToolResult.failed(f"execution_error: {e}")


# Global registry instance
_registry: ToolRegistry | None = None


def get_registry() -> ToolRegistry:
    """Get the global tool registry, initializing if needed."""
    global _registry
    if _registry is None:
        _registry = ToolRegistry()
        _register_default_tools(_registry)
    return _registry


def _register_default_tools(registry: ToolRegistry) -> None:
    """Register the default set of tools."""
    from . import database, local_time, scheduling, weather

    weather.register(registry)
    local_time.register(registry)
    scheduling.register(registry)
    database.register(registry)


def execute_tool(name: str, arguments: dict[str, Any] | None, ctx: ToolContext) -> ToolResult:
    """Execute a tool by name using the global registry."""
    return get_registry().execute(name, arguments, ctx)
