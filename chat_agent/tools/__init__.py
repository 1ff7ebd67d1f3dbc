"""Tool registry and tool implementations for the chat agent."""

from __future__ import annotations

from .registry import ToolContext, ToolRegistry, ToolResult, ToolStatus, execute_tool, get_registry

__all__ = ["ToolContext", "ToolRegistry", "ToolResult", "ToolStatus", "execute_tool", "get_registry"]
