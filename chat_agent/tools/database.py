"""Database tools - schema discovery and read-only queries on the session store.

Both tools run against ``session.storage``; ``describe_schema`` and
``run_query`` take the storage handle directly so they can be used without a
registry or session.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from chat_agent.query_guard import (
    DEFAULT_ROW_LIMIT,
    MAX_ROW_LIMIT,
    RejectedOperation,
    guard_query,
)
from chat_agent.storage import SqlStorageLike

from .registry import EmptyInput, ToolContext, ToolRegistry, ToolResult

logger = logging.getLogger(__name__)

SCHEMA_TOOL = "get_database_schema"
QUERY_TOOL = "execute_sql_query"

SCHEMA_SQL = "SELECT name, sql FROM sqlite_master WHERE type='table' ORDER BY name"
DATABASE_LABEL = "SQLite"

NO_TABLES_MESSAGE = "No tables found in database."
NO_ROWS_MESSAGE = "Query executed successfully. No results returned."

QUERY_DESCRIPTION = """Execute a read-only SQLite query against the current chat's storage.

This is a SQLite 3.x database. Use standard SQLite syntax including:
- LIKE for text search: WHERE column LIKE '%search%'
- datetime() for date handling
- Aggregations: COUNT(*), SUM(), AVG(), MAX(), MIN()

Tip: Use get_database_schema first to see available tables and columns.

Only SELECT queries are allowed for security."""


class QueryInput(BaseModel):
    query: str = Field(description="SQLite SELECT query using standard SQLite 3.x syntax")
    limit: int | None = Field(
        default=None,
        ge=0,
        description=f"Maximum rows to return (default {DEFAULT_ROW_LIMIT}, max {MAX_ROW_LIMIT})",
    )


def _error_text(e: Exception) -> str:
    return str(e) or "Unknown error"


def describe_schema(storage: SqlStorageLike) -> ToolResult:
    """List every table with its CREATE statement, ordered by name."""
    try:
        tables = storage.exec(SCHEMA_SQL).to_array()
    except Exception as e:
        logger.exception("Schema error")
        return ToolResult.failed(f"Error getting schema: {_error_text(e)}")

    info: dict[str, Any] = {
        "database": DATABASE_LABEL,
        "tableCount": len(tables),
        "tables": [{"table": t["name"], "createStatement": t["sql"]} for t in tables],
    }
    if not tables:
        info["message"] = NO_TABLES_MESSAGE
    return ToolResult.success(info)


def run_query(
    storage: SqlStorageLike,
    query: str,
    limit: int | None = None,
    *,
    default_limit: int = DEFAULT_ROW_LIMIT,
    max_limit: int = MAX_ROW_LIMIT,
) -> ToolResult:
    """Guard ``query``, execute it and shape the rows for the model."""
    try:
        guarded = guard_query(query, limit, default_limit=default_limit, max_limit=max_limit)
    except RejectedOperation as e:
        logger.info("Rejected non-SELECT query")
        return ToolResult.rejected(str(e))

    try:
        rows = storage.exec(guarded.text).to_array()
    except Exception as e:
        logger.exception("SQL query error")
        return ToolResult.failed(f"SQL Error: {_error_text(e)}")

    if not rows:
        return ToolResult.success(
            {"rowCount": 0, "rows": [], "query": guarded.text, "message": NO_ROWS_MESSAGE},
        )
    return ToolResult.success({"rowCount": len(rows), "rows": rows, "query": guarded.text})


def _schema_handler(params: EmptyInput, ctx: ToolContext) -> ToolResult:
    return describe_schema(ctx.session.storage)


def _query_handler(params: QueryInput, ctx: ToolContext) -> ToolResult:
    return run_query(
        ctx.session.storage,
        params.query,
        params.limit,
        default_limit=ctx.default_row_limit,
        max_limit=ctx.max_row_limit,
    )


def register(registry: ToolRegistry) -> None:
    """Register the database tools with the registry."""
    registry.register(
        SCHEMA_TOOL,
        description="Get the schema of the current chat's SQLite database. "
        "Shows all tables and their column definitions.",
        input_model=EmptyInput,
        handler=_schema_handler,
    )
    registry.register(
        QUERY_TOOL,
        description=QUERY_DESCRIPTION,
        input_model=QueryInput,
        handler=_query_handler,
    )
