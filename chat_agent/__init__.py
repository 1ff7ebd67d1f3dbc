"""Tools for a chat agent whose session state lives in SQLite.

Design goals:
- Tools take the session explicitly; nothing reads an ambient "current agent".
- Every tool outcome is a ToolResult, never an exception the model has to see.
- SQL from the model only runs behind the read-only query guard.
"""

__version__ = "0.1.0"
