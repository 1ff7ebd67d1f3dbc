from __future__ import annotations

import json
import sqlite3
from typing import NoReturn

import click
import typer
from dotenv import load_dotenv

from chat_agent import __version__
from chat_agent.config import ConfigError, ToolsConfig, find_config_path, load_config, with_db_path
from chat_agent.logging_utils import configure_logging
from chat_agent.session import LocalSession
from chat_agent.storage import SqliteStorage
from chat_agent.tools import ToolContext, ToolResult, get_registry
from chat_agent.tools.database import QUERY_TOOL, SCHEMA_TOOL


def run(argv: list[str]) -> int:
    load_dotenv()

    app = typer.Typer(
        add_completion=False,
        help="chat-agent tools CLI (runs agent tools against a local SQLite session)",
        invoke_without_command=True,
        no_args_is_help=True,
    )

    def _die(msg: str, code: int = 2) -> NoReturn:
        typer.echo(f"ERROR: {msg}", err=True)
        raise typer.Exit(code=code)

    def _load(ctx: typer.Context) -> ToolsConfig:
        path = find_config_path(ctx.obj.get("config"))
        cfg = load_config(path)
        return with_db_path(cfg, ctx.obj.get("db"))

    def _invoke(ctx: typer.Context, name: str, arguments: dict, *, confirmed: bool = False) -> None:
        cfg = _load(ctx)
        with SqliteStorage(cfg.db_path) as storage:
            tool_ctx = ToolContext(
                session=LocalSession(storage),
                default_row_limit=cfg.default_row_limit,
                max_row_limit=cfg.max_row_limit,
            )
            result: ToolResult = get_registry().execute(name, arguments, tool_ctx, confirmed=confirmed)
        if result.ok:
            typer.echo(result.to_text())
            raise typer.Exit(code=0)
        typer.echo(result.to_text(), err=True)
        raise typer.Exit(code=1)

    @app.callback()
    def _root(
        ctx: typer.Context,
        config: str | None = typer.Option(None, "--config", help="Path to config YAML"),
        db: str | None = typer.Option(None, "--db", help="SQLite database path (overrides config)"),
        verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Enable debug logging"),
        version: bool = typer.Option(False, "--version", help="Print version and exit"),
    ) -> None:
        if version:
            typer.echo(__version__)
            raise typer.Exit(code=0)
        configure_logging(verbose)
        ctx.obj = {"config": config, "db": db}

    @app.command("tools")
    def _tools(
        as_json: bool = typer.Option(False, "--json", help="Print OpenAI-style function specs"),
    ) -> None:
        registry = get_registry()
        if as_json:
            typer.echo(json.dumps(registry.function_specs(), indent=2))
            return
        for name in registry.list_tools():
            spec = registry.get(name)
            summary = spec.description.splitlines()[0] if spec and spec.description else ""
            flag = " (requires confirmation)" if spec and spec.requires_confirmation else ""
            typer.echo(f"{name}{flag}: {summary}")

    @app.command("schema")
    def _schema(ctx: typer.Context) -> None:
        _invoke(ctx, SCHEMA_TOOL, {})

    @app.command("query")
    def _query(
        ctx: typer.Context,
        sql: str = typer.Argument(..., help="SELECT statement to run"),
        limit: int | None = typer.Option(None, "--limit", help="Maximum rows to return"),
    ) -> None:
        arguments: dict = {"query": sql}
        if limit is not None:
            arguments["limit"] = limit
        _invoke(ctx, QUERY_TOOL, arguments)

    @app.command("call")
    def _call(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Tool name"),
        args: str = typer.Option("{}", "--args", help="Tool arguments as a JSON object"),
        confirm: bool = typer.Option(False, "--confirm", help="Confirm a tool that requires approval"),
    ) -> None:
        try:
            arguments = json.loads(args)
        except json.JSONDecodeError as e:
            _die(f"--args is not valid JSON: {e}")
        if not isinstance(arguments, dict):
            _die("--args must be a JSON object")
        _invoke(ctx, name, arguments, confirmed=confirm)

    # Execute without letting Click `sys.exit()`.
    command = typer.main.get_command(app)
    try:
        rv = command.main(args=argv, prog_name="chat-agent", standalone_mode=False)
        if isinstance(rv, int):
            return int(rv)
        return 0
    except ConfigError as e:
        typer.echo(f"ERROR: {e}", err=True)
        return 2
    except sqlite3.Error as e:
        typer.echo(f"ERROR: database: {e}", err=True)
        return 2
    except click.ClickException as e:
        e.show()
        return int(e.exit_code)
    except click.Abort:
        typer.echo("Aborted!", err=True)
        return 1
