from __future__ import annotations

import sys


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    from chat_agent_cli.typer_app import run

    return run(argv)


if __name__ == "__main__":
    raise SystemExit(main())
