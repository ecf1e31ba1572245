# src/taskflow/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import render_view
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except Exception:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _prompt(state: AppState) -> str:
    user = state.session.user
    who = user.user_id if user else "guest"
    draft = "*" if state.forms.is_open else ""
    return f"{who}{draft}> "


async def run_console_loop(state: AppState) -> None:
    """
    Read-eval-print loop over slash commands.

    Commands run one at a time; each awaited to completion before the next prompt,
    so the same form can never be submitted twice concurrently.
    """
    app_name = str(getattr(state.settings, "app_name", "TaskFlow"))
    logger.info("Console connector started (backend=%s).", getattr(state.settings, "backend", "?"))
    _print_ts(f"[{app_name}] Use /help for commands. Use /exit to quit.\n")

    if state.session.is_authenticated:
        print(render_view(state))
    else:
        _print_ts("Not signed in. Use /login <user> [password].")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (e.g., remote sign-in)
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            prompt = _prompt(state)
            user_input = input(prompt).strip()
            _rewrite_prev_line(f"[{_ts_local()}] {prompt}{user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is None:
            response = "Commands start with '/'. Use /help to list available commands."
        print(f"[{_ts_local()}] {response}\n")

    logger.info("Console connector finished.")
