# src/taskflow/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, restores the auth session, loads tasks
for an authenticated user, then runs the console REPL on an asyncio loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import locale
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.task_api import load_entities

logger = logging.getLogger(__name__)


async def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await state.backend.aclose()
    except Exception:
        logger.debug("Backend close failed.", exc_info=True)


async def _run(state: AppState) -> None:
    try:
        nav = await state.session.restore()
        logger.debug("Session restore -> %s", nav.route.value)
        if state.session.is_authenticated:
            await load_entities(state)
        await run_console_loop(state)
    finally:
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    # locale-aware title sorting; stay on the C locale if the user's one is unavailable
    with contextlib.suppress(locale.Error):
        locale.setlocale(locale.LC_COLLATE, "")

    logger.info("Starting %s...", settings.app_name)
    logger.debug("Full log: %s", log_file)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
