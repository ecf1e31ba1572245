# src/taskflow/connectors/notifier.py

from __future__ import annotations

import logging
from datetime import datetime

from ..core.ports import NotificationKind

logger = logging.getLogger(__name__)

_LABELS = {
    NotificationKind.SUCCESS: "OK",
    NotificationKind.ERROR: "ERROR",
}


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotifier:
    """Prints toasts as timestamped console lines."""

    def notify(self, message: str, kind: NotificationKind) -> None:
        label = _LABELS.get(kind, str(kind).upper())
        # Do NOT duplicate the user-facing message in INFO logs (it prints into console).
        logger.debug("notify kind=%s message=%s", kind, message)
        print(f"[{_ts_local()}] [{label}] {message}", flush=True)
