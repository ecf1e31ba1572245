# src/taskflow/core/theme.py

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

DARK_MODE_KEY = "darkMode"


class ThemePreference:
    """Dark-mode flag persisted in local storage; the default applies until the user toggles."""

    def __init__(self, storage: Any, *, default_dark: bool = False) -> None:
        self._storage = storage
        saved = storage.get_item(DARK_MODE_KEY)
        self._dark = saved if isinstance(saved, bool) else bool(default_dark)

    @property
    def is_dark(self) -> bool:
        return self._dark

    def toggle(self) -> bool:
        self._dark = not self._dark
        self._storage.set_item(DARK_MODE_KEY, self._dark)
        logger.debug("Dark mode -> %s", self._dark)
        return self._dark
