# src/taskflow/auth/session.py

"""
Authentication session state machine.

States: anonymous -> authenticating -> authenticated (and back on logout/failure).
Each transition returns exactly one Navigation target; the intended post-login
destination travels as a Route value, never re-derived from path strings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from ..core.errors import AuthError
from ..core.ports import AuthProvider
from .providers import AuthUser

logger = logging.getLogger(__name__)


class AuthState(StrEnum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class Route(StrEnum):
    HOME = "/"
    DASHBOARD = "/dashboard"
    LOGIN = "/login"
    SIGNUP = "/signup"
    ERROR = "/error"


PUBLIC_ROUTES = frozenset({Route.HOME, Route.LOGIN, Route.SIGNUP, Route.ERROR})


@dataclass(slots=True, frozen=True)
class Navigation:
    route: Route
    redirect: Route | None = None
    message: str | None = None


class AuthSession:
    def __init__(self, provider: AuthProvider) -> None:
        self._provider = provider
        self.state = AuthState.ANONYMOUS
        self.user: AuthUser | None = None
        self._intended: Route | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.state == AuthState.AUTHENTICATED

    # ---- transitions ----

    def _become_authenticated(self, user: AuthUser) -> Navigation:
        self.state = AuthState.AUTHENTICATED
        self.user = user
        destination = self._intended or Route.DASHBOARD
        self._intended = None
        logger.info("Authenticated user=%s -> %s", user.user_id, destination.value)
        return Navigation(route=destination)

    def _become_anonymous(self, message: str | None = None) -> Navigation:
        self.state = AuthState.ANONYMOUS
        self.user = None
        return Navigation(route=Route.LOGIN, redirect=self._intended, message=message)

    def require(self, route: Route) -> Navigation | None:
        """Guard for protected routes. Returns a redirect to login, or None when access is allowed."""
        if route in PUBLIC_ROUTES or self.is_authenticated:
            return None
        self._intended = route
        return Navigation(route=Route.LOGIN, redirect=route)

    async def restore(self) -> Navigation:
        self.state = AuthState.AUTHENTICATING
        try:
            user = await self._provider.restore_session()
        except AuthError:
            logger.exception("Session restore failed")
            return self._become_anonymous("Authentication failed.")
        if user is None:
            return self._become_anonymous()
        return self._become_authenticated(user)

    async def login(self, username: str, password: str = "", *, destination: Route | None = None) -> Navigation:
        if destination is not None:
            self._intended = destination
        if self.is_authenticated and self.user is not None:
            return self._become_authenticated(self.user)

        self.state = AuthState.AUTHENTICATING
        try:
            user = await self._provider.login(username, password)
        except AuthError as e:
            logger.warning("Login failed: %s", e)
            return self._become_anonymous("Authentication failed.")
        if user is None:
            return self._become_anonymous("Invalid credentials.")
        return self._become_authenticated(user)

    async def logout(self) -> Navigation:
        """On provider failure the session stays as it was."""
        try:
            await self._provider.logout()
        except AuthError:
            logger.exception("Logout failed")
            return Navigation(route=Route.DASHBOARD, message="Logout failed")
        self._intended = None
        return self._become_anonymous("Successfully logged out")
