# /portal_dashboard/services/session_service.py

"""
Login, logout and user refresh against the portal's auth endpoints.

The controller owns the service's signed-in `SessionContext`, replaces it on
every change, and writes each new value through the injected store. The
dashboard core never reads this value directly: the routers hand it over
explicitly when a request carries no bearer token of its own.

The auth-effect windows (welcome overlay, logout fade) are driven through
`AuthEffectsMachine`, so callers can observe them without any timers of
their own.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from ..core import config
from ..core.auth_effects import LOGOUT_FADE_SECONDS, AsyncioScheduler, AuthEffectsMachine, Scheduler
from ..core.session import JsonFileSessionStore, SessionContext
from .portal_api import PortalAPIClient, PortalAPIError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[SessionContext], PortalAPIClient]


class SessionController:
    def __init__(
        self,
        store: JsonFileSessionStore,
        scheduler: Scheduler,
        client_factory: ClientFactory = PortalAPIClient,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.store = store
        self.client_factory = client_factory
        self.effects = AuthEffectsMachine(scheduler)
        self.sleep = sleep
        self.session = store.load()

    def _replace(self, session: SessionContext) -> SessionContext:
        self.session = session
        self.store.save(session)
        return session

    async def _call(self, session: SessionContext, method: str, *args: Any) -> Any:
        """Runs one portal call on a short-lived client bound to `session`."""
        client = self.client_factory(session)
        try:
            return await getattr(client, method)(*args)
        finally:
            client.close()

    async def login(self, credentials: Dict[str, Any]) -> SessionContext:
        # 1. OPEN THE EFFECT WINDOW: the presentation layer shows its spinner.
        self.effects.begin_login()
        try:
            # 2. AUTHENTICATE: the login call never carries a stale bearer token.
            data = await self._call(self.session.cleared(), "login", credentials)
            if not isinstance(data, dict) or not data.get("token"):
                raise PortalAPIError("Login response did not include a token.")
        except Exception:
            self.effects.login_failed()
            raise

        # 3. PERSIST & ANNOUNCE: store the new session, then start the welcome window.
        session = self._replace(self.session.with_auth(data["token"], data.get("user"), data.get("profile")))
        logger.info("Signed in as %s", (session.user or {}).get("name", "unknown user"))
        self.effects.login_succeeded()
        return session

    async def logout(self) -> SessionContext:
        self.effects.begin_logout()
        # The fade-out plays before the credentials disappear.
        await self.sleep(LOGOUT_FADE_SECONDS)
        session = self._replace(self.session.cleared())
        self.effects.session_ended()
        return session

    async def refresh_user(self) -> Optional[SessionContext]:
        """
        Re-reads the signed-in user. A portal error (an expired token answers
        401) ends the session; returns None when there is no usable session.
        """
        if not self.session.is_authenticated:
            return None
        try:
            data = await self._call(self.session, "get_me")
        except PortalAPIError as e:
            logger.warning("Session refresh failed (%s), signing out.", e.message)
            await self.logout()
            return None

        data = data if isinstance(data, dict) else {}
        return self._replace(self.session.with_user(data.get("user"), data.get("profile")))

    def toggle_dark_mode(self) -> SessionContext:
        return self._replace(self.session.with_dark_mode(not self.session.darkMode))


def create_session_controller(path: Optional[str] = None) -> SessionController:
    """A controller wired to the configured session file and the running event loop."""
    return SessionController(JsonFileSessionStore(path or config.SESSION_STORE_PATH), AsyncioScheduler())


# --- Dependency Provider ---
# One controller per process, created on first use. Routers receive it through
# `Depends(get_session_controller)`, and tests override that dependency.
_controller: Optional[SessionController] = None


def get_session_controller() -> SessionController:
    global _controller
    if _controller is None:
        _controller = create_session_controller()
    return _controller
