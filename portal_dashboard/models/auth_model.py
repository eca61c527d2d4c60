# /portal_dashboard/models/auth_model.py

# --- Core Imports ---
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..core.auth_effects import AuthEffect
from ..core.session import SessionContext


class LoginRequest(BaseModel):
    """Credentials forwarded to the portal. Either `identifier` (email or username) or `email` is sent."""
    identifier: Optional[str] = Field(default=None, description="Email address or username.")
    email: Optional[str] = None
    password: str = Field(..., min_length=1)


class SessionView(BaseModel):
    """The signed-in session as the presentation layer sees it, with the current auth effect."""
    authenticated: bool
    token: Optional[str] = None
    user: Optional[Dict[str, Any]] = None
    profile: Optional[Dict[str, Any]] = None
    darkMode: bool = False
    authEffect: AuthEffect = AuthEffect.IDLE

    @classmethod
    def from_session(cls, session: SessionContext, effect: AuthEffect) -> "SessionView":
        return cls(
            authenticated=session.is_authenticated,
            token=session.token,
            user=session.user,
            profile=session.profile,
            darkMode=session.darkMode,
            authEffect=effect,
        )
