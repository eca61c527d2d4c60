# /portal_dashboard/core/session.py

"""
The explicit session context that replaces the browser's global token/user/
theme state.

A `SessionContext` is an immutable value: every change produces a new
instance, and the object is passed into the portal client and the dashboard
builder instead of being read from a hidden global. Persisting it anywhere is
the job of a separate adapter (`JsonFileSessionStore`), so the aggregation
core never touches disk.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class SessionContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: Optional[str] = Field(default=None, description="Bearer token issued by the portal API.")
    user: Optional[Dict[str, Any]] = Field(default=None)
    profile: Optional[Dict[str, Any]] = Field(default=None)
    darkMode: bool = Field(default=False)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def role(self) -> Optional[str]:
        return (self.user or {}).get("role")

    def with_auth(self, token: str, user: Optional[Dict[str, Any]], profile: Optional[Dict[str, Any]]) -> "SessionContext":
        return self.model_copy(update={"token": token, "user": user, "profile": profile})

    def with_user(self, user: Optional[Dict[str, Any]], profile: Optional[Dict[str, Any]]) -> "SessionContext":
        return self.model_copy(update={"user": user, "profile": profile})

    def cleared(self) -> "SessionContext":
        """Drops the credentials but keeps the theme preference."""
        return SessionContext(darkMode=self.darkMode)

    def with_dark_mode(self, enabled: bool) -> "SessionContext":
        return self.model_copy(update={"darkMode": enabled})


class JsonFileSessionStore:
    """Persists a SessionContext as a small JSON document on disk."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> SessionContext:
        if not os.path.exists(self.path):
            return SessionContext()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            return SessionContext.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return SessionContext()

    def save(self, session: SessionContext) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(session.model_dump(), f)

    def clear(self) -> None:
        """Removes stored credentials, keeping only the theme preference."""
        current = self.load()
        self.save(current.cleared())
