# /portal_dashboard/routers/auth_router.py

"""
This module defines the API for the service's signed-in portal session.

It includes endpoints for:
- Signing in against the portal (`/login`)
- Signing out, including the logout fade window (`/logout`)
- Re-reading the current user's profile (`/me`)
- Toggling the dark-mode preference (`/preferences/dark-mode`)

Every response is a `SessionView`, which also reports the current auth effect
(`idle`, `authenticating`, `justAuthenticated`, `endingSession`) so a client
can play the matching transition. The session logic itself lives in
`session_service`; this router only translates its errors into HTTP errors.
"""

from fastapi import APIRouter, Depends, HTTPException, status

# --- Application-specific Imports ---
from ..core.auth_effects import InvalidTransition
from ..models.auth_model import LoginRequest, SessionView
from ..services.portal_api import PortalAPIError
from ..services.session_service import SessionController, get_session_controller

# --- Router Initialization ---
router = APIRouter()


def _view(controller: SessionController) -> SessionView:
    return SessionView.from_session(controller.session, controller.effects.state)


@router.post("/login", response_model=SessionView)
async def login(credentials: LoginRequest, controller: SessionController = Depends(get_session_controller)):
    """
    Signs in with the portal and stores the resulting session.

    A rejected login keeps the portal's own message; any other portal failure
    is reported as a bad gateway.
    """
    try:
        await controller.login(credentials.model_dump(exclude_none=True))
    except InvalidTransition as e:
        # A logout is still playing out; the client should retry afterwards.
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PortalAPIError as e:
        if e.is_unauthorized:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=e.message,
                headers={"WWW-Authenticate": "Bearer"},
            )
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return _view(controller)


@router.post("/logout", response_model=SessionView)
async def logout(controller: SessionController = Depends(get_session_controller)):
    """Clears the stored credentials; the theme preference survives."""
    await controller.logout()
    return _view(controller)


@router.get("/me", response_model=SessionView)
async def read_current_user(controller: SessionController = Depends(get_session_controller)):
    """
    Refreshes the signed-in user from the portal.

    If the portal no longer accepts the stored token the session is ended
    and the caller gets a 401.
    """
    session = await controller.refresh_user()
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _view(controller)


@router.post("/preferences/dark-mode", response_model=SessionView)
async def toggle_dark_mode(controller: SessionController = Depends(get_session_controller)):
    controller.toggle_dark_mode()
    return _view(controller)
