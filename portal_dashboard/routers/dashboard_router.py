# /portal_dashboard/routers/dashboard_router.py

# --- Core FastAPI Imports ---
from typing import Generator, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

# --- Service and Model Imports ---
from ..core.session import SessionContext
from ..models.dashboard_model import DashboardBundle
from ..services import dashboard_service
from ..services.dashboard_helpers.source_fetch import SnapshotUnavailableError
from ..services.portal_api import PortalAPIClient
from ..services.session_service import SessionController, get_session_controller

# --- Router Initialization ---
router = APIRouter()


def get_session_context(
    authorization: Optional[str] = Header(default=None),
    controller: SessionController = Depends(get_session_controller),
) -> SessionContext:
    """
    Builds the per-request session handed to the dashboard core.

    A bearer token on the request always wins. Without one, the service's own
    signed-in session (see `/api/auth/login`) is used; with neither the
    caller gets a 401.
    """
    if authorization:
        if not authorization.lower().startswith("bearer "):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authorization header must use the Bearer scheme.",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return SessionContext(token=authorization[len("bearer "):].strip())

    if controller.session.is_authenticated:
        return controller.session

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="A bearer token is required.",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_portal_client(session: SessionContext = Depends(get_session_context)) -> Generator[PortalAPIClient, None, None]:
    client = PortalAPIClient(session)
    try:
        yield client
    finally:
        client.close()


@router.get(
    "/{role}",
    response_model=DashboardBundle,
    summary="Get Dashboard Bundle",
    description="Aggregates the role's dashboard snapshot and secondary sources into one view-model.",
)
async def get_dashboard_bundle(role: str, client: PortalAPIClient = Depends(get_portal_client)):
    """
    Thin router layer: validate the role, delegate the aggregation cycle to
    the dashboard service, and translate its failures into HTTP errors.
    """
    # 1. VALIDATE: an unknown role is a missing resource, not a server error.
    try:
        dashboard_role = dashboard_service.parse_role(role)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    # 2. DELEGATE: one full aggregation cycle. Secondary-source failures are
    #    absorbed inside the service; only a failed snapshot reaches this point.
    try:
        return await dashboard_service.get_dashboard_bundle(client=client, role=dashboard_role)
    except SnapshotUnavailableError as e:
        # 3. TRANSLATE: a rejected token stays a 401, anything else is upstream trouble.
        if e.status_code == status.HTTP_401_UNAUTHORIZED:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
