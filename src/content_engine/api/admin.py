"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from content_engine.containers import AppContainer
    from content_engine.domain.sessions import Session

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(request: Request, limit: int = 20) -> dict[str, object]:
    """Return live sessions, newest first."""
    container: AppContainer = request.app.state.container
    sessions = container.session_store.list_sessions()[:limit]
    return {"sessions": [_session_summary(session) for session in sessions]}


@router.get("/workflow", dependencies=[Depends(require_admin)])
async def workflow_status(request: Request) -> dict[str, object]:
    """Report whether the processing workflow host is reachable."""
    container: AppContainer = request.app.state.container
    healthy = await container.workflow_client.check_health()
    return {"workflow": "ok" if healthy else "unavailable"}


def _session_summary(session: Session) -> dict[str, object]:
    return {
        "id": session.id,
        "user_id": session.user_id,
        "state": session.state.value,
        "style": session.selected_style.value if session.selected_style else None,
        "preset": session.selected_preset.value if session.selected_preset else None,
        "angle": session.selected_angle.value if session.selected_angle else None,
        "reference_count": len(session.auxiliary_media_refs),
        "attempt_count": session.attempt_count,
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
    }
