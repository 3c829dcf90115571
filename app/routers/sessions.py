"""Stateful editing sessions driven by an external rendering surface.

A client creates a session from an article, then toggles individual links,
resynchronises flags in bulk, or re-runs a policy, and fetches the cleaned
markup whenever it needs it.  The preview endpoints expose the interactive
surface contract: the rendered page, its readiness signal, the surface's
edited body, and the message channel in both directions.
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, Response

from app.models.changes import ChangesReport
from app.models.preview import PreviewEdit, PreviewMessage
from app.models.request import BulkUpdateRequest, SessionRequest
from app.models.response import SessionResponse, SyncResponse, ToggleResponse
from app.routers.clean import html_download, limiter
from app.services.session import EmptyInputError, PreviewNotRenderedError, Session, store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def _get(session_id: str) -> Session:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found.")
    return session


def _summary(session: Session) -> SessionResponse:
    with session.lock:
        removed = session.removed_count
        return SessionResponse(
            id=session.id,
            stats=session.stats,
            warnings=session.warnings,
            links=session.links,
            groups=session.groups,
            kept=len(session.links) - removed,
            removed=removed,
            is_clean=removed == 0,
            preview_ready=session.preview.ready,
        )


@router.post("", response_model=SessionResponse, status_code=201, summary="Analyse an article")
@limiter.limit("30/minute")
def create_session(request: Request, body: SessionRequest) -> SessionResponse:
    """Create a session, analyse *html* and apply auto-strip."""
    session = store.create()
    try:
        session.load(body.html, body.domain)
    except EmptyInputError as exc:
        store.delete(session.id)
        logger.warning("Rejected empty input")
        raise HTTPException(status_code=400, detail=str(exc))
    return _summary(session)


@router.get("/{session_id}", response_model=SessionResponse)
def get_session(session_id: str) -> SessionResponse:
    return _summary(_get(session_id))


@router.delete("/{session_id}", status_code=204, summary="Discard a session (next article)")
def delete_session(session_id: str) -> Response:
    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found.")
    return Response(status_code=204)


@router.post("/{session_id}/auto-strip", response_model=SessionResponse)
def auto_strip(session_id: str) -> SessionResponse:
    session = _get(session_id)
    session.auto_strip()
    return _summary(session)


@router.post("/{session_id}/keep-all", response_model=SessionResponse)
def keep_all(session_id: str) -> SessionResponse:
    session = _get(session_id)
    session.keep_all()
    return _summary(session)


@router.post("/{session_id}/links/{link_id}/toggle", response_model=ToggleResponse)
def toggle_link(session_id: str, link_id: int) -> ToggleResponse:
    session = _get(session_id)
    with session.lock:
        link = session.toggle(link_id)
        if link is None:
            raise HTTPException(
                status_code=404, detail=f"No toggleable link with id {link_id}."
            )
        removed = session.removed_count
        return ToggleResponse(link=link, kept=len(session.links) - removed, removed=removed)


@router.put("/{session_id}/links", response_model=SyncResponse, summary="Bulk-set keep flags")
def sync_links(session_id: str, body: BulkUpdateRequest) -> SyncResponse:
    session = _get(session_id)
    with session.lock:
        changed = session.sync({u.id: u.keep for u in body.updates})
        removed = session.removed_count
        return SyncResponse(changed=changed, kept=len(session.links) - removed, removed=removed)


@router.get("/{session_id}/clean", response_class=Response, summary="Cleaned article HTML")
def get_clean(
    session_id: str,
    download: bool = Query(default=False, description="Send as a file attachment."),
) -> Response:
    return html_download(_get(session_id).clean().html, download)


@router.get("/{session_id}/changes", response_model=ChangesReport)
def get_changes(session_id: str) -> ChangesReport:
    return _get(session_id).changes()


@router.get("/{session_id}/preview", response_class=HTMLResponse, summary="Render the preview surface")
def get_preview(session_id: str) -> HTMLResponse:
    return HTMLResponse(_get(session_id).render_preview().html)


@router.put("/{session_id}/preview", status_code=204, summary="Store the surface's edited body")
def put_preview(session_id: str, body: PreviewEdit) -> Response:
    try:
        _get(session_id).update_surface(body.body_html)
    except PreviewNotRenderedError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return Response(status_code=204)


@router.post("/{session_id}/preview/ready", response_model=SessionResponse)
def preview_ready(session_id: str) -> SessionResponse:
    session = _get(session_id)
    session.handle_message(PreviewMessage(type="srlc-ready"))
    return _summary(session)


@router.post("/{session_id}/preview/messages", response_model=SessionResponse)
def post_message(session_id: str, message: PreviewMessage) -> SessionResponse:
    """Deliver a message from the surface (``srlc-toggle`` or ``srlc-ready``)."""
    session = _get(session_id)
    session.handle_message(message)
    return _summary(session)


@router.get("/{session_id}/preview/messages", response_model=List[PreviewMessage])
def drain_messages(session_id: str) -> List[PreviewMessage]:
    """Return and forget every message queued for the surface."""
    return _get(session_id).drain_messages()
