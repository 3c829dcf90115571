"""One-shot endpoints: analyse and clean an article without keeping a session."""

import logging

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.models.request import AnalyzeRequest
from app.models.response import AnalyzeResponse
from app.services.changes import build_changes
from app.services.session import EmptyInputError, Session

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(tags=["Clean"])

DOWNLOAD_FILENAME = "cleaned-article.html"


def _run(body: AnalyzeRequest) -> Session:
    """Load *body* into a throwaway session and apply its policy."""
    session = Session()
    try:
        session.load(body.html, body.domain)
    except EmptyInputError as exc:
        logger.warning("Rejected empty input")
        raise HTTPException(status_code=400, detail=str(exc))
    if body.policy == "keep_all":
        session.keep_all()
    return session


def html_download(html: str, download: bool) -> Response:
    headers = {}
    if download:
        headers["Content-Disposition"] = f'attachment; filename="{DOWNLOAD_FILENAME}"'
    return Response(content=html, media_type="text/html", headers=headers)


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Analyse an article's links and return the cleaned markup",
)
@limiter.limit("30/minute")
def analyze_article(request: Request, body: AnalyzeRequest) -> AnalyzeResponse:
    logger.info("Analyze request received", extra={"domain": body.domain, "policy": body.policy})
    session = _run(body)
    result = session.clean()
    return AnalyzeResponse(
        stats=session.stats,
        warnings=session.warnings,
        links=session.links,
        groups=session.groups,
        clean_html=result.html,
        changes=build_changes(session.links, result.target_self_removed),
        is_clean=session.is_clean,
    )


@router.post(
    "/clean",
    summary="Return the cleaned article as HTML",
    description=(
        "Runs the same pipeline as `POST /analyze` and returns only the "
        "cleaned markup as `text/html`.\n\n"
        f"Pass `?download=true` to receive it as `{DOWNLOAD_FILENAME}`."
    ),
    response_class=Response,
)
@limiter.limit("30/minute")
def clean_article(
    request: Request,
    body: AnalyzeRequest,
    download: bool = Query(default=False, description="Send as a file attachment."),
) -> Response:
    session = _run(body)
    return html_download(session.clean().html, download)
