"""
Export and live-preview endpoints.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.deps import get_cancel_token
from api.rate_limiter import limiter, rate_limit_config
from api.schemas.export import ErrorResponse, ExportRequest, PreviewRequest, PreviewResponse
from config.logging_config import get_logger
from stepdoc import render, render_preview
from stepdoc.exceptions import (
    ExportCancelledError,
    InvalidDocumentError,
    InvalidOptionsError,
    StepDocError,
)
from stepdoc.models import Document, ExportOptions, Screenshot
from stepdoc.progress import CancellationToken

logger = get_logger(__name__)

router = APIRouter(tags=["Export"])

# Seconds between client-disconnect checks while an export runs
DISCONNECT_POLL_INTERVAL = 0.5


def _error(status_code: int, exc: StepDocError) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=ErrorResponse(error=type(exc).__name__, message=exc.message, context=exc.context).model_dump(),
    )


async def _run_until_disconnect(request: Request, token: CancellationToken, func, *args):
    """Run ``func`` in a worker thread, cancelling ``token`` if the client goes away."""
    task = asyncio.ensure_future(asyncio.to_thread(func, *args))
    while not task.done():
        done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
        if done:
            break
        if await request.is_disconnected():
            token.cancel("client disconnected")
    return task.result()


@router.post(
    "/api/export",
    responses={
        400: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        499: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
@limiter.limit(rate_limit_config.get_limit("export"))
async def export_document(
    request: Request,
    body: ExportRequest,
    token: CancellationToken = Depends(get_cancel_token),
):
    """
    Render a document to PDF, HTML or a training bundle.

    Returns the file with a Content-Disposition attachment header.
    422 for a malformed document, 400 for invalid options, 500 when
    rendering fails.
    """
    try:
        document = Document.from_dict(body.document)
    except InvalidDocumentError as e:
        raise _error(422, e)

    try:
        options = ExportOptions.from_dict(body.options)
    except InvalidOptionsError as e:
        raise _error(400, e)

    try:
        result = await _run_until_disconnect(request, token, render, document, options, token)
    except InvalidOptionsError as e:
        raise _error(400, e)
    except ExportCancelledError as e:
        logger.info(f"Export of {document.id} cancelled: {e}")
        raise _error(499, e)
    except StepDocError as e:
        logger.error(f"Export of {document.id} failed: {e}")
        raise _error(500, e)

    logger.info(f"Exported {result.filename} ({result.size} bytes)")
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@router.post("/api/preview", response_model=PreviewResponse)
@limiter.limit(rate_limit_config.get_limit("preview"))
async def preview_screenshot(request: Request, body: PreviewRequest):
    """Composite a screenshot's callouts and return a PNG data URI"""
    try:
        screenshot = Screenshot.from_dict(body.screenshot)
    except InvalidDocumentError as e:
        raise HTTPException(status_code=422, detail=f"Invalid screenshot: {e}")

    data_url = await asyncio.to_thread(render_preview, screenshot, body.framed)
    return PreviewResponse(screenshot_id=screenshot.id, data_url=data_url)
