from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from sdr.app.deps import get_repository
from sdr.app.domain.models import TutorialStatus
from sdr.app.responses import error_for, respond_error, respond_json
from sdr.app.schemas.transcribe import TranscribeResponse, TutorialListResponse
from sdr.services.errors import ServiceError, TutorialNotFoundError
from sdr.services.persist_supabase import SupabaseTutorialRepository

log = logging.getLogger("tutorials")
router = APIRouter(prefix="/api/tutorials", tags=["tutorials"])


@router.get("", response_model=TutorialListResponse)
async def list_tutorials(
    status_filter: TutorialStatus | None = Query(default=None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    repository: SupabaseTutorialRepository = Depends(get_repository),
) -> JSONResponse:
    try:
        tutorials = await run_in_threadpool(repository.list_tutorials, status_filter, limit, offset)
    except ServiceError as exc:
        log.exception("tutorials.list_fail status=%s", status_filter)
        return respond_error(*error_for(exc))

    return respond_json(
        status.HTTP_200_OK,
        TutorialListResponse(tutorials=tutorials, limit=limit, offset=offset),
    )


# Registered before /{tutorial_id} so "search" is not parsed as an id.
@router.get("/search", response_model=TutorialListResponse)
async def search_tutorials(
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    repository: SupabaseTutorialRepository = Depends(get_repository),
) -> JSONResponse:
    try:
        tutorials = await run_in_threadpool(repository.search_tutorials, q, limit, offset)
    except ServiceError as exc:
        log.exception("tutorials.search_fail q=%s", q)
        return respond_error(*error_for(exc))

    log.info("tutorials.search q=%s hits=%d", q, len(tutorials))
    return respond_json(
        status.HTTP_200_OK,
        TutorialListResponse(tutorials=tutorials, limit=limit, offset=offset),
    )


@router.get("/{tutorial_id}", response_model=TranscribeResponse)
async def get_tutorial(
    tutorial_id: UUID,
    repository: SupabaseTutorialRepository = Depends(get_repository),
) -> JSONResponse:
    try:
        tutorial = await run_in_threadpool(repository.get_tutorial_with_instructions, str(tutorial_id))
    except TutorialNotFoundError as exc:
        return respond_error(*error_for(exc))
    except ServiceError as exc:
        log.exception("tutorials.get_fail tutorial=%s", tutorial_id)
        return respond_error(*error_for(exc))

    return respond_json(
        status.HTTP_200_OK,
        TranscribeResponse(success=True, message="Tutorial found", tutorial=tutorial),
    )
