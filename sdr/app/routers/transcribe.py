# sdr/app/routers/transcribe.py
from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from sdr.app.deps import get_pipeline
from sdr.app.responses import error_for, respond_error, respond_json
from sdr.app.schemas.transcribe import TranscribeRequest, TranscribeResponse
from sdr.services.errors import InvalidURLError, NotSoundDesignError, ServiceError
from sdr.services.pipeline import TranscribePipeline

log = logging.getLogger("transcribe")
router = APIRouter(prefix="/api", tags=["transcribe"])

CREATED_MESSAGE = "Tutorial transcribed and saved successfully"
EXISTING_MESSAGE = "Tutorial already exists"


@router.post("/transcribe", response_model=TranscribeResponse)
async def transcribe(
    body: TranscribeRequest,
    pipeline: TranscribePipeline = Depends(get_pipeline),
) -> JSONResponse:
    t0 = time.time()
    log.info("transcribe.start url=%s", body.url)
    try:
        result = await run_in_threadpool(pipeline.run, body.url)
    except (InvalidURLError, NotSoundDesignError) as exc:
        dt = time.time() - t0
        log.warning("transcribe.rejected url=%s reason=%s dt=%.2fs", body.url, exc, dt)
        return respond_error(*error_for(exc))
    except ServiceError as exc:
        dt = time.time() - t0
        log.exception("transcribe.fail url=%s dt=%.2fs", body.url, dt)
        return respond_error(*error_for(exc))

    dt = time.time() - t0
    if not result.created:
        log.info("transcribe.existing url=%s tutorial=%s dt=%.2fs", body.url, result.tutorial.id, dt)
        return respond_json(
            status.HTTP_200_OK,
            TranscribeResponse(success=True, message=EXISTING_MESSAGE, tutorial=result.tutorial),
        )

    log.info("transcribe.ok url=%s tutorial=%s dt=%.2fs", body.url, result.tutorial.id, dt)
    return respond_json(
        status.HTTP_201_CREATED,
        TranscribeResponse(success=True, message=CREATED_MESSAGE, tutorial=result.tutorial),
    )
