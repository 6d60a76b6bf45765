# sdr/app/responses.py
"""
JSON envelopes shared by every route: ``{"success": bool, "message": str, ...}``.
"""
from __future__ import annotations

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from sdr.app.schemas.transcribe import TranscribeResponse
from sdr.services.errors import (
    FetchFailedError,
    InvalidURLError,
    NotSoundDesignError,
    PersistenceError,
    RecipeParseError,
    ServiceError,
    TranscriptionServiceError,
    TutorialNotFoundError,
)

INTERNAL_ERROR_MESSAGE = "Internal server error"

_ERROR_RESPONSES: tuple[tuple[type[ServiceError], int, str], ...] = (
    (InvalidURLError, status.HTTP_400_BAD_REQUEST, "Invalid TikTok URL"),
    (NotSoundDesignError, status.HTTP_400_BAD_REQUEST, "This video doesn't appear to be a sound design tutorial"),
    (TutorialNotFoundError, status.HTTP_404_NOT_FOUND, "Tutorial not found"),
    (FetchFailedError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to extract audio from TikTok"),
    (TranscriptionServiceError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to transcribe audio"),
    (RecipeParseError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to parse transcription"),
)


def respond_json(status_code: int, payload: BaseModel) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json", exclude_none=True))


def respond_error(status_code: int, message: str) -> JSONResponse:
    return respond_json(status_code, TranscribeResponse(success=False, message=message))


def error_for(error: Exception) -> tuple[int, str]:
    """Status code and caller-safe message for an exception. Never echoes error detail."""
    for error_type, status_code, message in _ERROR_RESPONSES:
        if isinstance(error, error_type):
            return status_code, message

    if isinstance(error, PersistenceError):
        if error.operation.endswith("_creator"):
            return status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save creator"
        if error.operation.startswith("create_"):
            return status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save tutorial"
        return status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to load tutorials"

    return status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE
