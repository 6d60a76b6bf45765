from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from sdr.app.domain.models import Tutorial


class TranscribeRequest(BaseModel):
    url: str


class TranscribeResponse(BaseModel):
    success: bool
    message: str
    tutorial: Optional[Tutorial] = None


class TutorialListResponse(BaseModel):
    success: bool = True
    tutorials: list[Tutorial]
    limit: int
    offset: int
