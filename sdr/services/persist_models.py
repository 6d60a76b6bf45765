# sdr/services/persist_models.py
from typing import Literal, Optional

from pydantic import BaseModel


class CreatorRecord(BaseModel):
    tiktok_handle: str
    display_name: str
    is_claimed: bool = False
    created_at: str


class TutorialRecord(BaseModel):
    creator_id: str
    tiktok_url: str
    tiktok_video_id: str
    title: str
    sound_type: str
    raw_transcription: str
    status: Literal["pending"] = "pending"
    created_at: str
    updated_at: str


class InstructionRecord(BaseModel):
    tutorial_id: str
    step_number: int
    description: str
    ableton_device: Optional[str] = None
    parameters: Optional[dict[str, str]] = None
    notes: Optional[str] = None
