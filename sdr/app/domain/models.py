# sdr/app/domain/models.py
"""
Domain models for sound design tutorials.
Field names follow the columns of the creators/tutorials/instructions tables.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TutorialStatus(str, Enum):
    """Review status of a tutorial. Transitions happen outside this service."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Creator(BaseModel):
    """A TikTok creator, created lazily on first submission."""
    model_config = ConfigDict(extra="ignore")

    id: str
    tiktok_handle: str
    display_name: str = ""
    avatar_url: Optional[str] = None
    is_claimed: bool = False
    created_at: Optional[datetime] = None


class Instruction(BaseModel):
    """A single step of a sound design recipe."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    tutorial_id: Optional[str] = None
    step_number: int
    description: str
    ableton_device: Optional[str] = None
    parameters: Optional[dict[str, str]] = None
    notes: Optional[str] = None
    screenshot_url: Optional[str] = None


class Tutorial(BaseModel):
    """
    A transcribed TikTok video.

    ``creator`` and ``instructions`` are only populated when the tutorial is
    read back with its relations embedded.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    creator_id: str
    tiktok_url: str
    tiktok_video_id: str
    title: str
    sound_type: str = ""
    raw_transcription: str = ""
    status: TutorialStatus = TutorialStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    creator: Optional[Creator] = None
    instructions: Optional[list[Instruction]] = None


class ParsedInstruction(BaseModel):
    model_config = ConfigDict(strict=True)

    step_number: int
    description: str
    ableton_device: Optional[str] = None
    parameters: Optional[dict[str, str]] = None
    notes: Optional[str] = None


class ParsedRecipe(BaseModel):
    """Structured output of the LLM. Validated strictly, nothing is coerced."""
    model_config = ConfigDict(strict=True)

    title: str
    sound_type: str
    creator_name: str = ""
    is_sound_design: bool
    instructions: list[ParsedInstruction] = Field(default_factory=list)
