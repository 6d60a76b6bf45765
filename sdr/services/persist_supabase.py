from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, TypeVar

import httpx
from postgrest.exceptions import APIError
from pydantic import BaseModel, ValidationError
from supabase import Client

from sdr.app.domain.models import Creator, ParsedInstruction, Tutorial, TutorialStatus

from .errors import PersistenceError, TutorialNotFoundError
from .persist_models import CreatorRecord, InstructionRecord, TutorialRecord

logger = logging.getLogger(__name__)

CREATORS_TABLE = "creators"
TUTORIALS_TABLE = "tutorials"
INSTRUCTIONS_TABLE = "instructions"
TUTORIAL_WITH_RELATIONS = "*, creator:creators(*), instructions(*)"
UNIQUE_VIOLATION = "23505"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _now_utc() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first_row(data: Any) -> dict[str, Any] | None:
    if isinstance(data, list) and data:
        return data[0]
    if isinstance(data, dict) and data:
        return data
    return None


def _search_term(query: str) -> str:
    # characters with meaning in PostgREST or-filters and ilike patterns
    return re.sub(r'[,()%*\\"]', " ", query).strip()


def _parse_row(model: type[ModelT], row: dict[str, Any], operation: str) -> ModelT:
    try:
        return model.model_validate(row)
    except ValidationError as error:
        raise PersistenceError(operation, f"unexpected row shape: {error}") from error


def _parse_tutorial(row: dict[str, Any], operation: str) -> Tutorial:
    tutorial = _parse_row(Tutorial, row, operation)
    if tutorial.instructions:
        tutorial.instructions.sort(key=lambda item: item.step_number)
    return tutorial


class SupabaseTutorialRepository:
    """
    Creators, tutorials and instructions stored through the Supabase REST API.

    Every store failure surfaces as ``PersistenceError`` naming the operation.
    """

    def __init__(self, client: Client):
        self._client = client

    def _execute(self, operation: str, query) -> Any:
        try:
            return query.execute().data
        except APIError as error:
            raise PersistenceError(operation, str(error.message), code=error.code) from error
        except httpx.HTTPError as error:
            raise PersistenceError(operation, str(error)) from error

    def _find_creator(self, handle: str) -> Creator | None:
        data = self._execute(
            "find_creator",
            self._client.table(CREATORS_TABLE).select("*").eq("tiktok_handle", handle).limit(1),
        )
        row = _first_row(data)
        return _parse_row(Creator, row, "find_creator") if row else None

    def get_or_create_creator(self, handle: str, display_name: str) -> Creator:
        existing = self._find_creator(handle)
        if existing:
            return existing

        record = CreatorRecord(tiktok_handle=handle, display_name=display_name, created_at=_now_utc())
        try:
            data = self._execute(
                "create_creator",
                self._client.table(CREATORS_TABLE).insert(record.model_dump()),
            )
        except PersistenceError as error:
            # Lost the race to a concurrent first submission for the same handle.
            if error.code != UNIQUE_VIOLATION:
                raise
            winner = self._find_creator(handle)
            if winner is None:
                raise
            logger.info("Creator inserted concurrently, reusing: handle=%s, id=%s", handle, winner.id)
            return winner

        row = _first_row(data)
        if row is None:
            raise PersistenceError("create_creator", "no creator returned after insert")

        creator = _parse_row(Creator, row, "create_creator")
        logger.info("Created creator: id=%s, handle=%s", creator.id, handle)
        return creator

    def get_tutorial_by_video_id(self, video_id: str) -> Tutorial | None:
        """Existing tutorial for a video, with the same relations a fresh save returns."""
        query = (
            self._client.table(TUTORIALS_TABLE)
            .select(TUTORIAL_WITH_RELATIONS)
            .eq("tiktok_video_id", video_id)
            .limit(1)
        )
        data = self._execute("find_tutorial", query)
        row = _first_row(data)
        return _parse_tutorial(row, "find_tutorial") if row else None

    def create_tutorial(self, tutorial: Tutorial) -> Tutorial:
        now = _now_utc()
        record = TutorialRecord(
            creator_id=tutorial.creator_id,
            tiktok_url=tutorial.tiktok_url,
            tiktok_video_id=tutorial.tiktok_video_id,
            title=tutorial.title,
            sound_type=tutorial.sound_type,
            raw_transcription=tutorial.raw_transcription,
            status=TutorialStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        data = self._execute(
            "create_tutorial",
            self._client.table(TUTORIALS_TABLE).insert(record.model_dump()),
        )
        row = _first_row(data)
        if row is None:
            raise PersistenceError("create_tutorial", "no tutorial returned after insert")

        saved = _parse_tutorial(row, "create_tutorial")
        logger.info("Created tutorial: id=%s, video_id=%s", saved.id, saved.tiktok_video_id)
        return saved

    def create_instructions(self, tutorial_id: str, instructions: Iterable[ParsedInstruction]) -> None:
        for instruction in sorted(instructions, key=lambda item: item.step_number):
            record = InstructionRecord(
                tutorial_id=tutorial_id,
                step_number=instruction.step_number,
                description=instruction.description,
                ableton_device=instruction.ableton_device,
                parameters=instruction.parameters,
                notes=instruction.notes,
            )
            self._execute(
                f"create_instruction_{instruction.step_number}",
                self._client.table(INSTRUCTIONS_TABLE).insert(record.model_dump()),
            )

    def get_tutorial_with_instructions(self, tutorial_id: str) -> Tutorial:
        data = self._execute(
            "get_tutorial",
            self._client.table(TUTORIALS_TABLE).select(TUTORIAL_WITH_RELATIONS).eq("id", tutorial_id).limit(1),
        )
        row = _first_row(data)
        if row is None:
            raise TutorialNotFoundError(tutorial_id)
        return _parse_tutorial(row, "get_tutorial")

    def list_tutorials(
        self,
        status: Optional[TutorialStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Tutorial]:
        query = self._client.table(TUTORIALS_TABLE).select(TUTORIAL_WITH_RELATIONS)
        if status is not None:
            query = query.eq("status", TutorialStatus(status).value)
        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)

        data = self._execute("list_tutorials", query) or []
        return [_parse_tutorial(row, "list_tutorials") for row in data]

    def search_tutorials(self, query: str, limit: int = 20, offset: int = 0) -> list[Tutorial]:
        """Case-insensitive substring match on title or sound type, newest first."""
        term = _search_term(query)
        if not term:
            return []

        pattern = f"%{term}%"
        request = (
            self._client.table(TUTORIALS_TABLE)
            .select(TUTORIAL_WITH_RELATIONS)
            .or_(f"title.ilike.{pattern},sound_type.ilike.{pattern}")
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
        )
        data = self._execute("search_tutorials", request) or []
        return [_parse_tutorial(row, "search_tutorials") for row in data]
