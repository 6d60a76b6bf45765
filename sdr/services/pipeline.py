from __future__ import annotations

import logging
from dataclasses import dataclass

from sdr.app.domain.models import ParsedRecipe, Tutorial, TutorialStatus

from .errors import InvalidURLError, NotSoundDesignError, ServiceError
from .parser import RecipeParser
from .persist_supabase import SupabaseTutorialRepository
from .tiktok import TikTokService, extract_video_id, validate_url
from .transcription import TranscriptionService
from .types import VideoInfo

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    tutorial: Tutorial
    created: bool


class TranscribePipeline:
    """
    URL -> audio -> transcription -> recipe -> database, for one request.

    The components are shared, read-only handles; all per-request state lives
    in the local variables of ``run``.
    """

    def __init__(
        self,
        tiktok: TikTokService,
        transcriber: TranscriptionService,
        parser: RecipeParser,
        repository: SupabaseTutorialRepository,
    ) -> None:
        self.tiktok = tiktok
        self.transcriber = transcriber
        self.parser = parser
        self.repository = repository

    def run(self, url: str) -> PipelineResult:
        if not validate_url(url):
            raise InvalidURLError(f"Not a TikTok video URL: {url}")

        logger.info("Step 1: extracting audio url=%s", url)
        try:
            video = self.tiktok.extract_audio(url)
        except ServiceError:
            self.tiktok.cleanup(extract_video_id(url))
            raise

        try:
            logger.info("Extracted video: id=%s, creator=%s", video.video_id, video.creator_handle)
            return self._process(url, video)
        finally:
            self.tiktok.cleanup(video.video_id)

    def _find_existing(self, video_id: str) -> Tutorial | None:
        try:
            return self.repository.get_tutorial_by_video_id(video_id)
        except ServiceError as error:
            logger.warning("Idempotency lookup failed, continuing: video_id=%s error=%s", video_id, error)
            return None

    def _process(self, url: str, video: VideoInfo) -> PipelineResult:
        existing = self._find_existing(video.video_id)
        if existing is not None:
            logger.info("Tutorial already exists: id=%s", existing.id)
            return PipelineResult(tutorial=existing, created=False)

        logger.info("Step 2: transcribing audio path=%s", video.audio_path)
        transcription = self.transcriber.transcribe(video.audio_path)

        logger.info("Step 3: parsing transcription chars=%d", len(transcription))
        recipe = self.parser.parse(transcription, video.creator_name)

        if not recipe.is_sound_design:
            raise NotSoundDesignError(f"Video {video.video_id} is not a sound design tutorial")

        logger.info("Step 4: saving to database video_id=%s", video.video_id)
        tutorial = self._persist(url, video, transcription, recipe)
        return PipelineResult(tutorial=tutorial, created=True)

    def _persist(self, url: str, video: VideoInfo, transcription: str, recipe: ParsedRecipe) -> Tutorial:
        creator = self.repository.get_or_create_creator(video.creator_handle, video.creator_name)

        saved = self.repository.create_tutorial(
            Tutorial(
                creator_id=creator.id,
                tiktok_url=url,
                tiktok_video_id=video.video_id,
                title=recipe.title,
                sound_type=recipe.sound_type,
                raw_transcription=transcription,
                status=TutorialStatus.PENDING,
            )
        )

        try:
            self.repository.create_instructions(saved.id, recipe.instructions)
        except ServiceError as error:
            # The tutorial row is already durable; a partial step list is acceptable.
            logger.error("Failed to create instructions: tutorial=%s error=%s", saved.id, error)

        try:
            complete = self.repository.get_tutorial_with_instructions(saved.id)
        except ServiceError as error:
            logger.warning("Reload failed, returning saved tutorial: tutorial=%s error=%s", saved.id, error)
            complete = saved

        complete.creator = creator
        logger.info("Tutorial saved successfully: id=%s", saved.id)
        return complete
