# sdr/app/deps.py
"""
Long-lived provider clients, built once at startup and shared by every request.
"""
from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request
from supabase import Client, create_client

from sdr.app.config import Settings
from sdr.services.parser import RecipeParser
from sdr.services.persist_supabase import SupabaseTutorialRepository
from sdr.services.pipeline import TranscribePipeline
from sdr.services.tiktok import TikTokService
from sdr.services.transcription import TranscriptionService


@dataclass
class Services:
    pipeline: TranscribePipeline
    repository: SupabaseTutorialRepository
    http_client: httpx.Client | None = None

    def close(self) -> None:
        if self.http_client is not None:
            self.http_client.close()


def build_services(settings: Settings) -> Services:
    http_client = httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)
    supabase: Client = create_client(settings.supabase_url, settings.SUPABASE_ANON_KEY)

    repository = SupabaseTutorialRepository(supabase)
    pipeline = TranscribePipeline(
        tiktok=TikTokService(settings.DOWNLOAD_DIR),
        transcriber=TranscriptionService(
            http_client,
            api_key=settings.GROQ_API_KEY,
            api_url=settings.GROQ_API_URL,
            model=settings.GROQ_MODEL,
        ),
        parser=RecipeParser(
            http_client,
            api_key=settings.CLAUDE_API_KEY,
            api_url=settings.CLAUDE_API_URL,
            model=settings.CLAUDE_MODEL,
            max_tokens=settings.CLAUDE_MAX_TOKENS,
            lenient_json=settings.LLM_LENIENT_JSON,
        ),
        repository=repository,
    )
    return Services(pipeline=pipeline, repository=repository, http_client=http_client)


def get_pipeline(request: Request) -> TranscribePipeline:
    return request.app.state.services.pipeline


def get_repository(request: Request) -> SupabaseTutorialRepository:
    return request.app.state.services.repository
