from __future__ import annotations

import logging
from pathlib import Path

import httpx

from .errors import TranscriptionServiceError

logger = logging.getLogger(__name__)

GROQ_API_URL = "https://api.groq.com/openai/v1/audio/transcriptions"
GROQ_MODEL = "whisper-large-v3-turbo"
RESPONSE_FORMAT = "json"


class TranscriptionService:
    """Speech-to-text through Groq's Whisper endpoint."""

    def __init__(
        self,
        client: httpx.Client,
        api_key: str,
        api_url: str = GROQ_API_URL,
        model: str = GROQ_MODEL,
    ) -> None:
        self._client = client
        self.api_key = api_key
        self.api_url = api_url
        self.model = model

    def _post_audio(self, path: Path) -> httpx.Response:
        try:
            with path.open("rb") as audio_file:
                return self._client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    data={"model": self.model, "response_format": RESPONSE_FORMAT},
                    files={"file": (path.name, audio_file, "application/octet-stream")},
                )
        except OSError as error:
            raise TranscriptionServiceError(f"Failed to open audio file: {error}") from error
        except httpx.TimeoutException as error:
            raise TranscriptionServiceError(f"Transcription request timed out: {error}") from error
        except httpx.HTTPError as error:
            raise TranscriptionServiceError(f"Failed to send transcription request: {error}") from error

    def transcribe(self, audio_path: str | Path) -> str:
        path = Path(audio_path)
        response = self._post_audio(path)

        if response.status_code != httpx.codes.OK:
            raise TranscriptionServiceError(
                f"Groq API error (status {response.status_code}): {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as error:
            raise TranscriptionServiceError(f"Failed to parse transcription response: {error}") from error

        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise TranscriptionServiceError("Transcription response has no text field")

        logger.info("Transcription complete: path=%s, chars=%d", path.name, len(text))
        return text
