from __future__ import annotations

import logging
import re

import httpx
from pydantic import BaseModel, Field, ValidationError

from sdr.app.domain.models import ParsedRecipe

from .errors import RecipeParseError
from .prompt import build_prompt

logger = logging.getLogger(__name__)

CLAUDE_API_URL = "https://api.anthropic.com/v1/messages"
CLAUDE_MODEL = "claude-sonnet-4-20250514"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 2048

CODE_FENCE_PATTERN = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


class ClaudeMessage(BaseModel):
    role: str
    content: str


class ClaudeRequest(BaseModel):
    model: str
    max_tokens: int
    messages: list[ClaudeMessage]


class ClaudeContentBlock(BaseModel):
    type: str = "text"
    text: str = ""


class ClaudeResponse(BaseModel):
    content: list[ClaudeContentBlock] = Field(default_factory=list)


def strip_code_fence(text: str) -> str:
    match = CODE_FENCE_PATTERN.match(text)
    return match.group(1) if match else text


class RecipeParser:
    """Turns a raw transcription into a ParsedRecipe through the Claude Messages API."""

    def __init__(
        self,
        client: httpx.Client,
        api_key: str,
        api_url: str = CLAUDE_API_URL,
        model: str = CLAUDE_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        lenient_json: bool = False,
    ) -> None:
        self._client = client
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.max_tokens = max_tokens
        self.lenient_json = lenient_json

    def _build_request(self, transcription: str, creator_name: str) -> ClaudeRequest:
        return ClaudeRequest(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[ClaudeMessage(role="user", content=build_prompt(transcription, creator_name))],
        )

    def _send(self, request: ClaudeRequest) -> ClaudeResponse:
        try:
            response = self._client.post(
                self.api_url,
                headers={
                    "x-api-key": self.api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                    "content-type": "application/json",
                },
                json=request.model_dump(),
            )
        except httpx.TimeoutException as error:
            raise RecipeParseError(f"Claude request timed out: {error}") from error
        except httpx.HTTPError as error:
            raise RecipeParseError(f"Failed to send Claude request: {error}") from error

        if response.status_code != httpx.codes.OK:
            raise RecipeParseError(f"Claude API error (status {response.status_code}): {response.text}")

        try:
            return ClaudeResponse.model_validate_json(response.content)
        except ValidationError as error:
            raise RecipeParseError(f"Failed to parse Claude response: {error}") from error

    def _decode_recipe(self, text: str) -> ParsedRecipe:
        if self.lenient_json:
            text = strip_code_fence(text)
        try:
            return ParsedRecipe.model_validate_json(text)
        except ValidationError as error:
            raise RecipeParseError(f"Failed to parse recipe JSON: {error} (response: {text})") from error

    def parse(self, transcription: str, creator_name: str) -> ParsedRecipe:
        claude_response = self._send(self._build_request(transcription, creator_name))

        if not claude_response.content:
            raise RecipeParseError("Empty response from Claude")

        recipe = self._decode_recipe(claude_response.content[0].text)
        logger.info(
            "Parsed recipe: title=%s, sound_type=%s, is_sound_design=%s, steps=%d",
            recipe.title,
            recipe.sound_type,
            recipe.is_sound_design,
            len(recipe.instructions),
        )
        return recipe
