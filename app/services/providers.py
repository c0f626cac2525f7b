from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import openai
from openai import AsyncOpenAI

from app.core.config import Settings
from app.core.errors import ProviderError
from app.services.prompts import ArticleLength, length_config

logger = logging.getLogger(__name__)

class GenerationProvider(ABC):
    """Text, image and speech generation as one injectable capability."""

    @abstractmethod
    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        length: ArticleLength = ArticleLength.MEDIUM,
    ) -> str:
        """
        Generate the article reply.

        Args:
            system_prompt: Role instructions for the model
            user_prompt: The research prompt
            length: Article length, selects token budget and temperature

        Returns:
            Raw reply text, expected to hold a JSON object
        """

    @abstractmethod
    async def generate_image(self, prompt: str) -> str:
        """Generate one image and return its (short-lived) URL."""

    @abstractmethod
    async def synthesize_speech(self, text: str) -> bytes:
        """Synthesize ``text`` and return MP3 bytes."""

def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, (openai.APITimeoutError, openai.APIConnectionError, openai.RateLimitError)):
        return True
    if isinstance(exc, openai.APIStatusError):
        return exc.status_code >= 500
    return False

class OpenAIProvider(GenerationProvider):
    """OpenAI chat completions, images and speech."""

    def __init__(
        self,
        api_key: str,
        text_model: str = "gpt-4o",
        image_model: str = "dall-e-3",
        image_size: str = "1024x1024",
        tts_model: str = "tts-1",
        tts_voice: str = "alloy",
        base_url: Optional[str] = None,
    ) -> None:
        # Retries and deadlines are applied by the caller
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        self.text_model = text_model
        self.image_model = image_model
        self.image_size = image_size
        self.tts_model = tts_model
        self.tts_voice = tts_voice
        self.total_tokens = 0
        self.api_calls = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIProvider":
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY is not set; generation requests will fail")
        return cls(
            api_key=settings.openai_api_key,
            text_model=settings.text_model,
            image_model=settings.image_model,
            image_size=settings.image_size,
            tts_model=settings.tts_model,
            tts_voice=settings.tts_voice,
        )

    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        length: ArticleLength = ArticleLength.MEDIUM,
    ) -> str:
        cfg = length_config(length)
        self.api_calls += 1
        try:
            response = await self.client.chat.completions.create(
                model=self.text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
                temperature=cfg.temperature,
                max_tokens=cfg.max_tokens,
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"text generation failed: {e}", stage="text", retryable=_is_retryable(e)) from e

        if response.usage:
            self.total_tokens += response.usage.total_tokens
            logger.debug(
                "Completion used %d tokens (%d calls, %d tokens so far)",
                response.usage.total_tokens, self.api_calls, self.total_tokens,
            )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProviderError("text provider returned an empty completion", stage="text")
        return content

    async def generate_image(self, prompt: str) -> str:
        self.api_calls += 1
        try:
            response = await self.client.images.generate(
                model=self.image_model,
                prompt=prompt,
                n=1,
                size=self.image_size,
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"image generation failed: {e}", stage="image", retryable=_is_retryable(e)) from e

        url = response.data[0].url if response.data else None
        if not url:
            raise ProviderError("image provider returned no URL", stage="image")
        return url

    async def synthesize_speech(self, text: str) -> bytes:
        self.api_calls += 1
        try:
            response = await self.client.audio.speech.create(
                model=self.tts_model,
                voice=self.tts_voice,
                input=text,
                response_format="mp3",
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"speech synthesis failed: {e}", stage="audio", retryable=_is_retryable(e)) from e

        audio = response.content
        if not audio:
            raise ProviderError("speech provider returned no audio", stage="audio")
        return audio
