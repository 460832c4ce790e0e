"""Adapter around the hosted AI service.

This module provides :class:`ColoringAIClient`, the only component that talks
to the AI provider.  It consumes exactly two capabilities:

1. **Describe** — a vision chat completion that turns the uploaded photo into
   a detailed text description.
2. **Generate** — an image generation call that turns the outline prompt
   built from that description into a single square image, returned as a URL.

Key Responsibilities
--------------------
- **Hard timeouts** — each call is wrapped in :func:`asyncio.wait_for`.  On
  expiry the awaiting task is cancelled, which aborts the underlying HTTP
  request instead of leaving it running in the background.
- **No retries** — the SDK client is created with ``max_retries=0``; a
  failure or timeout fails the request immediately.
- **Response validation** — an empty description, or a generation result
  without a usable URL, is a hard failure.
- **Lazy client creation** — the ``AsyncOpenAI`` client is built on first
  use so the application can start without credentials; a missing key then
  surfaces as a per-request :class:`AIServiceError`.

Usage
-----
::

    from coloringpage.core.ai_client import ColoringAIClient
    from coloringpage.core.config import config

    ai = ColoringAIClient(config)
    description = await ai.describe_image(photo_bytes, "image/jpeg")
    url = await ai.generate_outline(description)
    await ai.close()
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Protocol

import openai
from openai import AsyncOpenAI

from coloringpage.core.config import ColoringPageConfig
from coloringpage.core.prompts import DESCRIBE_PROMPT, build_outline_prompt
from coloringpage.core.results import AIServiceError, AIServiceTimeoutError

logger = logging.getLogger(__name__)


class ColoringService(Protocol):
    """The two AI capabilities the pipeline depends on."""

    async def describe_image(self, data: bytes, content_type: str) -> str: ...

    async def generate_outline(self, description: str) -> str: ...


class ColoringAIClient:
    """OpenAI-backed implementation of :class:`ColoringService`.

    Attributes:
        _config (ColoringPageConfig):
            Model names, token limit, image size and timeouts.
        _client (AsyncOpenAI | None):
            The SDK client, or ``None`` until first use.
    """

    def __init__(self, config: ColoringPageConfig, client: AsyncOpenAI | None = None) -> None:
        """Initialise the adapter.

        Args:
            config: Application configuration.
            client: Pre-built SDK client.  Tests pass a stand-in object here;
                in production it is left as ``None`` and created lazily.
        """
        self._config = config
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._config.openai_api_key,
                base_url=self._config.openai_base_url,
                max_retries=0,
            )
        return self._client

    async def describe_image(self, data: bytes, content_type: str = "image/jpeg") -> str:
        """Ask the vision model for a coloring-book oriented description.

        Args:
            data: Raw bytes of the uploaded image.
            content_type: MIME type used in the embedded data URL.

        Returns:
            The description text, stripped of surrounding whitespace.

        Raises:
            AIServiceTimeoutError: If the call exceeds ``describe_timeout``.
            AIServiceError: If the call fails or returns no text.
        """
        timeout = self._config.describe_timeout
        encoded = base64.b64encode(data).decode("ascii")

        logger.info("Requesting image description (model=%s, %d bytes).", self._config.vision_model, len(data))

        try:
            client = self._get_client()
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self._config.vision_model,
                    messages=[
                        {
                            "role": "user",
                            "content": [
                                {"type": "text", "text": DESCRIBE_PROMPT},
                                {
                                    "type": "image_url",
                                    "image_url": {"url": f"data:{content_type};base64,{encoded}"},
                                },
                            ],
                        }
                    ],
                    max_tokens=self._config.vision_max_tokens,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise AIServiceTimeoutError(f"Vision analysis timed out after {timeout:g} seconds") from e
        except openai.OpenAIError as e:
            raise AIServiceError(f"Vision analysis failed: {e}") from e

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not isinstance(content, str) or not content.strip():
            raise AIServiceError("No description returned by the vision model")

        description = content.strip()
        logger.info("Image description received (%d chars).", len(description))
        return description

    async def generate_outline(self, description: str) -> str:
        """Generate one square coloring-page image from a description.

        Args:
            description: Text returned by :meth:`describe_image`.

        Returns:
            Remote URL of the generated image.

        Raises:
            AIServiceTimeoutError: If the call exceeds ``generate_timeout``.
            AIServiceError: If the call fails or no result carries a URL.
        """
        timeout = self._config.generate_timeout

        logger.info(
            "Requesting outline generation (model=%s, size=%s).",
            self._config.image_model,
            self._config.image_size,
        )

        try:
            client = self._get_client()
            response = await asyncio.wait_for(
                client.images.generate(
                    model=self._config.image_model,
                    prompt=build_outline_prompt(description),
                    n=1,
                    size=self._config.image_size,
                    response_format="url",
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise AIServiceTimeoutError(f"Image generation timed out after {timeout:g} seconds") from e
        except openai.OpenAIError as e:
            raise AIServiceError(f"Image generation failed: {e}") from e

        results = getattr(response, "data", None) or []
        url = getattr(results[0], "url", None) if results else None
        if not url:
            raise AIServiceError("No response from the image generation API")

        logger.info("Outline image generated.")
        return url

    async def close(self) -> None:
        """Release the SDK client's connection pool, if one was created."""
        if self._client is not None:
            await self._client.close()
            self._client = None
