"""
PromptDash Core - Gemini Developer API Integration.

Model gateway for command interpretation: one prompt in, raw text out.
Uses the Gemini Developer API (API key).
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from promptdash.config import GeminiSettings, get_settings
from promptdash.exceptions import (
    ConfigurationMissingException,
    PromptDashException,
    UpstreamUnavailableException,
)
from promptdash.observability.usage_ledger import TokenUsage, UsageLedger, estimate_tokens

logger = logging.getLogger(__name__)


PROMPT_ENDPOINT = "/api/prompt"


@dataclass(frozen=True)
class GatewayResult:
    """Raw model output plus accounting."""

    text: str
    model: str
    input_tokens: int
    output_tokens: int
    latency_ms: float


class TextGenerationGateway(ABC):
    """Interface for the external text-generation service."""

    model: str

    @abstractmethod
    def ensure_configured(self) -> None:
        """Raise ConfigurationMissingException if credentials are absent."""
        pass

    @abstractmethod
    async def generate(self, prompt: str) -> GatewayResult:
        """Send one prompt, return the raw text."""
        pass


class GeminiGateway(TextGenerationGateway):
    """
    Gemini-backed gateway.

    Every attempted call is recorded in the usage ledger, failed ones with
    status "error". The client is created lazily on first use.
    """

    SERVICE_NAME = "Gemini"

    def __init__(
        self,
        settings: GeminiSettings | None = None,
        ledger: UsageLedger | None = None,
        endpoint: str = PROMPT_ENDPOINT,
    ):
        self.settings = settings or get_settings().gemini
        self.ledger = ledger
        self.endpoint = endpoint
        self.model = self.settings.model
        self._client = None

    def ensure_configured(self) -> None:
        if not self.settings.api_key:
            raise ConfigurationMissingException(
                "GEMINI_API_KEY",
                hint="Set GEMINI_API_KEY in the environment (or .env) and restart the service.",
            )

    def _get_client(self):
        if self._client is not None:
            return self._client

        from google import genai
        from google.genai import types

        self._client = genai.Client(
            api_key=self.settings.api_key,
            http_options=types.HttpOptions(timeout=int(self.settings.timeout_seconds * 1000)),
        )
        logger.info(f"Gemini client initialized (model={self.model})")
        return self._client

    async def _call(self, prompt: str) -> Any:
        from google.genai import types

        client = self._get_client()
        return await client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=self.settings.temperature,
                response_mime_type="application/json",
            ),
        )

    async def generate(self, prompt: str) -> GatewayResult:
        """
        Call Gemini once.

        Raises:
            ConfigurationMissingException: If GEMINI_API_KEY is empty (no call made)
            UpstreamUnavailableException: On timeout, transport or API errors
        """
        self.ensure_configured()

        estimated_input = estimate_tokens(prompt)
        start_time = time.perf_counter()

        try:
            response = await asyncio.wait_for(self._call(prompt), timeout=self.settings.timeout_seconds)
        except asyncio.TimeoutError as exc:
            self._record(estimated_input, 0, start_time, status="error")
            logger.warning(f"Gemini call timed out after {self.settings.timeout_seconds}s")
            raise UpstreamUnavailableException(
                self.SERVICE_NAME, f"timed out after {self.settings.timeout_seconds}s"
            ) from exc
        except PromptDashException:
            self._record(estimated_input, 0, start_time, status="error")
            raise
        except Exception as e:
            self._record(estimated_input, 0, start_time, status="error")
            logger.error(f"Gemini call failed: {e}")
            raise UpstreamUnavailableException(self.SERVICE_NAME, str(e)) from e

        text = getattr(response, "text", None) or ""
        usage = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage, "prompt_token_count", None) or estimated_input
        output_tokens = getattr(usage, "candidates_token_count", None) or estimate_tokens(text)

        latency_ms = self._record(input_tokens, output_tokens, start_time, status="ok")
        logger.info(f"Gemini responded in {latency_ms:.0f}ms ({input_tokens} in / {output_tokens} out)")

        return GatewayResult(
            text=text,
            model=self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            latency_ms=latency_ms,
        )

    def _record(self, input_tokens: int, output_tokens: int, start_time: float, status: str) -> float:
        latency_ms = round((time.perf_counter() - start_time) * 1000, 1)
        if self.ledger is not None:
            self.ledger.record(
                TokenUsage(
                    endpoint=self.endpoint,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                    model=self.model,
                    latency_ms=latency_ms,
                    status=status,
                )
            )
        return latency_ms


__all__ = ["GatewayResult", "GeminiGateway", "PROMPT_ENDPOINT", "TextGenerationGateway"]
