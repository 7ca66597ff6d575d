"""
Gemini provider adapter.
"""

import logging
import os
from typing import Any, Dict

import google.genai as genai
import httpx
from google.genai import errors as genai_errors
from google.genai import types

from .base import BaseProviderAdapter, Completion
from readiness_analytics.infrastructure.constants.llm_constants import (
    ENV_GEMINI_API_KEY,
    GEMINI_MAX_TOKENS,
    GEMINI_MODEL_NAME,
    GEMINI_TEMPERATURE,
    GEMINI_TOP_P,
)
from readiness_analytics.schemas import ProviderErrorKind
from readiness_analytics.services.llm.exceptions import ProviderError
from readiness_analytics.services.llm.retry import to_provider_error

logger = logging.getLogger(__name__)


class GeminiAdapter(BaseProviderAdapter):
    """
    Gemini generate_content with a JSON response mime type.
    """

    provider_name = "gemini"

    def __init__(self, config: Dict[str, Any]):
        config.setdefault("model", GEMINI_MODEL_NAME)
        config.setdefault("temperature", GEMINI_TEMPERATURE)
        config.setdefault("max_tokens", GEMINI_MAX_TOKENS)
        config.setdefault("top_p", GEMINI_TOP_P)

        # Get API key from config or environment
        if not config.get("api_key"):
            config["api_key"] = os.getenv(ENV_GEMINI_API_KEY, "")

        super().__init__(config)

    def _get_client(self) -> Any:
        """Get or create the Gemini client."""
        if self._client is None:
            if not self.config.api_key:
                raise ProviderError(
                    "Gemini API key is not configured",
                    kind=ProviderErrorKind.AUTH,
                )
            self._client = genai.Client(api_key=self.config.api_key)
            logger.info("Initialized Gemini client")
        return self._client

    async def _complete(self, system_instruction: str, prompt: str) -> Completion:
        client = self._get_client()
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_tokens,
            top_p=self.config.top_p,
            response_mime_type="application/json",
        )
        try:
            response = await client.aio.models.generate_content(
                model=self.config.model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as e:
            logger.error(f"Gemini returned status {e.code}: {e}")
            raise to_provider_error(e, status_code=e.code) from e
        except httpx.TimeoutException as e:
            raise ProviderError(str(e) or "Gemini request timed out", kind=ProviderErrorKind.TIMEOUT) from e
        except httpx.HTTPError as e:
            logger.error(f"Error reaching Gemini: {e}")
            raise ProviderError(str(e) or "Gemini connection failed", kind=ProviderErrorKind.UNAVAILABLE) from e

        usage = getattr(response, "usage_metadata", None)
        tokens = (usage.total_token_count or 0) if usage else 0
        return Completion(text=response.text or "", tokens_used=tokens)
