"""
OpenAI provider adapter.
"""

import logging
import os
from typing import Any, Dict

import openai
from openai import AsyncOpenAI

from .base import BaseProviderAdapter, Completion
from readiness_analytics.infrastructure.constants.llm_constants import (
    ENV_OPENAI_API_KEY,
    OPENAI_MAX_TOKENS,
    OPENAI_MODEL_NAME,
    OPENAI_TEMPERATURE,
)
from readiness_analytics.schemas import ProviderErrorKind
from readiness_analytics.services.llm.exceptions import ProviderError
from readiness_analytics.services.llm.retry import to_provider_error

logger = logging.getLogger(__name__)


class OpenAIAdapter(BaseProviderAdapter):
    """
    OpenAI chat completions in JSON mode.
    """

    provider_name = "openai"

    def __init__(self, config: Dict[str, Any]):
        config.setdefault("model", OPENAI_MODEL_NAME)
        config.setdefault("temperature", OPENAI_TEMPERATURE)
        config.setdefault("max_tokens", OPENAI_MAX_TOKENS)

        # Get API key from config or environment
        if not config.get("api_key"):
            config["api_key"] = os.getenv(ENV_OPENAI_API_KEY, "")

        super().__init__(config)

    def _get_client(self) -> Any:
        """Get or create the OpenAI client."""
        if self._client is None:
            if not self.config.api_key:
                raise ProviderError(
                    "OpenAI API key is not configured",
                    kind=ProviderErrorKind.AUTH,
                )
            # Retries are owned by the batch orchestrator
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
            logger.info("Initialized OpenAI client")
        return self._client

    async def _complete(self, system_instruction: str, prompt: str) -> Completion:
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as e:
            raise ProviderError(str(e) or "OpenAI request timed out", kind=ProviderErrorKind.TIMEOUT) from e
        except openai.APIConnectionError as e:
            raise ProviderError(str(e) or "OpenAI connection failed", kind=ProviderErrorKind.UNAVAILABLE) from e
        except openai.APIStatusError as e:
            logger.error(f"OpenAI returned status {e.status_code}: {e}")
            raise to_provider_error(e, status_code=e.status_code) from e
        except openai.OpenAIError as e:
            logger.error(f"Error calling OpenAI: {e}")
            raise to_provider_error(e) from e

        tokens = response.usage.total_tokens if response.usage else 0
        if not response.choices:
            raise ProviderError(
                "OpenAI returned no choices",
                kind=ProviderErrorKind.MALFORMED_RESPONSE,
                tokens_used=tokens,
            )
        return Completion(text=response.choices[0].message.content or "", tokens_used=tokens)
