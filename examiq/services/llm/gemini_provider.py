"""Google Gemini LLM provider implementation."""
import logging
from typing import Any, Dict, List, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from examiq.errors import BackendError
from examiq.services.content_generator.schemas import OutputContract
from examiq.services.llm.base import LLMMessage, LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


def _to_gemini_schema(schema: Any) -> Any:
    """Strip JSON schema keywords the Gemini response schema does not accept."""
    if isinstance(schema, dict):
        return {
            key: _to_gemini_schema(value)
            for key, value in schema.items()
            if key != "additionalProperties"
        }
    if isinstance(schema, list):
        return [_to_gemini_schema(item) for item in schema]
    return schema


class GeminiProvider(LLMProvider):
    """Google Gemini implementation of LLM provider."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gemini-2.5-pro",
        temperature: float = 0.4,
        max_tokens: Optional[int] = None,
    ):
        if not api_key or not api_key.strip():
            raise ValueError("GEMINI_API_KEY is not configured")

        self.client = genai.Client(api_key=api_key)
        self.default_model = default_model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def _generate(self, contents: str, config: types.GenerateContentConfig) -> LLMResponse:
        response = await self.client.aio.models.generate_content(
            model=self.default_model,
            contents=contents,
            config=config,
        )
        usage = getattr(response, "usage_metadata", None)
        finish_reason = "stop"
        if response.candidates and response.candidates[0].finish_reason:
            finish_reason = str(response.candidates[0].finish_reason)
        return LLMResponse(
            content=response.text or "",
            tokens_used=(getattr(usage, "total_token_count", 0) or 0) if usage else 0,
            model=self.default_model,
            finish_reason=finish_reason,
        )

    async def generate_text(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> LLMResponse:
        """Generate text using Gemini.

        System messages become the system instruction; the remaining
        messages are sent as the conversation contents.
        """
        system_parts = [msg.content for msg in messages if msg.role == "system"]
        contents = "\n\n".join(msg.content for msg in messages if msg.role != "system")

        config_args: Dict[str, Any] = {"temperature": temperature, **kwargs}
        if system_parts:
            config_args["system_instruction"] = "\n\n".join(system_parts)
        if max_tokens is not None:
            config_args["max_output_tokens"] = max_tokens

        return await self._generate(contents, types.GenerateContentConfig(**config_args))

    async def complete(
        self,
        prompt: str,
        system_instruction: str,
        contract: OutputContract,
    ) -> str:
        """Generate text, using Gemini's JSON response schema for typed contracts."""
        config_args: Dict[str, Any] = {}
        if contract.is_typed:
            config_args["response_mime_type"] = "application/json"
            config_args["response_schema"] = _to_gemini_schema(contract.json_schema)

        messages = [
            LLMMessage(role="system", content=system_instruction),
            LLMMessage(role="user", content=prompt),
        ]
        try:
            response = await self.generate_text(
                messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                **config_args,
            )
        except genai_errors.ServerError as e:
            raise BackendError(f"Gemini request failed: {e}", transient=True) from e
        except genai_errors.APIError as e:
            raise BackendError(f"Gemini request failed ({e.code}): {e.message}", transient=e.code == 429) from e
        except httpx.HTTPError as e:
            raise BackendError(f"Gemini transport error: {e}", transient=True) from e

        return response.content
