"""OpenAI LLM provider implementation."""
import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    BadRequestError,
    InternalServerError,
    RateLimitError,
)

from examiq.errors import BackendError
from examiq.services.content_generator.schemas import OutputContract
from examiq.services.llm.base import LLMMessage, LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


def _normalize_messages(messages: List[Any]) -> List[LLMMessage]:
    normalized: List[LLMMessage] = []
    for message in messages:
        if isinstance(message, LLMMessage):
            normalized.append(message)
            continue
        if isinstance(message, dict):
            role = str(message.get("role", "user"))
            content = str(message.get("content", ""))
            normalized.append(LLMMessage(role=role, content=content))
            continue
        raise TypeError("messages must be LLMMessage or dict entries")
    return normalized


def _to_responses_input(messages: List[LLMMessage]) -> List[Dict[str, Any]]:
    formatted: List[Dict[str, Any]] = []
    for message in messages:
        role = message.role if message.role in {"system", "user", "assistant"} else "user"
        formatted.append(
            {
                "role": role,
                "content": [{"type": "input_text", "text": message.content}],
            }
        )
    return formatted


def _extract_output_text(response: Any) -> str:
    if isinstance(response, dict):
        output_text = response.get("output_text")
    else:
        output_text = getattr(response, "output_text", None)
    if isinstance(output_text, str) and output_text.strip():
        return output_text

    chunks: List[str] = []
    output_items = response.get("output", []) if isinstance(response, dict) else getattr(response, "output", [])
    for item in output_items or []:
        if isinstance(item, dict):
            content_parts = item.get("content", []) or []
        else:
            content_parts = getattr(item, "content", []) or []
        for content in content_parts:
            if isinstance(content, dict):
                text = content.get("text")
            else:
                text = getattr(content, "text", None)
            if isinstance(text, str) and text:
                chunks.append(text)
    return "".join(chunks).strip()


def _extract_usage_tokens(response: Any) -> int:
    usage = response.get("usage") if isinstance(response, dict) else getattr(response, "usage", None)
    if usage is None:
        return 0
    total = usage.get("total_tokens") if isinstance(usage, dict) else getattr(usage, "total_tokens", None)
    if isinstance(total, int):
        return total

    if isinstance(usage, dict):
        input_tokens = usage.get("input_tokens", 0) or 0
        output_tokens = usage.get("output_tokens", 0) or 0
    else:
        input_tokens = getattr(usage, "input_tokens", 0) or 0
        output_tokens = getattr(usage, "output_tokens", 0) or 0
    return int(input_tokens) + int(output_tokens)


def _normalize_schema_name(raw_name: Optional[str]) -> str:
    candidate = (raw_name or "structured_output").strip()
    if not candidate:
        candidate = "structured_output"
    sanitized = re.sub(r"[^a-zA-Z0-9_-]", "_", candidate)[:64]
    return sanitized or "structured_output"


def _contract_text_format(contract: OutputContract) -> Dict[str, Any]:
    # Structured outputs need an object root, so the array travels as {"items": [...]}
    return {
        "type": "json_schema",
        "name": _normalize_schema_name(contract.name),
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {"items": contract.json_schema},
            "required": ["items"],
            "additionalProperties": False,
        },
    }


def _supports_temperature(model: str) -> bool:
    normalized = (model or "").lower()
    # Responses models in the GPT-5 / reasoning families reject `temperature`.
    unsupported_prefixes = ("gpt-5", "o1", "o3", "o4")
    return not normalized.startswith(unsupported_prefixes)


def _sanitize_sampling_params(request_args: Dict[str, Any], model: str) -> None:
    """Drop sampling params that GPT-5 and reasoning models reject."""
    if _supports_temperature(model):
        return

    request_args.pop("temperature", None)
    request_args.pop("top_p", None)
    request_args.pop("logprobs", None)


class OpenAIProvider(LLMProvider):
    """OpenAI implementation of LLM provider."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-5-mini",
        temperature: float = 0.4,
        max_tokens: Optional[int] = None,
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            default_model: Model used for generation
            temperature: Sampling temperature for models that accept it
            max_tokens: Output token cap per call
        """
        if not api_key or not api_key.strip():
            raise ValueError("OPENAI_API_KEY is not configured")

        self.api_key = api_key
        self.client = AsyncOpenAI(api_key=api_key)
        self.default_model = default_model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def _responses_create(self, request_args: Dict[str, Any]) -> Any:
        """Call the Responses API with SDK support and HTTP fallback.

        Some older OpenAI Python SDK builds expose AsyncOpenAI but not `.responses`.
        We still call /v1/responses directly in that case.
        """
        responses_api = getattr(self.client, "responses", None)
        if responses_api and hasattr(responses_api, "create"):
            return await responses_api.create(**request_args)

        async with httpx.AsyncClient(timeout=90.0) as http_client:
            response = await http_client.post(
                "https://api.openai.com/v1/responses",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=request_args,
            )

        if response.status_code >= 400:
            try:
                payload = response.json()
                message = payload.get("error", {}).get("message") or response.text
            except ValueError:
                message = response.text
            raise BackendError(
                f"Responses API request failed ({response.status_code}): {message}",
                transient=response.status_code == 429 or response.status_code >= 500,
            )

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"Responses API returned a non-JSON body ({response.status_code})") from e

    async def generate_text(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> LLMResponse:
        """Generate text using OpenAI.

        Args:
            messages: Conversation messages
            temperature: Sampling temperature
            max_tokens: Max tokens to generate
            **kwargs: Additional OpenAI parameters

        Returns:
            LLMResponse with generated text
        """
        model = self.default_model

        request_args: Dict[str, Any] = {
            "model": model,
            "input": _to_responses_input(_normalize_messages(messages)),
            **kwargs,
        }
        if temperature is not None and _supports_temperature(model):
            request_args["temperature"] = temperature
        if max_tokens is not None:
            request_args["max_output_tokens"] = max_tokens
        _sanitize_sampling_params(request_args, model)

        response = await self._responses_create(request_args)
        content = _extract_output_text(response)
        return LLMResponse(
            content=content,
            tokens_used=_extract_usage_tokens(response),
            model=model,
            finish_reason=str(getattr(response, "status", "completed") or "completed"),
        )

    async def complete(
        self,
        prompt: str,
        system_instruction: str,
        contract: OutputContract,
    ) -> str:
        """Generate text, using strict JSON schema decoding for typed contracts."""
        messages = [
            LLMMessage(role="system", content=system_instruction),
            LLMMessage(role="user", content=prompt),
        ]

        try:
            if not contract.is_typed:
                response = await self.generate_text(
                    messages, temperature=self.temperature, max_tokens=self.max_tokens
                )
                return response.content

            try:
                response = await self.generate_text(
                    messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    text={"format": _contract_text_format(contract)},
                )
            except BadRequestError as exc:
                # Schema shape rejected by the model; retry in plain JSON mode
                logger.warning(f"Strict schema rejected for {contract.name}, using JSON prompt fallback: {exc}")
                fallback_messages = [
                    LLMMessage(
                        role="system",
                        content=(
                            f"{system_instruction}\n\n"
                            "Return a single valid JSON array only. "
                            "Do not include markdown, code fences, comments, or explanatory prose."
                        ),
                    ),
                    LLMMessage(role="user", content=prompt),
                ]
                response = await self.generate_text(
                    fallback_messages, temperature=self.temperature, max_tokens=self.max_tokens
                )
            return response.content

        except (APITimeoutError, APIConnectionError, RateLimitError, InternalServerError) as e:
            raise BackendError(f"OpenAI request failed: {e}", transient=True) from e
        except APIStatusError as e:
            raise BackendError(f"OpenAI request failed ({e.status_code}): {e.message}") from e
        except APIError as e:
            raise BackendError(f"OpenAI request failed: {e.message}") from e
        except httpx.HTTPError as e:
            raise BackendError(f"OpenAI transport error: {e}", transient=True) from e
