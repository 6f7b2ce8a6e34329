"""Anthropic LLM provider implementation."""
import json
import logging
from typing import List, Optional

from anthropic import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncAnthropic,
    InternalServerError,
    RateLimitError,
)

from examiq.errors import BackendError
from examiq.services.content_generator.schemas import OutputContract
from examiq.services.llm.base import LLMMessage, LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """Anthropic (Claude) implementation of LLM provider."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "claude-sonnet-4-5",
        temperature: float = 0.4,
        max_tokens: int = 8192,
    ):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            default_model: Model used for generation
            temperature: Sampling temperature
            max_tokens: Output token cap per call
        """
        if not api_key or not api_key.strip():
            raise ValueError("ANTHROPIC_API_KEY is not configured")

        self.client = AsyncAnthropic(api_key=api_key)
        self.default_model = default_model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate_text(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = 4096,
        **kwargs,
    ) -> LLMResponse:
        """Generate text using Anthropic.

        Args:
            messages: Conversation messages
            temperature: Sampling temperature
            max_tokens: Max tokens to generate
            **kwargs: Additional Anthropic parameters

        Returns:
            LLMResponse with generated text
        """
        model = self.default_model

        # Anthropic requires system message to be separate
        system_msg = None
        conversation_messages = []

        for msg in messages:
            if msg.role == "system":
                system_msg = msg.content
            else:
                conversation_messages.append({"role": msg.role, "content": msg.content})

        request_args = {
            "model": model,
            "messages": conversation_messages,
            "temperature": temperature,
            "max_tokens": max_tokens or self.max_tokens,
            **kwargs,
        }
        if system_msg:
            request_args["system"] = system_msg

        response = await self.client.messages.create(**request_args)

        # Skip thinking and tool blocks
        content_text = "".join(
            block.text for block in response.content or [] if getattr(block, "type", None) == "text"
        )
        tokens_used = (
            response.usage.input_tokens + response.usage.output_tokens
            if response.usage
            else 0
        )

        return LLMResponse(
            content=content_text,
            tokens_used=tokens_used,
            model=model,
            finish_reason=response.stop_reason or "stop",
        )

    async def complete(
        self,
        prompt: str,
        system_instruction: str,
        contract: OutputContract,
    ) -> str:
        """Generate text; typed contracts are requested through the system prompt.

        Anthropic doesn't have a native JSON schema mode, so the schema is
        spelled out in the system instruction and validated by the caller.
        """
        system = system_instruction
        if contract.is_typed:
            system = (
                f"{system_instruction}\n\n"
                "IMPORTANT: Respond with ONLY a valid JSON array matching this JSON schema. "
                "No markdown, no explanations, just the JSON array.\n"
                f"{json.dumps(contract.json_schema)}"
            )

        messages = [
            LLMMessage(role="system", content=system),
            LLMMessage(role="user", content=prompt),
        ]

        try:
            response = await self.generate_text(
                messages, temperature=self.temperature, max_tokens=self.max_tokens
            )
        except (APITimeoutError, APIConnectionError, RateLimitError, InternalServerError) as e:
            raise BackendError(f"Anthropic request failed: {e}", transient=True) from e
        except APIStatusError as e:
            raise BackendError(f"Anthropic request failed ({e.status_code}): {e.message}") from e
        except APIError as e:
            raise BackendError(f"Anthropic request failed: {e}") from e

        if response.finish_reason == "max_tokens":
            logger.warning(f"Anthropic response for {contract.name} hit the max_tokens limit")
        return response.content
