"""Base LLM provider interface."""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel

if TYPE_CHECKING:
    from examiq.services.content_generator.schemas import OutputContract


class LLMMessage(BaseModel):
    """Message for LLM conversation."""

    role: str  # 'system', 'user', 'assistant'
    content: str


class LLMResponse(BaseModel):
    """Response from LLM."""

    content: str
    tokens_used: int
    model: str
    finish_reason: str


class LLMProvider(ABC):
    """Abstract base class for all LLM providers."""

    @abstractmethod
    async def generate_text(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> LLMResponse:
        """Generate text completion.

        Args:
            messages: List of conversation messages
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            **kwargs: Provider-specific arguments

        Returns:
            LLMResponse with generated content
        """
        pass

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_instruction: str,
        contract: "OutputContract",
    ) -> str:
        """Run one generation call under an output contract.

        Typed contracts are requested in structured (JSON schema) decoding
        mode; free-text contracts as plain text. The raw response text is
        returned unvalidated; callers parse it against the contract.

        Args:
            prompt: User prompt
            system_instruction: System-level instruction
            contract: Expected output shape

        Returns:
            Raw response text

        Raises:
            BackendError: Transport, timeout, or provider-reported failure
        """
        pass
