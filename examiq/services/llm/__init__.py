"""LLM provider abstraction."""

from .base import LLMMessage, LLMProvider, LLMResponse
from .factory import LLMFactory

__all__ = ['LLMFactory', 'LLMMessage', 'LLMProvider', 'LLMResponse']
