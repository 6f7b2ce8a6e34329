"""Chat tutor and test result explanation."""
import logging

from examiq.errors import InvalidRequest
from examiq.services.content_generator.prompts import TutorMode, build_tutor_prompt
from examiq.services.llm.base import LLMProvider

logger = logging.getLogger(__name__)


class TutorService:
    """Free-text tutor modes sharing the generation backend."""

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    async def chat(self, message: str) -> str:
        """Answer a student's question."""
        return await self._ask(TutorMode.CHAT, message)

    async def explain_test(self, result_summary: str) -> str:
        """Analyze a submitted practice test result."""
        return await self._ask(TutorMode.TEST_EXPLANATION, result_summary)

    async def _ask(self, mode: TutorMode, text: str) -> str:
        if not text or not text.strip():
            raise InvalidRequest(f"{mode.value} input must not be empty")

        prompt = build_tutor_prompt(mode, text.strip())
        logger.info(f"Tutor request ({mode.value}), {len(text)} chars")
        response = await self.provider.complete(prompt.prompt, prompt.system_instruction, prompt.contract)
        return prompt.contract.parse(response)
