"""
Prompt and output contract builder.
Maps each generation kind to its instruction prompt and response schema.
"""

from dataclasses import dataclass
from enum import Enum

from examiq.models.generation import Difficulty, GenerationKind, GenerationMode
from examiq.services.content_generator.schemas import (
    MCQ_LABELS,
    DescriptiveItem,
    MCQItem,
    OutputContract,
    key_point_band,
)


SYSTEM_INSTRUCTION = """You are the AI engine for an educational platform called "ExamIQ".
ExamIQ is an AI-powered university exam preparation platform.
Your role is to:
- Convert uploaded syllabus or notes into structured study materials
- Generate exam-style questions
- Provide clear explanations
- Help students prepare for university-level exams

IMPORTANT RULES:
1. Always respond in structured and clean academic format.
2. Keep explanations concise but exam-focused.
3. Avoid unnecessary storytelling.
4. Use headings, bullet points, and clear formatting.
5. Focus on university-level depth.
6. Do not hallucinate unknown syllabus content.
7. If content is unclear, ask for clarification.
8. Output must be clean and frontend-render friendly (Markdown supported)."""

DIFFICULTY_GUIDANCE = {
    Difficulty.EASY: "Focus on basic recall and simple understanding. Questions should test fundamental concepts.",
    Difficulty.MEDIUM: "Test both understanding and application. Include some analysis and problem-solving.",
    Difficulty.HARD: "Require deep understanding, critical thinking, and complex problem-solving. Include multi-step reasoning.",
}

MCQ_ITEM_SCHEMA = {
    "type": "object",
    "properties": {
        "question": {"type": "string"},
        "options": {
            "type": "object",
            "properties": {label: {"type": "string"} for label in MCQ_LABELS},
            "required": list(MCQ_LABELS),
            "additionalProperties": False,
        },
        "correct_answer": {"type": "string", "enum": list(MCQ_LABELS)},
        "explanation": {"type": "string"},
    },
    "required": ["question", "options", "correct_answer", "explanation"],
    "additionalProperties": False,
}


def descriptive_item_schema(marks: int) -> dict:
    low, high = key_point_band(marks)
    return {
        "type": "object",
        "properties": {
            "question": {"type": "string"},
            "marks": {"type": "integer"},
            "introduction": {"type": "string"},
            "key_points": {
                "type": "array",
                "items": {"type": "string"},
                "minItems": low,
                "maxItems": high,
            },
            "conclusion": {"type": "string"},
            "marks_distribution": {"type": "string"},
        },
        "required": [
            "question",
            "marks",
            "introduction",
            "key_points",
            "conclusion",
            "marks_distribution",
        ],
        "additionalProperties": False,
    }


class TutorMode(str, Enum):
    CHAT = "chat"
    TEST_EXPLANATION = "test_explanation"


@dataclass(frozen=True)
class GenerationPrompt:
    prompt: str
    system_instruction: str
    contract: OutputContract


def build(kind: GenerationKind, aggregated_input: str, difficulty: Difficulty) -> GenerationPrompt:
    """
    Build the prompt and output contract for one generation kind.

    Args:
        kind: Notes, MCQ bank, or descriptive bank for a mark value
        aggregated_input: Merged course material used as generation context
        difficulty: Requested difficulty (ignored for notes)

    Returns:
        GenerationPrompt with prompt text, system instruction, and contract
    """
    if kind.mode == GenerationMode.NOTES:
        return GenerationPrompt(
            prompt=_notes_prompt(aggregated_input),
            system_instruction=SYSTEM_INSTRUCTION,
            contract=OutputContract.free_text(kind.label),
        )

    if kind.mode == GenerationMode.MCQ:
        return GenerationPrompt(
            prompt=_mcq_prompt(aggregated_input, difficulty),
            system_instruction=SYSTEM_INSTRUCTION,
            contract=OutputContract.typed_array(kind.label, MCQItem, MCQ_ITEM_SCHEMA),
        )

    return GenerationPrompt(
        prompt=_descriptive_prompt(aggregated_input, difficulty, kind.marks),
        system_instruction=SYSTEM_INSTRUCTION,
        contract=OutputContract.typed_array(
            kind.label,
            DescriptiveItem,
            descriptive_item_schema(kind.marks),
            context={"marks": kind.marks},
        ),
    )


def build_tutor_prompt(mode: TutorMode, text: str) -> GenerationPrompt:
    """Build a free-text prompt for the chat tutor or a test result review."""
    if mode == TutorMode.CHAT:
        prompt = f"MODE: CHAT_TUTOR\nUser query: {text}"
    else:
        prompt = f"MODE: TEST_EXPLANATION\nAnalyze this test result:\n\n{text}"
    return GenerationPrompt(
        prompt=prompt,
        system_instruction=SYSTEM_INSTRUCTION,
        contract=OutputContract.free_text(mode.value),
    )


def _notes_prompt(content: str) -> str:
    return f"""MODE: NOTES_GENERATION
Convert the following text into structured study notes.

**Instructions:**
1. Organize content with clear headings and subheadings
2. Highlight key concepts, definitions, and important points
3. Include relevant formulas, equations, or technical details
4. Use markdown formatting for better readability

**Format the notes as:**
## Overview
[Brief introduction to the topic]

## Key Concepts
[Main concepts with explanations]

## Detailed Content
[Organized sections based on the material]

## Summary
[Concise summary of main takeaways]

Content:
{content}"""


def _mcq_prompt(content: str, difficulty: Difficulty) -> str:
    return f"""MODE: MCQ_GENERATION
Generate {difficulty.value} difficulty multiple choice questions based on the provided content.
{DIFFICULTY_GUIDANCE[difficulty]}

Each question must:
- Be university-level and test conceptual understanding, not just rote memorization.
- Have 4 distinct options (A, B, C, D).
- Have one clearly correct answer, given as its option letter in "correct_answer".
- Include a detailed explanation of WHY the answer is correct and why other options are incorrect.

Return a JSON array of question objects.

Content:
{content}"""


def _descriptive_prompt(content: str, difficulty: Difficulty, marks: int) -> str:
    low, high = key_point_band(marks)
    return f"""MODE: DESCRIPTIVE_QUESTIONS
Generate descriptive {marks}-mark university-style questions based on the provided content.
Difficulty: {difficulty.value}
{DIFFICULTY_GUIDANCE[difficulty]}

For each question, provide:
1. The question itself.
2. "marks": the value {marks}.
3. A brief academic introduction to the topic.
4. {low}-{high} critical key points that must be included in a high-scoring answer.
5. A concluding summary or synthesis.
6. A suggested marks distribution (e.g., "1 mark for intro, {max(marks - 2, 0)} marks for points, 1 mark for conclusion").

Return a JSON array of question objects.

Content:
{content}"""
