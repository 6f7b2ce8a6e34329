"""Prompt construction and output contracts for generated materials."""

from .prompts import GenerationPrompt, TutorMode, build, build_tutor_prompt
from .schemas import DescriptiveItem, MCQItem, OutputContract, key_point_band

__all__ = [
    'DescriptiveItem',
    'GenerationPrompt',
    'MCQItem',
    'OutputContract',
    'TutorMode',
    'build',
    'build_tutor_prompt',
    'key_point_band',
]
