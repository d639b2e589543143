"""
Prompts Package

Centralized prompt templates:
- Essay analysis prompts (ENEM five-competency rubric)
"""

from .essay_analysis import (
    COMPETENCY_DESCRIPTIONS,
    ESSAY_ANALYSIS_SYSTEM_PROMPT,
    format_competencies_for_prompt,
    get_essay_analysis_prompt,
)

__all__ = [
    'COMPETENCY_DESCRIPTIONS',
    'ESSAY_ANALYSIS_SYSTEM_PROMPT',
    'format_competencies_for_prompt',
    'get_essay_analysis_prompt',
]
