"""
Models module for the LLM client abstraction.

Provides a unified interface for the Gemini analysis capability.
"""

from worksim_assessment.models.llm_client import (
    GeminiClient,
    LLMClientBase,
    MediaPart,
    fix_json_string,
    parse_json_loose,
    strip_code_fences,
)

__all__ = [
    "GeminiClient",
    "LLMClientBase",
    "MediaPart",
    "fix_json_string",
    "parse_json_loose",
    "strip_code_fences",
]
