"""
Analysis providers.

An analysis provider turns essay text into an ``AnalysisResult``. It may be
slow and it may fail; every failure surfaces as ``ProviderError``.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError as PydanticValidationError

from config import settings
from utils.errors import ProviderError
from utils.monitoring import get_logger
from utils.prompts import ESSAY_ANALYSIS_SYSTEM_PROMPT, get_essay_analysis_prompt

from .results import AnalysisResult

logger = get_logger(__name__)


class AnalysisProvider(ABC):
    """Interface for anything that can score an essay."""

    name: str = "provider"

    @abstractmethod
    async def analyze(self, text: str) -> AnalysisResult:
        """
        Analyze essay text.

        Raises:
            ProviderError: If the analysis fails or returns malformed data
        """


def extract_response_text(content: Any) -> str:
    """Flatten chat model content (a string or a list of parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return str(content)


def parse_analysis_response(result_text: str) -> AnalysisResult:
    """
    Parse a model reply into an ``AnalysisResult``.

    Markdown code fences around the JSON are tolerated. A missing
    ``final_score`` is filled in as the sum of the competency scores.

    Raises:
        ProviderError: If the reply is not valid JSON or fails validation
    """
    # Find JSON in response (handle markdown code blocks)
    if "```json" in result_text:
        result_text = result_text.split("```json")[1].split("```")[0].strip()
    elif "```" in result_text:
        result_text = result_text.split("```")[1].split("```")[0].strip()

    try:
        data = json.loads(result_text)
    except json.JSONDecodeError as e:
        raise ProviderError(f"Analysis reply is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ProviderError("Analysis reply must be a JSON object")

    if data.get("final_score") is None and isinstance(data.get("competencies"), list):
        data["final_score"] = sum(
            c.get("score", 0) for c in data["competencies"] if isinstance(c, dict)
        )

    try:
        return AnalysisResult.model_validate(data)
    except PydanticValidationError as e:
        raise ProviderError(f"Analysis reply failed validation: {e.error_count()} error(s)") from e


class GeminiAnalysisProvider(AnalysisProvider):
    """
    Analysis provider backed by Google Gemini through LangChain.

    The chat model is created lazily so the service can start without an
    API key; the first analysis then fails with ``ProviderError``.
    """

    name = "gemini"

    def __init__(self, llm=None, model_name: Optional[str] = None):
        self._llm = llm
        self.model_name = model_name or settings.analysis_model

    @property
    def llm(self):
        if self._llm is None:
            from utils.core.llm import initialize_analysis_llm
            try:
                self._llm = initialize_analysis_llm(model_name=self.model_name)
            except ValueError as e:
                raise ProviderError(str(e), provider=self.name, model=self.model_name) from e
        return self._llm

    async def analyze(self, text: str) -> AnalysisResult:
        messages = [
            SystemMessage(content=ESSAY_ANALYSIS_SYSTEM_PROMPT),
            HumanMessage(content=get_essay_analysis_prompt(text)),
        ]

        llm = self.llm
        try:
            response = await llm.ainvoke(messages)
        except Exception as e:
            # The Gemini client raises a wide range of transport/API errors
            raise ProviderError(
                f"Analysis call failed: {e}",
                provider=self.name,
                model=self.model_name,
            ) from e

        result = parse_analysis_response(extract_response_text(response.content))
        logger.debug(
            "Analysis parsed",
            provider=self.name,
            final_score=result.final_score,
        )
        return result
