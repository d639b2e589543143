"""
LLM Initialization Utilities using Google Gemini.

Essay analysis needs precise, consistent scoring, so the default
temperature is low (0.3). Model, temperature and API key come from
settings.
"""

from typing import Optional

from langchain_google_genai import ChatGoogleGenerativeAI

from config import settings
from utils.monitoring import get_logger

logger = get_logger(__name__)


def initialize_analysis_llm(
    model_name: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    **kwargs
) -> ChatGoogleGenerativeAI:
    """
    Initialize Google Gemini for essay analysis.

    Args:
        model_name: Optional model override (default: settings.analysis_model)
        temperature: Optional temperature override
        max_tokens: Maximum output tokens
        **kwargs: Additional Gemini parameters

    Returns:
        Configured ChatGoogleGenerativeAI instance

    Raises:
        ValueError: If no Google API key is configured
    """
    api_key = settings.google_api_key
    if not api_key:
        raise ValueError(
            "GOOGLE_API_KEY not found. "
            "Get your API key at: https://makersuite.google.com/app/apikey"
        )

    model = model_name or settings.analysis_model

    config = {
        "model": model,
        "temperature": settings.analysis_temperature if temperature is None else temperature,
        "google_api_key": api_key,
    }

    if max_tokens:
        config["max_output_tokens"] = max_tokens

    config.update(kwargs)

    try:
        return ChatGoogleGenerativeAI(**config)
    except Exception as e:
        # If the configured model is unavailable, try the fallback
        fallback = settings.analysis_fallback_model
        if fallback and model != fallback and "not found" in str(e).lower():
            logger.warning(f"{model} unavailable, falling back to {fallback}")
            config["model"] = fallback
            return ChatGoogleGenerativeAI(**config)
        raise
