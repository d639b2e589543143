"""
Core Utilities Package

- llm: LLM initialization and configuration

The LLM module is imported directly (``from utils.core.llm import ...``)
so the Gemini client is only loaded where analysis runs.
"""
