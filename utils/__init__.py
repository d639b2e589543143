"""
Utilities Package

Organized by purpose:
- core: LLM initialization
- prompts: Prompt templates
- auth: JWT handling and access rules
- errors: Exception hierarchy and error handling
- monitoring: Logging and metrics

Subpackages are imported directly (e.g. ``from utils.errors import ...``)
so that importing one does not pull in the LLM stack.
"""
