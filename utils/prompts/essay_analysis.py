"""
Essay analysis prompt templates.

The analysis follows the five ENEM writing competencies, each scored on a
0-200 scale in steps of 40, for a total of 0-1000.
"""

COMPETENCY_DESCRIPTIONS = {
    1: "Command of the formal written norm of the language",
    2: "Understanding of the prompt and use of knowledge to develop the theme within the argumentative-essay structure",
    3: "Selection, relation, organization and interpretation of information, facts and opinions in defense of a point of view",
    4: "Knowledge of the linguistic mechanisms needed to build the argument (cohesion)",
    5: "Proposal of an intervention for the problem addressed, respecting human rights",
}

ESSAY_ANALYSIS_SYSTEM_PROMPT = (
    "You are an experienced ENEM essay examiner. You score essays strictly "
    "against the official five-competency rubric and reply with JSON only."
)


def format_competencies_for_prompt() -> str:
    """Render the competency list as numbered prompt lines."""
    return "\n".join(
        f"{number}. {description}" for number, description in COMPETENCY_DESCRIPTIONS.items()
    )


def get_essay_analysis_prompt(essay: str, additional_instructions: str = "") -> str:
    """
    Generate the prompt for automated essay analysis.

    Args:
        essay: Essay text (already transcribed and corrected)
        additional_instructions: Optional extra guidance for the examiner

    Returns:
        Formatted analysis prompt
    """
    return f"""Score the student essay below against the ENEM rubric.

ESSAY:
{essay}

COMPETENCIES:
{format_competencies_for_prompt()}

{f"ADDITIONAL INSTRUCTIONS: {additional_instructions}" if additional_instructions else ""}

SCORING RULES:
- Each competency is scored 0, 40, 80, 120, 160 or 200
- final_score is the sum of the five competency scores (0-1000)
- Be HONEST: most essays do not reach 200 in every competency
- Keep feedback brief and specific (1-2 sentences per competency)

RESPOND WITH VALID JSON ONLY (no markdown, no code blocks):
{{
    "final_score": 720,
    "competencies": [
        {{"competency": 1, "score": 160, "feedback": "Few deviations from the formal norm; two agreement errors in paragraph 2."}},
        {{"competency": 2, "score": 160, "feedback": "Theme fully addressed with relevant outside knowledge."}},
        {{"competency": 3, "score": 120, "feedback": "Arguments are relevant but the second one is underdeveloped."}},
        {{"competency": 4, "score": 160, "feedback": "Good use of connectives, some repetition."}},
        {{"competency": 5, "score": 120, "feedback": "Intervention lacks the means of execution."}}
    ],
    "summary": "One or two sentences on the essay overall."
}}"""
