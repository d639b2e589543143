"""
Grading Package

Essay analysis and grade reconciliation:
- results: Analysis result models
- provider: Analysis providers (Gemini)
- orchestrator: Per-essay job/cache registry for automated analysis
- validation: Evaluation input checks
- aggregator: Final score recalculation and evaluation operations
- lifecycle: Essay and classroom operations used by the API
"""

from .results import AnalysisResult, CompetencyScore
from .provider import AnalysisProvider, GeminiAnalysisProvider, parse_analysis_response
from .orchestrator import (
    AnalysisStatus,
    AnalysisOutcome,
    AnalysisJob,
    CacheEntry,
    AnalysisOrchestrator,
)
from .validation import validate_competency, validate_score
from .aggregator import GradeAggregator, compute_final_score
from .lifecycle import EssayLifecycle

__all__ = [
    'AnalysisResult',
    'CompetencyScore',
    'AnalysisProvider',
    'GeminiAnalysisProvider',
    'parse_analysis_response',
    'AnalysisStatus',
    'AnalysisOutcome',
    'AnalysisJob',
    'CacheEntry',
    'AnalysisOrchestrator',
    'validate_competency',
    'validate_score',
    'GradeAggregator',
    'compute_final_score',
    'EssayLifecycle',
]
