"""Content analysis."""

from .analyzer import AIMatcher, AnalysisResult, ContentAnalyzer, KeywordMatcher

__all__ = [
    "AIMatcher",
    "AnalysisResult",
    "ContentAnalyzer",
    "KeywordMatcher",
]
