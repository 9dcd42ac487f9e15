from contentguard.analysis.base import AnalysisSession, BaseAnalyzer
from contentguard.analysis.basic_analyzer import BasicAnalyzer
from contentguard.analysis.loader import AnalyzerLoader
from contentguard.analysis.models import AnalysisConfig, AnalysisResult, Decision
from contentguard.analysis.streaming_analyzer import StreamingAnalyzer

__all__ = [
    "AnalysisConfig",
    "AnalysisResult",
    "AnalysisSession",
    "AnalyzerLoader",
    "BaseAnalyzer",
    "BasicAnalyzer",
    "Decision",
    "StreamingAnalyzer",
]
