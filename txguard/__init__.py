"""Transaction risk analysis for Move chains."""
from .engine import Guardian, analyze_transaction
from .models import AnalysisContext, DetectedIssue, RiskCategory, RiskVerdict, Severity

__version__ = "0.1.0"

__all__ = [
    "AnalysisContext",
    "DetectedIssue",
    "Guardian",
    "RiskCategory",
    "RiskVerdict",
    "Severity",
    "analyze_transaction",
]
