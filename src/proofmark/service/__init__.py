"""修正服務串流介接"""

from .client import CorrectionServiceClient
from .ingestion import AnalysisRun, CorrectionStreamAdapter, parse_record

__all__ = [
    "CorrectionServiceClient",
    "CorrectionStreamAdapter",
    "AnalysisRun",
    "parse_record",
]
