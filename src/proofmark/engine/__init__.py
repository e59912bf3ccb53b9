"""修正標註引擎"""

from .correction_engine import CorrectionEngine

__all__ = ["CorrectionEngine"]
