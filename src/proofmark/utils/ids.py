"""識別碼工具"""

import uuid


def generate_id() -> str:
    """產生修正項目用的唯一 id"""
    return uuid.uuid4().hex


def generate_trace_id() -> str:
    """產生一次分析流程 (AnalysisRun) 用的追蹤 id"""
    return uuid.uuid4().hex[:12]
