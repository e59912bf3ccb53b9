"""共用 fixture"""

import pytest

from helpers import make_item
from proofmark.config import AnnotationConfig
from proofmark.document.builders import doc, p
from proofmark.engine import CorrectionEngine


@pytest.fixture
def cat_doc():
    # 位置: p1 = 0..14（文字 1..13），p2 = 14..28（文字 15..27）
    return doc(p("I has a cat."), p("It run fast."))


@pytest.fixture
def engine(cat_doc):
    return CorrectionEngine(cat_doc)


@pytest.fixture
def has_item():
    """cat_doc 中 "has" 的項目（位置 3..6）"""
    return make_item("has", 3, 6, replacement="have", original_text="has")


@pytest.fixture
def prompts():
    return []


@pytest.fixture
def prompted_engine(cat_doc, prompts):
    return CorrectionEngine(cat_doc, AnnotationConfig(), prompt=prompts.append)
