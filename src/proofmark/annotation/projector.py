"""
Canonical Text Projector

把結構化文件攤平成一條純文字字串，這條字串就是外部分析服務使用的 offset 座標空間。
必須是確定性、無副作用的：同一份文件永遠產生逐位元相同的結果。
"""

from typing import AbstractSet

from proofmark.document.model import Node

from .constants import DEFAULT_CODE_TYPES
from .traversal import iter_leaves, iter_text_leaves


def project(doc: Node, code_types: AbstractSet[str] = DEFAULT_CODE_TYPES) -> str:
    """
    產生 canonical text

    範例:
        >>> project(doc(p("I has a cat."), p("It run fast.")))
        'I has a cat.\\nIt run fast.\\n'
    """
    return "".join(event.text for event in iter_leaves(doc, code_types) if event.emits_text)


def addressable_length(doc: Node, code_types: AbstractSet[str] = DEFAULT_CODE_TYPES) -> int:
    """可定址字元總數（只計文字葉節點）"""
    return sum(len(event.text) for event in iter_text_leaves(doc, code_types))
