"""
可定址葉節點走訪器 (addressable-leaf iterator)

Projector、Translator 與 Store 的程式碼區塊判斷共用這一個走訪規則，
確保 canonical text、offset 與位置三者永遠一致：

- 文字節點：輸出其文字（TEXT，唯一會計入 offset 的字元）
- 行內換行：輸出 "\n"（BREAK，不計入 offset）
- 區塊節點走訪完畢後（根節點除外）：輸出 "\n"（BLOCK_END，不計入 offset）
- 原樣程式碼區塊及其所有後代：不輸出任何東西（SKIPPED，只帶位置與大小）
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Iterator, List, Tuple

from proofmark.document.model import Node

from .constants import DEFAULT_CODE_TYPES


class LeafKind(Enum):
    TEXT = "text"
    BREAK = "break"
    BLOCK_END = "block_end"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class LeafEvent:
    kind: LeafKind
    pos: int
    text: str = ""
    size: int = 0

    @property
    def end(self) -> int:
        if self.kind is LeafKind.SKIPPED:
            return self.pos + self.size
        if self.kind is LeafKind.TEXT:
            return self.pos + len(self.text)
        return self.pos

    @property
    def emits_text(self) -> bool:
        return self.kind is not LeafKind.SKIPPED


def is_code_region(node: Node, code_types: AbstractSet[str]) -> bool:
    return node.type.is_code or node.type.name in code_types


def iter_leaves(doc: Node, code_types: AbstractSet[str] = DEFAULT_CODE_TYPES) -> Iterator[LeafEvent]:
    """依文件順序深度優先走訪，產生 LeafEvent"""
    yield from _walk(doc, 0, code_types)


def _walk(node: Node, content_start: int, code_types: AbstractSet[str]) -> Iterator[LeafEvent]:
    pos = content_start
    for child in node.content:
        if is_code_region(child, code_types):
            yield LeafEvent(LeafKind.SKIPPED, pos, size=child.node_size)
        elif child.is_text:
            yield LeafEvent(LeafKind.TEXT, pos, child.text)
        elif child.type.is_line_break:
            yield LeafEvent(LeafKind.BREAK, pos, "\n")
        elif not child.is_leaf:
            yield from _walk(child, pos + 1, code_types)
            if child.is_block:
                yield LeafEvent(LeafKind.BLOCK_END, pos + child.node_size, "\n")
        pos += child.node_size


def iter_text_leaves(doc: Node, code_types: AbstractSet[str] = DEFAULT_CODE_TYPES) -> Iterator[LeafEvent]:
    """只產生會計入 offset 的文字葉節點"""
    return (event for event in iter_leaves(doc, code_types) if event.kind is LeafKind.TEXT)


def code_regions(doc: Node, code_types: AbstractSet[str] = DEFAULT_CODE_TYPES) -> List[Tuple[int, int]]:
    """所有被跳過的程式碼區塊範圍 [start, end)"""
    return [
        (event.pos, event.end)
        for event in iter_leaves(doc, code_types)
        if event.kind is LeafKind.SKIPPED
    ]


def overlaps_code_region(regions: List[Tuple[int, int]], from_: int, to: int) -> bool:
    end = max(to, from_ + 1)
    return any(start < end and region_end > from_ for start, region_end in regions)
