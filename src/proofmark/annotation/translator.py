"""
Offset ↔ Position Translator

在 canonical text offset 與文件結構位置之間雙向轉換。
與 Projector 共用同一個葉節點走訪器，只計算文字葉節點中的字元：
換行與區塊分隔只是座標空間的分隔符，不是可定址的位置。

保證：對任何不落在程式碼區塊中的 offset x，且兩次呼叫之間文件未變，
    to_offset(doc, to_position(doc, x)) == x
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Callable, Iterable, List, Optional

from proofmark.document.model import Node
from proofmark.utils.logger import TimingContext, get_logger

from .constants import DEFAULT_CODE_TYPES
from .traversal import iter_text_leaves
from .types import CorrectionItem


class PositionTranslator:
    """
    Offset ↔ Position 轉換器

    使用範例:
        >>> translator = PositionTranslator()
        >>> pos = translator.to_position(doc, 2)
        >>> translator.to_offset(doc, pos)
        2
    """

    def __init__(
        self,
        code_types: AbstractSet[str] = DEFAULT_CODE_TYPES,
        on_timing: Optional[Callable[[str, float], None]] = None,
    ):
        self.code_types = frozenset(code_types)
        self._timing_callback = on_timing
        self._logger = get_logger("annotation.translator")

    def to_position(self, doc: Node, offset: int, bias: int = 1) -> int:
        """
        offset → 文件位置

        Args:
            doc: 目前的文件
            offset: canonical text offset（只計文字字元）
            bias: 1 時，落在兩個葉節點交界的 offset 解析為後一個葉節點的開頭；
                -1 時解析為前一個葉節點的結尾（用於範圍終點，避免跳進下一個區塊）

        Returns:
            int: 文件位置。offset 小於 0 夾到文件開頭，超過可定址長度夾到最後一個文字葉節點的結尾
        """
        if offset < 0:
            self._logger.debug(f"Offset {offset} below document start, clamped")
            offset = 0

        counter = 0
        last_end: Optional[int] = None
        for leaf in iter_text_leaves(doc, self.code_types):
            length = len(leaf.text)
            if counter + length > offset or (bias < 0 and counter + length >= offset):
                return leaf.pos + (offset - counter)
            counter += length
            last_end = leaf.end

        if last_end is None:
            return 0
        self._logger.debug(f"Offset {offset} beyond addressable length {counter}, clamped")
        return last_end

    def to_offset(self, doc: Node, pos: int) -> int:
        """文件位置 → offset（位於葉節點之間的位置對應到下一個字元的 offset）"""
        accumulated = 0
        for leaf in iter_text_leaves(doc, self.code_types):
            if leaf.pos <= pos <= leaf.end:
                return accumulated + (pos - leaf.pos)
            if pos < leaf.pos:
                return accumulated
            accumulated += len(leaf.text)
        return accumulated

    def convert_items(self, doc: Node, items: Iterable[CorrectionItem]) -> List[CorrectionItem]:
        """
        把帶有 source_offsets 的項目映射到目前文件的位置

        - 已有 from_/to 的項目原樣保留
        - 成功映射後清除 source_offsets，並記錄該範圍目前的確切文字
        """
        converted: List[CorrectionItem] = []
        with TimingContext("PositionTranslator.convert_items", self._logger, logging.DEBUG, self._timing_callback):
            for item in items:
                if item.is_mapped or item.source_offsets is None:
                    converted.append(item)
                    continue

                start, end = item.source_offsets
                from_ = self.to_position(doc, start)
                to = self.to_position(doc, end, bias=-1) if end > start else from_
                to = max(from_, to)

                converted.append(
                    item.replace(
                        from_=from_,
                        to=to,
                        source_offsets=None,
                        original_text=doc.text_between(from_, to),
                    )
                )
        return converted
