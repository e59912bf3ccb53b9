"""
修正標註的資料型別

CorrectionItem 是不可變的；所有狀態變更都以 dataclasses.replace 產生新實例，
再透過 Store 的 reducer 寫回。
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Tuple


class SuggestionClass(IntEnum):
    TYPO = 1
    SEMANTIC = 2

    @classmethod
    def from_error_type(cls, error_type: Optional[str]) -> "SuggestionClass":
        """服務回傳的 error_type：只有 "semantic" 視為語義類，其他一律為拼寫類"""
        return cls.SEMANTIC if error_type == "semantic" else cls.TYPO


class ResultTag(str, Enum):
    ACCEPTED = "accepted"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Suggestion:
    replacement_text: str
    suggestion_class: SuggestionClass = SuggestionClass.TYPO
    explanation: str = ""


@dataclass(frozen=True)
class AcceptedSnapshot:
    original_text: str
    new_text: str


@dataclass(frozen=True)
class CorrectionItem:
    """
    一個偵測到的問題

    屬性:
        id: 唯一識別碼，在項目存在期間不變
        from_, to: 文件結構位置（半開區間）
        source_offsets: canonical text 座標下的 [start, end)，首次成功映射後清除
        original_text: 建立時該範圍的確切文字
        misspelled_word: 服務回報的原始字串
        suggestions: 建議列表，第一個為預設建議
        result: None 表示待處理
        accepted_snapshot: 接受後用於精確還原的快照
    """

    id: str
    from_: Optional[int] = None
    to: Optional[int] = None
    source_offsets: Optional[Tuple[int, int]] = None
    original_text: str = ""
    misspelled_word: str = ""
    suggestions: Tuple[Suggestion, ...] = ()
    result: Optional[ResultTag] = None
    accepted_snapshot: Optional[AcceptedSnapshot] = None

    @property
    def is_mapped(self) -> bool:
        return self.from_ is not None and self.to is not None

    @property
    def is_pending(self) -> bool:
        return self.result is None

    @property
    def primary(self) -> Optional[Suggestion]:
        return self.suggestions[0] if self.suggestions else None

    @property
    def suggestion_class(self) -> SuggestionClass:
        primary = self.primary
        return primary.suggestion_class if primary else SuggestionClass.TYPO

    def with_span(self, from_: int, to: int) -> "CorrectionItem":
        return dataclasses.replace(self, from_=from_, to=to)

    def replace(self, **changes) -> "CorrectionItem":
        return dataclasses.replace(self, **changes)
