"""
Overlay Renderer

Store 狀態 → 視覺標示範圍 的純函數。
樣式取決於建議類別（拼寫 / 語義）以及是否為目前選取、是否已接受：
- 已忽略的項目不顯示
- 落在程式碼區塊中的項目不顯示（項目本身仍存在）
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Optional, Tuple

from proofmark.document.model import Node

from .constants import (
    ACCEPTED_CLASS,
    ACTIVE_CLASS,
    DEFAULT_CODE_TYPES,
    ERROR_COLORS,
    HIGHLIGHT_CLASS,
    UNDERLINE_OPACITY,
    UNDERLINE_WIDTH,
)
from .traversal import code_regions, overlaps_code_region
from .types import CorrectionItem, ResultTag, SuggestionClass


@dataclass(frozen=True)
class Overlay:
    from_: int
    to: int
    correction_id: str
    css_class: str
    color: str

    @property
    def style(self) -> str:
        return (
            f"border-bottom: {UNDERLINE_WIDTH} solid rgba({self.color}, {UNDERLINE_OPACITY}); "
            "cursor: pointer;"
        )

    @property
    def attrs(self) -> Dict[str, str]:
        return {
            "class": self.css_class,
            "style": self.style,
            "data-correction-id": self.correction_id,
            "data-color": self.color,
        }

    def contains(self, pos: int) -> bool:
        return self.from_ <= pos < self.to


def overlay_color(item: CorrectionItem) -> str:
    if item.result is ResultTag.ACCEPTED:
        return ERROR_COLORS["ACCEPTED"]
    if item.suggestion_class is SuggestionClass.SEMANTIC:
        return ERROR_COLORS["SEMANTIC"]
    return ERROR_COLORS["TYPO"]


def create_overlay(
    item: CorrectionItem,
    is_active: bool,
    regions: List[Tuple[int, int]],
) -> Optional[Overlay]:
    if not item.is_mapped or item.from_ >= item.to:
        return None
    if item.result is ResultTag.IGNORED:
        return None
    if overlaps_code_region(regions, item.from_, item.to):
        return None

    classes = [HIGHLIGHT_CLASS]
    if is_active:
        classes.append(ACTIVE_CLASS)
    if item.result is ResultTag.ACCEPTED:
        classes.append(ACCEPTED_CLASS)

    return Overlay(
        from_=item.from_,
        to=item.to,
        correction_id=item.id,
        css_class=" ".join(classes),
        color=overlay_color(item),
    )


def render_overlays(
    items: Iterable[CorrectionItem],
    active_id: Optional[str],
    doc: Node,
    code_types: AbstractSet[str] = DEFAULT_CODE_TYPES,
) -> Tuple[Overlay, ...]:
    regions = code_regions(doc, code_types)
    overlays = []
    for item in items:
        overlay = create_overlay(item, item.id == active_id, regions)
        if overlay is not None:
            overlays.append(overlay)
    overlays.sort(key=lambda o: (o.from_, o.to))
    return tuple(overlays)
