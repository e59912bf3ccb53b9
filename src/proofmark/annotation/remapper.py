"""
Mutation Remapper

每個改變文件的 transaction 都先經過這裡：
- 任何步驟的影響範圍與項目範圍重疊 → 項目失效（部分編輯一律視為完全失效，不做局部修補）
- 不重疊 → 以 transaction 的位置映射更新 from_/to

每個步驟都以「經過前面步驟映射後」的項目範圍比較，
因為步驟的 from_/to 是以該步驟套用前的文件為座標。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

from proofmark.document.transaction import Transaction

from .types import CorrectionItem


@dataclass(frozen=True)
class RemapResult:
    items: Dict[str, CorrectionItem]
    invalidated: Tuple[CorrectionItem, ...] = ()


def ranges_overlap(step_from: int, step_to: int, from_: int, to: int) -> bool:
    """步驟範圍是否與 [from_, to) 相交、被包含或包含它"""
    return (
        (from_ <= step_from < to)
        or (from_ < step_to <= to)
        or (step_from <= from_ and step_to >= to)
    )


def is_range_modified(tr: Transaction, from_: int, to: int) -> bool:
    for index, step in enumerate(tr.steps):
        if ranges_overlap(step.from_, step.to, from_, to):
            return True
        step_map = tr.mapping.maps[index]
        from_, to = step_map.map(from_), step_map.map(to)
    return False


def remap_items(items: Mapping[str, CorrectionItem], tr: Transaction) -> RemapResult:
    """
    以 transaction 重新映射所有項目

    Returns:
        RemapResult: 存活（已更新位置）的項目，以及失效項目在編輯前的快照
    """
    if not tr.doc_changed:
        return RemapResult(items=dict(items))

    survivors: Dict[str, CorrectionItem] = {}
    invalidated = []
    for item_id, item in items.items():
        if not item.is_mapped:
            survivors[item_id] = item
            continue
        if is_range_modified(tr, item.from_, item.to):
            invalidated.append(item)
            continue
        survivors[item_id] = item.with_span(tr.mapping.map(item.from_), tr.mapping.map(item.to))
    return RemapResult(items=survivors, invalidated=tuple(invalidated))
