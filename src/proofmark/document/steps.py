"""
編輯步驟與位置映射

ReplaceStep 是唯一的低階編輯操作：以一段內容取代 [from_, to)。
每個步驟都有對應的 StepMap，用來把舊位置翻譯成新位置：
- 位於取代範圍之前的位置不變
- 位於取代範圍之後的位置平移 (新長度 - 舊長度)
- 位於取代範圍內的位置夾到範圍邊界，assoc 決定靠左或靠右
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .model import Node


@dataclass(frozen=True)
class StepMap:
    start: int
    old_size: int
    new_size: int

    def map(self, pos: int, assoc: int = 1) -> int:
        end = self.start + self.old_size
        if pos < self.start:
            return pos
        if pos > end:
            return pos + self.new_size - self.old_size
        if not self.old_size:
            side = assoc
        elif pos == self.start:
            side = -1
        elif pos == end:
            side = 1
        else:
            side = assoc
        return self.start + (0 if side < 0 else self.new_size)

    def invert(self) -> "StepMap":
        return StepMap(self.start, self.new_size, self.old_size)


class Mapping:
    """依序組合多個 StepMap"""

    def __init__(self, maps: Optional[Iterable[StepMap]] = None):
        self.maps: List[StepMap] = list(maps or [])

    def append_map(self, step_map: StepMap) -> None:
        self.maps.append(step_map)

    def map(self, pos: int, assoc: int = 1) -> int:
        for step_map in self.maps:
            pos = step_map.map(pos, assoc)
        return pos

    def __len__(self) -> int:
        return len(self.maps)


@dataclass(frozen=True)
class ReplaceStep:
    from_: int
    to: int
    content: Tuple[Node, ...] = ()

    @property
    def size(self) -> int:
        return sum(node.node_size for node in self.content)

    def apply(self, doc: Node) -> Node:
        return doc.replace(self.from_, self.to, self.content)

    def get_map(self) -> StepMap:
        return StepMap(self.from_, self.to - self.from_, self.size)

    def invert(self, doc: Node) -> "ReplaceStep":
        """建立反向步驟（doc 為此步驟套用前的文件）"""
        return ReplaceStep(self.from_, self.from_ + self.size, doc.slice_content(self.from_, self.to))
