"""
文件節點模型

樹狀、不可變的富文本文件。位置 (position) 的規則：
- 文字節點大小 = 字元數
- 葉節點（hard_break、image、horizontal_rule）大小 = 1
- 其他節點大小 = 內容大小 + 2（開始與結束標記各佔一格）

根節點的內容位置範圍是 0 … doc.content_size。
位置以 Python 字串的 code point 計算。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from proofmark.core.errors import DocumentError, PositionError, ReplaceError

from .schema import TEXT, NodeType

# f(node, pos, parent, index) -> False 表示不進入子節點
NodeVisitor = Callable[["Node", int, Optional["Node"], int], Optional[bool]]


@dataclass(frozen=True)
class Node:
    type: NodeType
    content: Tuple["Node", ...] = ()
    text: str = ""
    marks: FrozenSet[str] = frozenset()
    attrs: Dict[str, Any] = field(default_factory=dict, hash=False)

    # =========================================================================
    # 建立
    # =========================================================================

    @classmethod
    def text_node(cls, text: str, marks: Iterable[str] = ()) -> "Node":
        if not text:
            raise DocumentError("Empty text nodes are not allowed")
        return cls(type=TEXT, text=text, marks=frozenset(marks))

    @classmethod
    def create(
        cls,
        node_type: NodeType,
        content: Sequence["Node"] = (),
        attrs: Optional[Dict[str, Any]] = None,
    ) -> "Node":
        if node_type.is_text:
            raise DocumentError("Use Node.text_node() for text nodes")
        for child in content:
            if not node_type.allows(child.type):
                raise DocumentError(f"{node_type.name} cannot contain {child.type.name}")
        return cls(type=node_type, content=normalize_content(content), attrs=dict(attrs or {}))

    def with_content(self, content: Sequence["Node"]) -> "Node":
        return Node(type=self.type, content=normalize_content(content), marks=self.marks, attrs=self.attrs)

    def cut(self, start: int = 0, end: Optional[int] = None) -> "Node":
        """只適用於文字節點：取 text[start:end]"""
        if not self.is_text:
            raise DocumentError("Only text nodes can be cut")
        return Node(type=TEXT, text=self.text[start:end], marks=self.marks)

    # =========================================================================
    # 類型判斷與大小
    # =========================================================================

    @property
    def is_text(self) -> bool:
        return self.type.is_text

    @property
    def is_block(self) -> bool:
        return self.type.is_block

    @property
    def is_inline(self) -> bool:
        return self.type.is_inline

    @property
    def is_leaf(self) -> bool:
        return self.type.is_leaf

    @property
    def is_textblock(self) -> bool:
        return self.type.is_textblock

    @property
    def content_size(self) -> int:
        return sum(child.node_size for child in self.content)

    @property
    def node_size(self) -> int:
        if self.is_text:
            return len(self.text)
        if self.is_leaf:
            return 1
        return self.content_size + 2

    @property
    def child_count(self) -> int:
        return len(self.content)

    @property
    def text_content(self) -> str:
        if self.is_text:
            return self.text
        return "".join(child.text_content for child in self.content)

    # =========================================================================
    # 走訪
    # =========================================================================

    def nodes_between(self, start: int, end: int, visit: NodeVisitor, offset: int = 0) -> None:
        """
        走訪與 [start, end) 重疊的所有後代節點

        Args:
            start, end: 相對於本節點內容起點的位置
            visit: f(node, pos, parent, index)，回傳 False 則不進入該節點的子節點
            offset: 加到回呼 pos 上的位移量
        """
        pos = 0
        for index, child in enumerate(self.content):
            if pos >= end:
                break
            child_end = pos + child.node_size
            if child_end > start:
                descend = visit(child, pos + offset, self, index)
                if descend is not False and child.content:
                    inner = pos + 1
                    child.nodes_between(
                        max(0, start - inner),
                        min(child.content_size, end - inner),
                        visit,
                        offset + inner,
                    )
            pos = child_end

    def descendants(self, visit: NodeVisitor) -> None:
        self.nodes_between(0, self.content_size, visit)

    def text_between(self, start: int, end: int) -> str:
        """取得 [start, end) 範圍內文字節點的文字（不含任何分隔符）"""
        self.check_position(start)
        self.check_position(end)
        parts: List[str] = []

        def visit(node: Node, pos: int, parent: Optional[Node], index: int) -> bool:
            if node.is_text:
                parts.append(node.text[max(start, pos) - pos:end - pos])
                return False
            return True

        if end > start:
            self.nodes_between(start, end, visit)
        return "".join(parts)

    # =========================================================================
    # 位置解析
    # =========================================================================

    def check_position(self, pos: int) -> None:
        if pos < 0 or pos > self.content_size:
            raise PositionError(pos, self.content_size)

    def resolve(self, pos: int) -> "ResolvedPos":
        """解析位置所在的父節點路徑"""
        self.check_position(pos)
        nodes = [self]
        starts = [0]
        indices: List[int] = []
        node, start = self, 0

        while True:
            offset = start
            descended = False
            for index, child in enumerate(node.content):
                child_end = offset + child.node_size
                if pos <= offset:
                    break
                if pos < child_end:
                    if child.is_text or child.is_leaf:
                        break
                    indices.append(index)
                    node, start = child, offset + 1
                    nodes.append(node)
                    starts.append(start)
                    descended = True
                    break
                offset = child_end
            if not descended:
                return ResolvedPos(pos=pos, nodes=tuple(nodes), starts=tuple(starts), indices=tuple(indices))

    def marks_at(self, pos: int) -> FrozenSet[str]:
        """位置前方（若無則後方）文字節點的 marks，供插入文字時繼承"""
        resolved = self.resolve(pos)
        before, after = split_content(resolved.parent.content, resolved.parent_offset)
        if before and before[-1].is_text:
            return before[-1].marks
        if after and after[0].is_text:
            return after[0].marks
        return frozenset()

    # =========================================================================
    # 替換
    # =========================================================================

    def slice_content(self, start: int, end: int) -> Tuple["Node", ...]:
        """取得同一父節點內 [start, end) 的子節點序列（文字節點會被切開）"""
        rstart, rend = self._resolve_range(start, end)
        _, rest = split_content(rstart.parent.content, rstart.parent_offset)
        middle, _ = split_content(rest, rend.parent_offset - rstart.parent_offset)
        return tuple(middle)

    def replace(self, start: int, end: int, nodes: Sequence["Node"] = ()) -> "Node":
        """
        以 nodes 取代 [start, end)，回傳新的根節點

        限制：
        - start 與 end 必須在同一個父節點內
        - nodes 必須符合父節點的內容類型（textblock 只接受 inline 節點）
        """
        rstart, rend = self._resolve_range(start, end)
        parent = rstart.parent
        for node in nodes:
            if not parent.type.allows(node.type):
                raise ReplaceError(f"{parent.type.name} cannot contain {node.type.name}")

        before, _ = split_content(parent.content, rstart.parent_offset)
        _, after = split_content(parent.content, rend.parent_offset)
        child = parent.with_content(list(before) + list(nodes) + list(after))

        for depth in range(rstart.depth - 1, -1, -1):
            ancestor = rstart.nodes[depth]
            content = list(ancestor.content)
            content[rstart.indices[depth]] = child
            child = ancestor.with_content(content)
        return child

    def _resolve_range(self, start: int, end: int) -> Tuple["ResolvedPos", "ResolvedPos"]:
        if start > end:
            raise ReplaceError(f"Invalid range {start}..{end}")
        rstart = self.resolve(start)
        rend = self.resolve(end)
        if not rstart.same_parent(rend):
            raise ReplaceError(f"Range {start}..{end} crosses node boundaries")
        return rstart, rend

    def __repr__(self) -> str:
        if self.is_text:
            marks = f"[{','.join(sorted(self.marks))}]" if self.marks else ""
            return f"{marks}{self.text!r}"
        if not self.content:
            return self.type.name
        return f"{self.type.name}({', '.join(repr(c) for c in self.content)})"


@dataclass(frozen=True)
class ResolvedPos:
    """
    解析後的位置

    nodes[0] 為根節點，nodes[-1] 為直接包含此位置的父節點；
    starts[d] 是 nodes[d] 內容起點的絕對位置；
    indices[d] 是 nodes[d + 1] 在 nodes[d] 中的索引。
    """

    pos: int
    nodes: Tuple[Node, ...]
    starts: Tuple[int, ...]
    indices: Tuple[int, ...]

    @property
    def depth(self) -> int:
        return len(self.nodes) - 1

    @property
    def parent(self) -> Node:
        return self.nodes[-1]

    @property
    def parent_offset(self) -> int:
        return self.pos - self.starts[-1]

    def start(self, depth: Optional[int] = None) -> int:
        return self.starts[self.depth if depth is None else depth]

    def end(self, depth: Optional[int] = None) -> int:
        depth = self.depth if depth is None else depth
        return self.starts[depth] + self.nodes[depth].content_size

    def same_parent(self, other: "ResolvedPos") -> bool:
        return self.depth == other.depth and self.start() == other.start()


def split_content(content: Sequence[Node], offset: int) -> Tuple[List[Node], List[Node]]:
    """在內容 offset 處切開子節點序列（只有文字節點會被切開）"""
    before: List[Node] = []
    after: List[Node] = []
    pos = 0
    for child in content:
        child_end = pos + child.node_size
        if child_end <= offset:
            before.append(child)
        elif pos >= offset:
            after.append(child)
        else:
            cut = offset - pos
            before.append(child.cut(0, cut))
            after.append(child.cut(cut))
        pos = child_end
    return before, after


def normalize_content(content: Iterable[Node]) -> Tuple[Node, ...]:
    """合併相鄰且 marks 相同的文字節點，並移除空文字節點"""
    result: List[Node] = []
    for node in content:
        if node.is_text:
            if not node.text:
                continue
            if result and result[-1].is_text and result[-1].marks == node.marks:
                result[-1] = Node(type=TEXT, text=result[-1].text + node.text, marks=node.marks)
                continue
        result.append(node)
    return tuple(result)
