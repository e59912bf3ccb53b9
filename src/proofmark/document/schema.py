"""
文件結構定義 (Schema)

每個節點類型宣告：
- group: "block" 或 "inline"
- content: 子節點類型 ("block" / "inline" / "none")，"none" 表示葉節點
- is_code: 是否為原樣程式碼區塊（不輸出文字、不計 offset、不標註）
- is_line_break: 行內換行葉節點（例如 hard_break）
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator

from proofmark.core.errors import DocumentError


@dataclass(frozen=True)
class NodeType:
    name: str
    group: str = "block"
    content: str = "none"
    is_code: bool = False
    is_line_break: bool = False

    @property
    def is_block(self) -> bool:
        return self.group == "block"

    @property
    def is_inline(self) -> bool:
        return self.group == "inline"

    @property
    def is_text(self) -> bool:
        return self.name == "text"

    @property
    def is_leaf(self) -> bool:
        return self.content == "none"

    @property
    def is_textblock(self) -> bool:
        return self.is_block and self.content == "inline"

    def allows(self, child: "NodeType") -> bool:
        """此節點是否可包含 child 類型的子節點"""
        if self.content == "none":
            return False
        return child.group == self.content


TEXT = NodeType("text", group="inline")


class Schema:
    """
    節點類型註冊表

    使用範例:
        >>> schema = Schema([NodeType("doc", content="block"), NodeType("paragraph", content="inline")])
        >>> schema["paragraph"].is_textblock
        True
    """

    def __init__(self, node_types: Iterable[NodeType], top_node: str = "doc"):
        self._types: Dict[str, NodeType] = {TEXT.name: TEXT}
        for node_type in node_types:
            self._types[node_type.name] = node_type
        if top_node not in self._types:
            raise DocumentError(f"Schema is missing top node type {top_node!r}")
        self.top_node_type = self._types[top_node]

    def __getitem__(self, name: str) -> NodeType:
        try:
            return self._types[name]
        except KeyError:
            raise DocumentError(f"Unknown node type {name!r}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[NodeType]:
        return iter(self._types.values())

    @property
    def code_types(self) -> frozenset:
        return frozenset(t.name for t in self._types.values() if t.is_code)


DEFAULT_SCHEMA = Schema(
    [
        NodeType("doc", group="block", content="block"),
        NodeType("paragraph", content="inline"),
        NodeType("heading", content="inline"),
        NodeType("blockquote", content="block"),
        NodeType("bullet_list", content="block"),
        NodeType("ordered_list", content="block"),
        NodeType("list_item", content="block"),
        NodeType("code_block", content="inline", is_code=True),
        NodeType("horizontal_rule"),
        NodeType("hard_break", group="inline", is_line_break=True),
        NodeType("image", group="inline"),
    ]
)
