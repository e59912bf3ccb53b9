"""
文件建構捷徑

使用範例:
    >>> from proofmark.document.builders import doc, p, text, code_block
    >>> d = doc(p("I has a cat."), code_block("x = 1"), p("It run fast."))
"""

from typing import Iterable, Optional, Union

from .model import Node
from .schema import DEFAULT_SCHEMA, Schema

Child = Union[Node, str]


def _children(children: Iterable[Child]) -> list:
    return [Node.text_node(c) if isinstance(c, str) else c for c in children if c != ""]


def node(name: str, *children: Child, schema: Schema = DEFAULT_SCHEMA, **attrs) -> Node:
    return Node.create(schema[name], _children(children), attrs)


def text(value: str, *marks: str) -> Node:
    return Node.text_node(value, marks)


def doc(*children: Child) -> Node:
    return node("doc", *children)


def p(*children: Child) -> Node:
    return node("paragraph", *children)


def heading(*children: Child, level: int = 1) -> Node:
    return node("heading", *children, level=level)


def blockquote(*children: Child) -> Node:
    return node("blockquote", *children)


def bullet_list(*children: Child) -> Node:
    return node("bullet_list", *children)


def ordered_list(*children: Child) -> Node:
    return node("ordered_list", *children)


def list_item(*children: Child) -> Node:
    return node("list_item", *children)


def code_block(*children: Child, language: Optional[str] = None) -> Node:
    return node("code_block", *children, language=language)


def br() -> Node:
    return node("hard_break")


def hr() -> Node:
    return node("horizontal_rule")


def image(src: str = "", alt: str = "") -> Node:
    return node("image", src=src, alt=alt)
