# src/template_auditor/template/nodes.py
from enum import Enum
from typing import Iterator, Optional, Tuple

from pydantic import BaseModel, ConfigDict

_WHITESPACE_CONTROL = ("-", "+")


class NodeKind(str, Enum):
    """Closed set of node kinds produced by the TemplateBuilder."""
    DOCUMENT = "document"
    TAG = "tag"
    TEXT = "text"
    EMBEDDED_CODE = "embedded_code"
    COMMENT = "comment"


class SourceRange(BaseModel):
    """
    Half-open range [begin_pos, end_pos) into the template source, counted in str
    characters (code points), not UTF-8 bytes.
    """
    model_config = ConfigDict(frozen=True)

    begin_pos: int
    end_pos: int

    @property
    def length(self) -> int:
        return self.end_pos - self.begin_pos

    def overlaps(self, other: "SourceRange") -> bool:
        """Zero-length ranges (insertions) only overlap when strictly inside the other range."""
        return self.begin_pos < other.end_pos and other.begin_pos < self.end_pos


class Node(BaseModel):
    """
    Immutable element of the parsed template tree.

    Tag nodes carry the embedded-code blocks found inside their attributes as children,
    text nodes carry the embedded-code blocks found inside the text run.
    """
    model_config = ConfigDict(frozen=True)

    kind: NodeKind
    source_range: SourceRange
    source: str
    children: Tuple["Node", ...] = ()

    @property
    def text(self) -> str:
        """Raw text of a text node (embedded code included, untrimmed)."""
        return self.source if self.kind is NodeKind.TEXT else ""

    @property
    def indicator(self) -> Optional[str]:
        """Opening delimiter of an embedded-code node: '{{' or '{%'."""
        if self.kind is not NodeKind.EMBEDDED_CODE:
            return None
        return self.source[:2]

    @property
    def code(self) -> Optional[str]:
        """
        Source of the embedded expression, without its delimiters and without the
        whitespace-control marks ('{{-', '{%+', '-}}', '+%}').
        """
        if self.kind is not NodeKind.EMBEDDED_CODE:
            return None
        inner = self.source[2:-2]
        if inner[:1] in _WHITESPACE_CONTROL:
            inner = inner[1:]
        if inner[-1:] in _WHITESPACE_CONTROL:
            inner = inner[:-1]
        return inner

    @property
    def is_output(self) -> bool:
        return self.indicator == "{{"


class TemplateDocument(BaseModel):
    """
    Read-only view over one parsed template.

    The root node's children form a flat sibling sequence of tag, text and comment
    nodes; tags are not nested into each other, so "the text between <a> and </a>"
    is a question about sibling adjacency.
    """
    model_config = ConfigDict(frozen=True)

    source: str
    fingerprint: str
    root: Node
    path: Optional[str] = None

    @property
    def children(self) -> Tuple[Node, ...]:
        return self.root.children

    def children_of(self, node: Optional[Node] = None) -> Tuple[Node, ...]:
        """Ordered children of a node (the root when omitted); empty for leaves."""
        return (node or self.root).children

    def descendants_of(self, node: Optional[Node] = None, kind: Optional[NodeKind] = None) -> Iterator[Node]:
        """
        Lazily yields descendants depth-first in pre-order, optionally filtered by kind.
        Each call starts a fresh walk.
        """
        stack = list(reversed(self.children_of(node)))
        while stack:
            current = stack.pop()
            if kind is None or current.kind is kind:
                yield current
            stack.extend(reversed(current.children))

    def text_of(self, node: Optional[Node] = None) -> str:
        """Concatenation of the text-bearing nodes under (and including) a node. Never trimmed."""
        node = node or self.root
        if node.kind is NodeKind.TEXT:
            return node.text
        return "".join(self.text_of(child) for child in node.children)

    def line_column(self, pos: int) -> Tuple[int, int]:
        """Returns a 1-based line and 0-based column for a character offset."""
        line = self.source.count("\n", 0, pos) + 1
        column = pos - (self.source.rfind("\n", 0, pos) + 1)
        return line, column
