# src/template_auditor/template/tag.py
import re
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field

from .nodes import Node, NodeKind, SourceRange, TemplateDocument

_PLACEHOLDER = "__template_auditor_code_{index}__"
_PLACEHOLDER_RE = re.compile(r"__template_auditor_code_(\d+)__")
_TAG_NAME_RE = re.compile(r"</?\s*([A-Za-z][^\s/>]*)")


class Fragment(BaseModel):
    """
    One piece of an attribute value: either a literal slice of the template or the
    embedded-code node the piece was sourced from.
    """
    model_config = ConfigDict(frozen=True)

    value: Optional[str] = None
    code_node: Optional[Node] = None

    @property
    def is_literal(self) -> bool:
        return self.code_node is None


class Tag(BaseModel):
    """Structured, read-only view of a tag node."""
    model_config = ConfigDict(frozen=True)

    name: str
    attributes: Dict[str, Tuple[Fragment, ...]] = Field(default_factory=dict)
    closing: bool = False
    self_closing: bool = False
    has_dynamic_attributes: bool = False
    source_range: SourceRange

    @classmethod
    def from_node(cls, node: Node) -> "Tag":
        """
        Reconstructs the tag from a tag node.

        Embedded-code blocks inside the tag are masked with placeholders before the
        opening tag is handed to BeautifulSoup, then mapped back to fragments.

        Raises:
            ValueError: If the node is not a tag node.
        """
        if node.kind is not NodeKind.TAG:
            raise ValueError(f"Cannot build a Tag from a '{node.kind.value}' node")

        masked = _mask_code(node)
        closing = masked.startswith("</")
        name_match = _TAG_NAME_RE.match(masked)
        name = name_match.group(1).lower() if name_match else ""
        self_closing = not closing and masked[:-1].rstrip().endswith("/")

        attributes: Dict[str, Tuple[Fragment, ...]] = {}
        dynamic = False
        if not closing:
            soup = BeautifulSoup(masked, "html.parser", multi_valued_attributes=None)
            element = soup.find()
            if element is not None:
                for attr_name, value in element.attrs.items():
                    # Code in attribute-name position, e.g. <a {{ attrs }}>
                    if _PLACEHOLDER_RE.search(attr_name):
                        dynamic = True
                        continue
                    attributes[attr_name.lower()] = _split_fragments(value or "", node.children)

        return cls(
            name=name,
            attributes=attributes,
            closing=closing,
            self_closing=self_closing,
            has_dynamic_attributes=dynamic,
            source_range=node.source_range,
        )

    def attribute(self, name: str) -> Tuple[Fragment, ...]:
        """Raw fragments for an attribute in document order; empty when absent."""
        return self.attributes.get(name.lower(), ())

    def is_opening_for(self, name: str) -> bool:
        return not self.closing and self.name == name

    def is_closing_for(self, name: str) -> bool:
        return self.closing and self.name == name

    def is_self_closing(self) -> bool:
        return self.self_closing


def iter_tags(document: TemplateDocument) -> Iterator[Tag]:
    """Yields a Tag for every tag node of the template, in document order."""
    for node in document.descendants_of(kind=NodeKind.TAG):
        yield Tag.from_node(node)


def _mask_code(node: Node) -> str:
    source = node.source
    offset = node.source_range.begin_pos
    for index in reversed(range(len(node.children))):
        child = node.children[index].source_range
        begin, end = child.begin_pos - offset, child.end_pos - offset
        source = source[:begin] + _PLACEHOLDER.format(index=index) + source[end:]
    return source


def _split_fragments(value: str, code_nodes: Sequence[Node]) -> Tuple[Fragment, ...]:
    fragments: List[Fragment] = []
    last = 0
    for match in _PLACEHOLDER_RE.finditer(value):
        if match.start() > last:
            fragments.append(Fragment(value=value[last:match.start()]))
        fragments.append(Fragment(code_node=code_nodes[int(match.group(1))]))
        last = match.end()
    if last < len(value) or not fragments:
        fragments.append(Fragment(value=value[last:]))
    return tuple(fragments)
