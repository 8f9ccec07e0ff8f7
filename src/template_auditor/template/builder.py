# src/template_auditor/template/builder.py
import hashlib
import logging
import re
from typing import List, Optional

from .nodes import Node, NodeKind, SourceRange, TemplateDocument

logger = logging.getLogger(__name__)

# Anything that ends a plain text run.
_SPECIAL = re.compile(r"\{[{%#]|<!--|</?[A-Za-z]")

_CODE_CLOSERS = {"{{": "}}", "{%": "%}"}
_COMMENT_CLOSERS = {"{#": "#}", "<!--": "-->"}

_OPENING_BRACKETS = "([{"
_CLOSING_BRACKETS = ")]}"


class MalformedTemplateError(ValueError):
    """Raised when a template cannot be tokenized; the whole file is skipped."""

    def __init__(self, message: str, pos: Optional[int] = None):
        super().__init__(message if pos is None else f"{message} (at offset {pos})")
        self.pos = pos


def fingerprint(source: str) -> str:
    """Content hash used to detect that a file changed between analysis and autocorrection."""
    return "sha256:" + hashlib.sha256(source.encode("utf-8")).hexdigest()


def _node(kind: NodeKind, source: str, begin: int, end: int, children: Optional[List[Node]] = None) -> Node:
    return Node(
        kind=kind,
        source_range=SourceRange(begin_pos=begin, end_pos=end),
        source=source[begin:end],
        children=tuple(children or ()),
    )


class TemplateBuilder:
    """
    Tokenizes raw template text into a TemplateDocument.

    The result is a flat sequence of tag, text and comment nodes. Text runs keep the
    embedded-code blocks they contain as children; tags keep the blocks found in
    their attribute values.
    """

    def parse_template(self, source: str, path: Optional[str] = None) -> TemplateDocument:
        """
        Parses a template into its node tree.

        Args:
            source (str): The raw template text.
            path (Optional[str]): Where the text came from, for reporting only.

        Returns:
            TemplateDocument: The read-only tree view over the template.

        Raises:
            MalformedTemplateError: On unterminated tags, comments or code blocks.
        """
        if not isinstance(source, str):
            raise MalformedTemplateError(f"Template source must be text, got {type(source).__name__}")

        children: List[Node] = []
        text_start: Optional[int] = None
        text_children: List[Node] = []

        def flush_text(end: int) -> None:
            nonlocal text_start, text_children
            if text_start is not None and end > text_start:
                children.append(_node(NodeKind.TEXT, source, text_start, end, text_children))
            text_start = None
            text_children = []

        pos = 0
        length = len(source)
        while pos < length:
            match = _SPECIAL.search(source, pos)
            if not match:
                if text_start is None:
                    text_start = pos
                pos = length
                break

            start = match.start()
            if text_start is None and start > pos:
                text_start = pos
            opener = match.group(0)

            if opener in _CODE_CLOSERS:
                if text_start is None:
                    text_start = start
                code_node = self._scan_code(source, start)
                text_children.append(code_node)
                pos = code_node.source_range.end_pos
            elif opener in _COMMENT_CLOSERS:
                flush_text(start)
                end = self._scan_comment(source, start, opener)
                children.append(_node(NodeKind.COMMENT, source, start, end))
                pos = end
            else:
                flush_text(start)
                tag_node = self._scan_tag(source, start)
                children.append(tag_node)
                pos = tag_node.source_range.end_pos

        flush_text(length)

        root = _node(NodeKind.DOCUMENT, source, 0, length, children)
        logger.debug("Parsed template %s into %d top-level nodes.", path or "<string>", len(children))
        return TemplateDocument(source=source, fingerprint=fingerprint(source), root=root, path=path)

    # --- Scanners ---

    def _scan_comment(self, source: str, start: int, opener: str) -> int:
        closer = _COMMENT_CLOSERS[opener]
        end = source.find(closer, start + len(opener))
        if end == -1:
            raise MalformedTemplateError(f"Unterminated comment '{opener}'", start)
        return end + len(closer)

    def _scan_code(self, source: str, start: int) -> Node:
        """
        Finds the end of a '{{ }}' or '{% %}' block.
        Quotes and brackets are tracked so that a dict literal's '}}' does not close the block.
        """
        opener = source[start:start + 2]
        closer = _CODE_CLOSERS[opener]
        depth = 0
        quote = None
        i = start + 2
        length = len(source)
        while i < length:
            ch = source[i]
            if quote:
                if ch == "\\":
                    i += 2
                    continue
                if ch == quote:
                    quote = None
            elif depth == 0 and source.startswith(closer, i):
                return _node(NodeKind.EMBEDDED_CODE, source, start, i + len(closer))
            elif ch in "'\"":
                quote = ch
            elif ch in _OPENING_BRACKETS:
                depth += 1
            elif ch in _CLOSING_BRACKETS and depth > 0:
                depth -= 1
            i += 1
        raise MalformedTemplateError(f"Unterminated code block '{opener}'", start)

    def _scan_tag(self, source: str, start: int) -> Node:
        """
        Finds the closing '>' of a tag, skipping quoted values and embedded code.
        A quote only opens a value directly after '=', so an apostrophe inside an
        unquoted value (data-note=don't) is plain text.
        """
        code_nodes: List[Node] = []
        quote = None
        after_equals = False
        i = start + 1
        length = len(source)
        while i < length:
            if source.startswith(("{{", "{%"), i):
                code_node = self._scan_code(source, i)
                code_nodes.append(code_node)
                i = code_node.source_range.end_pos
                after_equals = False
                continue
            ch = source[i]
            if quote:
                if ch == quote:
                    quote = None
            elif after_equals and ch in "'\"":
                quote = ch
                after_equals = False
            elif ch == ">":
                return _node(NodeKind.TAG, source, start, i + 1, code_nodes)
            elif ch == "=":
                after_equals = True
            elif not ch.isspace():
                after_equals = False
            i += 1
        raise MalformedTemplateError("Unterminated tag", start)
