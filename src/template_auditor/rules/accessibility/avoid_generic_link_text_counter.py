import ast
import logging
from typing import List, Optional

from template_auditor.model import Finding
from template_auditor.rules.core import Rule
from template_auditor.template.attributes import resolve
from template_auditor.template.expression import callee_name, iter_calls, parse_expression, string_literal
from template_auditor.template.nodes import Node, NodeKind, SourceRange, TemplateDocument
from template_auditor.template.tag import Tag

logger = logging.getLogger(__name__)

BANNED_GENERIC_TEXT = (
    "Read more",
    "Learn more",
    "Click here",
    "More",
    "Link",
    "Here",
)
_BANNED_LOWER = frozenset(text.lower() for text in BANNED_GENERIC_TEXT)

LINK_HELPERS = ("link_to",)

ARIA_NAME_ATTRIBUTES = ("aria-label", "aria-labelledby")
ARIA_NESTED_KEYS = ("label", "labelledby")


def banned_text(text: str) -> bool:
    return text.lower() in _BANNED_LOWER


def valid_accessible_name(aria_label: str, text: str) -> bool:
    """Label in Name (WCAG 2.5.3): the accessible name should start with the visible text."""
    return aria_label.startswith(text)


def _tag_or_none(node: Optional[Node]) -> Optional[Tag]:
    if node is None or node.kind is not NodeKind.TAG:
        return None
    return Tag.from_node(node)


def _normalize_key(key: str) -> str:
    # link_to('More', aria_label='...') spells the attribute as a Python identifier.
    return key.replace("_", "-")


def _mapping_names_link(mapping: ast.Dict) -> bool:
    """True if a dict literal carries (or may carry) an accessible name for the link."""
    for key, value in zip(mapping.keys, mapping.values):
        if key is None:
            return True  # {**other}: keys unknown
        name = string_literal(key)
        if name is None:
            return True
        name = _normalize_key(name)
        if name in ARIA_NAME_ATTRIBUTES:
            return True
        if name == "aria" and _aria_value_names_link(value):
            return True
    return False


def _aria_value_names_link(value: ast.expr) -> bool:
    if not isinstance(value, ast.Dict):
        return True
    for key in value.keys:
        if key is None:
            return True
        name = string_literal(key)
        if name is None or name in ARIA_NESTED_KEYS:
            return True
    return False


def _call_names_link(call: ast.Call) -> bool:
    for keyword in call.keywords:
        if keyword.arg is None:
            if not isinstance(keyword.value, ast.Dict) or _mapping_names_link(keyword.value):
                return True
            continue
        name = _normalize_key(keyword.arg)
        if name in ARIA_NAME_ATTRIBUTES:
            return True
        if name == "aria" and _aria_value_names_link(keyword.value):
            return True

    for arg in call.args[1:]:
        if isinstance(arg, ast.Dict) and _mapping_names_link(arg):
            return True
    return False


class AvoidGenericLinkTextCounter(Rule):
    """
    Flags links whose only visible text is generic ("Learn more", "Click here", ...),
    both as literal <a> markup and as link_to(...) helper calls.
    """

    rule_id = "Accessibility.AvoidGenericLinkTextCounter"
    message = (
        "Avoid using generic link text such as "
        f"{', '.join(BANNED_GENERIC_TEXT)} which do not make sense in isolation."
    )
    supports_counter = True
    counter_default = True

    def run(self, document: TemplateDocument) -> List[Finding]:
        findings = self._check_link_tags(document)
        findings.extend(self._check_link_helpers(document))
        findings.sort(key=lambda f: f.source_range.begin_pos)
        return findings

    # --- <a>Learn more</a> ---

    def _check_link_tags(self, document: TemplateDocument) -> List[Finding]:
        findings = []
        siblings = document.children_of()
        for index, current in enumerate(siblings):
            if current.kind is not NodeKind.TEXT:
                continue

            text = current.text.strip()
            if not banned_text(text):
                continue

            previous = siblings[index - 1] if index > 0 else None
            following = siblings[index + 1] if index + 1 < len(siblings) else None
            opening = _tag_or_none(previous)
            closing = _tag_or_none(following)
            if not opening or not closing:
                continue
            if not (opening.is_opening_for("a") and closing.is_closing_for("a")):
                continue

            if self._has_accessible_name(opening, text):
                continue

            findings.append(self.finding(SourceRange(
                begin_pos=opening.source_range.begin_pos,
                end_pos=current.source_range.end_pos,
            )))
        return findings

    def _has_accessible_name(self, opening: Tag, text: str) -> bool:
        aria_label = resolve(opening, "aria-label")
        aria_labelledby = resolve(opening, "aria-labelledby")

        # Neither can be judged statically: a label set from code, or a reference to another element.
        if aria_label.is_indeterminate or aria_labelledby.is_indeterminate:
            return True
        if aria_labelledby.any_value(lambda value: bool(value.strip())):
            return True

        return aria_label.any_value(lambda value: valid_accessible_name(value, text))

    # --- {{ link_to('Learn more', url) }} ---

    def _check_link_helpers(self, document: TemplateDocument) -> List[Finding]:
        findings = []
        for node in document.descendants_of(kind=NodeKind.EMBEDDED_CODE):
            if not node.is_output:
                continue

            expr = parse_expression(node.code)
            if expr is None:
                continue

            call = next(iter_calls(expr), None)
            if call is None or callee_name(call) not in LINK_HELPERS or not call.args:
                continue

            link_text = string_literal(call.args[0])
            if link_text is None or not banned_text(link_text.strip()):
                continue

            # Any aria name on the call is taken at face value; interpolated labels cannot be compared.
            if _call_names_link(call):
                continue

            findings.append(self.finding(node.source_range))
        return findings
