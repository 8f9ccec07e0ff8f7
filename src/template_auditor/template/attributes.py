# src/template_auditor/template/attributes.py
import logging
from itertools import product
from typing import Callable, FrozenSet, List

from pydantic import BaseModel, ConfigDict, Field

from .expression import literal_values, parse_expression
from .tag import Tag

logger = logging.getLogger(__name__)


class AttributeValueSet(BaseModel):
    """
    Outcome of resolving one attribute.

    Exactly one of three states:
      * absent: no values and not indeterminate
      * known: a finite set of candidate strings
      * indeterminate: the value depends on dynamic content that cannot be reduced to a literal
    """
    model_config = ConfigDict(frozen=True)

    values: FrozenSet[str] = Field(default_factory=frozenset)
    indeterminate: bool = False

    @property
    def is_indeterminate(self) -> bool:
        return self.indeterminate

    @property
    def is_absent(self) -> bool:
        return not self.indeterminate and not self.values

    @property
    def is_present(self) -> bool:
        return not self.is_absent

    @property
    def is_known(self) -> bool:
        return not self.indeterminate and bool(self.values)

    def any_value(self, predicate: Callable[[str], bool]) -> bool:
        """True if any known candidate satisfies the predicate. Always False when indeterminate."""
        return not self.indeterminate and any(predicate(v) for v in self.values)


ABSENT = AttributeValueSet()
INDETERMINATE = AttributeValueSet(indeterminate=True)


def resolve(tag: Tag, attribute_name: str) -> AttributeValueSet:
    """
    Resolves the possible values of an attribute on a tag.

    Literal fragments are concatenated in document order. An embedded-code fragment
    contributes its literal value(s) when it is a plain string literal (or a conditional
    between literals); any other expression makes the whole attribute indeterminate.
    No partial evaluation is attempted.
    """
    fragments = tag.attribute(attribute_name)
    if not fragments:
        return INDETERMINATE if tag.has_dynamic_attributes else ABSENT

    pieces: List[FrozenSet[str]] = []
    for fragment in fragments:
        if fragment.is_literal:
            pieces.append(frozenset((fragment.value or "",)))
            continue

        code_node = fragment.code_node
        if not code_node.is_output:
            return INDETERMINATE

        candidates = literal_values(parse_expression(code_node.code))
        if candidates is None:
            logger.debug("Attribute '%s' on <%s> is indeterminate: %s", attribute_name, tag.name, code_node.source)
            return INDETERMINATE
        pieces.append(candidates)

    return AttributeValueSet(values=frozenset("".join(combo) for combo in product(*pieces)))
