# src/template_auditor/rules/counter.py
"""
Suppression counter protocol.

A template may carry one comment per rule stating how many pre-existing findings of
that rule it is allowed to have:

    {# template-auditor:counter Accessibility.AvoidGenericLinkTextCounter 2 #}

Up to that many findings are absorbed; more than that surfaces a single finding for the
excess. Autocorrection always rewrites the directive to the actual count, so the ledger
converges to the truth and repeated runs leave the file unchanged.
"""
import logging
import re
from typing import List, Optional

from pydantic import BaseModel, Field

from template_auditor.model import Correction, Finding
from template_auditor.template.nodes import SourceRange

logger = logging.getLogger(__name__)

MARKER = "template-auditor:counter"

_DIRECTIVE_RE = re.compile(
    r"\{#\s*" + re.escape(MARKER) + r"\s+(?P<rule_id>\S+)\s+(?P<count>\d+)\s*#\}"
)


class CounterDirective(BaseModel):
    rule_id: str
    expected_count: int
    source_range: SourceRange


class CounterOutcome(BaseModel):
    findings: List[Finding] = Field(default_factory=list)
    correction: Optional[Correction] = None


def render_directive(rule_id: str, count: int) -> str:
    return f"{{# {MARKER} {rule_id} {count} #}}"


def find_directives(template_text: str, rule_id: str) -> List[CounterDirective]:
    """
    Returns the well-formed directives naming exactly this rule, in document order.
    A comment with the marker but a broken shape is not a directive.
    """
    directives = []
    for match in _DIRECTIVE_RE.finditer(template_text):
        if match.group("rule_id") != rule_id:
            continue
        directives.append(CounterDirective(
            rule_id=rule_id,
            expected_count=int(match.group("count")),
            source_range=SourceRange(begin_pos=match.start(), end_pos=match.end()),
        ))
    return directives


def apply(rule_id: str, raw_findings: List[Finding], template_text: str) -> CounterOutcome:
    """
    Reconciles a rule's raw findings with its counter directive.

    Args:
        rule_id (str): The rule's registered identifier.
        raw_findings (List[Finding]): The rule's findings in document order.
        template_text (str): The raw template the findings were produced from.

    Returns:
        CounterOutcome: The findings to surface (none, or one for the excess) and
                        the correction that sets the directive to the actual count.
    """
    directives = find_directives(template_text, rule_id)
    actual = len(raw_findings)
    replacement = render_directive(rule_id, actual)

    if len(directives) > 1:
        logger.warning(
            "Found %d '%s' directives for %s; ignoring all of them.", len(directives), MARKER, rule_id
        )
        findings = [Finding(
            rule_id=rule_id,
            message=f"Multiple {MARKER} directives for {rule_id}; none of them are applied.",
            source_range=directives[1].source_range,
        )]
        if actual > 0:
            findings.append(Finding(
                rule_id=rule_id,
                message=f"{rule_id}: {actual} offense(s) found and no usable {MARKER} directive.",
                source_range=raw_findings[0].source_range,
            ))
        findings.sort(key=lambda f: f.source_range.begin_pos)
        return CounterOutcome(findings=findings)

    directive = directives[0] if directives else None
    expected = directive.expected_count if directive else 0

    findings: List[Finding] = []
    if actual > expected:
        if directive:
            findings.append(Finding(
                rule_id=rule_id,
                message=f"Incorrect {MARKER} number for {rule_id}. Expected: {expected}, actual: {actual}.",
                source_range=directive.source_range,
                context=replacement,
            ))
        else:
            findings.append(Finding(
                rule_id=rule_id,
                message=f"{rule_id}: If you must, add {replacement} to bypass this check.",
                source_range=raw_findings[0].source_range,
                context=replacement,
            ))

    correction = None
    if directive and expected != actual:
        correction = Correction(rule_id=rule_id, source_range=directive.source_range, replacement=replacement)
    elif not directive and actual > 0:
        correction = Correction(
            rule_id=rule_id,
            source_range=SourceRange(begin_pos=0, end_pos=0),
            replacement=f"{replacement}\n",
        )

    return CounterOutcome(findings=findings, correction=correction)
