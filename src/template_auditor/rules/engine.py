# src/template_auditor/rules/engine.py
import logging
from typing import List, Mapping, Optional

from template_auditor.model import AuditResult, RuleResult
from template_auditor.template.nodes import TemplateDocument
from . import counter
from .core import Rule, RuleConfig
from .registry import RuleRegistry

logger = logging.getLogger(__name__)


class RuleEngine:
    """
    Runs audit rules over a parsed template.

    Each rule's raw findings are put in document order and, where the rule supports it
    and the configuration enables it, passed through the suppression counter protocol.
    The document is never mutated; corrections are returned for the caller to apply
    once every rule has finished.
    """

    def __init__(
            self,
            rules: Optional[List[Rule]] = None,
            configs: Optional[Mapping[str, RuleConfig]] = None
    ):
        self.rules = rules if rules is not None else RuleRegistry.build(configs)

    def run_rule(self, rule: Rule, document: TemplateDocument) -> RuleResult:
        """
        Runs a single rule.

        Args:
            rule (Rule): The rule instance to run.
            document (TemplateDocument): The parsed template.

        Returns:
            RuleResult: Surfaced findings and an optional directive correction.
        """
        raw_findings = sorted(rule.run(document), key=lambda f: f.source_range.begin_pos)

        if not rule.counter_active:
            return RuleResult(rule_id=rule.rule_id, findings=raw_findings)

        outcome = counter.apply(rule.rule_id, raw_findings, document.source)
        logger.debug(
            "%s: %d raw finding(s), %d surfaced after counter.",
            rule.rule_id, len(raw_findings), len(outcome.findings)
        )
        return RuleResult(rule_id=rule.rule_id, findings=outcome.findings, correction=outcome.correction)

    def run(self, document: TemplateDocument) -> AuditResult:
        """Runs every configured rule and merges the results in document order."""
        result = AuditResult(path=document.path)
        for rule in self.rules:
            rule_result = self.run_rule(rule, document)
            result.findings.extend(rule_result.findings)
            if rule_result.correction:
                result.corrections.append(rule_result.correction)

        result.findings.sort(key=lambda f: f.source_range.begin_pos)
        return result
