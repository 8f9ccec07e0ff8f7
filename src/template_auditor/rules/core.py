# src/template_auditor/rules/core.py
from abc import ABC, abstractmethod
from typing import ClassVar, List, Optional

from pydantic import BaseModel

from template_auditor.model import Finding
from template_auditor.template.nodes import SourceRange, TemplateDocument


class RuleConfig(BaseModel):
    """
    Per-rule toggles read from the 'rules' section of settings.json.
    counter_enabled=None falls back to the rule's own default.
    """
    enabled: bool = True
    counter_enabled: Optional[bool] = None


class Rule(ABC):
    """
    Contract every audit rule implements.

    A rule is a pure function of one parsed template (and its configuration) to raw
    findings in document order. It keeps no state between templates.
    """

    rule_id: ClassVar[str]
    message: ClassVar[str]
    supports_counter: ClassVar[bool] = False
    counter_default: ClassVar[bool] = False

    def __init__(self, config: Optional[RuleConfig] = None):
        self.config = config or RuleConfig()

    @property
    def counter_active(self) -> bool:
        """Whether the suppression counter protocol wraps this rule's raw findings."""
        if not self.supports_counter:
            return False
        if self.config.counter_enabled is None:
            return self.counter_default
        return self.config.counter_enabled

    @abstractmethod
    def run(self, document: TemplateDocument) -> List[Finding]:
        """Analyzes one template and returns its raw findings."""

    def finding(self, source_range: SourceRange, message: Optional[str] = None) -> Finding:
        return Finding(rule_id=self.rule_id, message=message or self.message, source_range=source_range)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.rule_id}>"
