from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from template_auditor.template.nodes import SourceRange


class Finding(BaseModel):
    """
    Data model representing a single defect reported by a rule.

    The source range anchors both the report and any autocorrection; 'context' carries
    whatever the correction step needs (e.g. the corrected counter directive text).
    """
    model_config = ConfigDict(frozen=True)

    rule_id: str
    message: str
    source_range: SourceRange
    context: Optional[str] = None


class Correction(BaseModel):
    """A single text edit. A zero-length source range is an insertion."""
    model_config = ConfigDict(frozen=True)

    rule_id: str
    source_range: SourceRange
    replacement: str

    @property
    def is_insertion(self) -> bool:
        return self.source_range.length == 0


class RuleResult(BaseModel):
    """Final output of one rule on one template."""
    rule_id: str
    findings: List[Finding] = Field(default_factory=list)
    correction: Optional[Correction] = None


class AuditResult(BaseModel):
    """Output of all configured rules on one template, findings in document order."""
    path: Optional[str] = None
    findings: List[Finding] = Field(default_factory=list)
    corrections: List[Correction] = Field(default_factory=list)
