from typing import List

from template_auditor.model import Finding
from template_auditor.rules.core import Rule
from template_auditor.template.nodes import TemplateDocument
from template_auditor.template.tag import iter_tags


class NoTitleAttribute(Rule):
    """The title attribute is only tolerated on <iframe>, where it names the frame."""

    rule_id = "Accessibility.NoTitleAttribute"
    message = (
        "The title attribute should never be used unless for an `<iframe>` as it is inaccessible"
        " for several groups of users."
    )
    supports_counter = True

    def run(self, document: TemplateDocument) -> List[Finding]:
        findings = []
        for tag in iter_tags(document):
            if tag.closing or tag.name == "iframe":
                continue

            # Presence is known even when the value comes from code.
            if tag.attribute("title"):
                findings.append(self.finding(tag.source_range))
        return findings
