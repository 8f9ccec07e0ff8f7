from typing import List

from template_auditor.model import Finding
from template_auditor.rules.core import Rule
from template_auditor.template.attributes import resolve
from template_auditor.template.nodes import TemplateDocument
from template_auditor.template.tag import Tag, iter_tags


def aria_hidden(tag: Tag) -> bool:
    """Hidden from assistive technology; a dynamic value is given the benefit of the doubt."""
    hidden = resolve(tag, "aria-hidden")
    return hidden.is_indeterminate or hidden.any_value(lambda value: bool(value.strip()))


class IframeHasTitle(Rule):
    rule_id = "Accessibility.IframeHasTitle"
    message = (
        "`<iframe>` with meaningful content should have a title attribute that identifies the content."
        " If `<iframe>` has no meaningful content, hide it from assistive technology with `aria-hidden='true'`."
    )
    supports_counter = True

    def run(self, document: TemplateDocument) -> List[Finding]:
        findings = []
        for tag in iter_tags(document):
            if not tag.is_opening_for("iframe"):
                continue

            if resolve(tag, "title").is_absent and not aria_hidden(tag):
                findings.append(self.finding(tag.source_range))
        return findings
