import logging
from typing import List, Sequence

from template_auditor.model import Correction
from template_auditor.template.builder import fingerprint
from template_auditor.template.nodes import TemplateDocument

logger = logging.getLogger(__name__)


class AutocorrectionConflict(RuntimeError):
    """The template text changed after it was analyzed; its offsets are stale."""


class Corrector:
    """
    Applies corrections to the text a document was parsed from.

    Must only be used after every rule has finished with the document, and only
    against the exact text that was analyzed.
    """

    def __init__(self, document: TemplateDocument):
        self.document = document

    def apply(self, current_text: str, corrections: Sequence[Correction]) -> str:
        """
        Returns the corrected text.

        Raises:
            AutocorrectionConflict: If current_text is not the analyzed text.
        """
        if fingerprint(current_text) != self.document.fingerprint:
            raise AutocorrectionConflict(
                f"{self.document.path or '<string>'} changed since it was analyzed; refusing to autocorrect."
            )

        # Later offsets first so earlier ones stay valid. Insertions at the same offset keep rule order.
        ordered = sorted(
            enumerate(corrections),
            key=lambda item: (item[1].source_range.begin_pos, item[1].source_range.end_pos, item[0]),
            reverse=True,
        )

        applied: List[Correction] = []
        text = current_text
        for _, correction in ordered:
            if any(correction.source_range.overlaps(done.source_range) for done in applied):
                logger.warning(
                    "Dropping %s correction at %d-%d: overlaps another correction.",
                    correction.rule_id, correction.source_range.begin_pos, correction.source_range.end_pos
                )
                continue
            begin, end = correction.source_range.begin_pos, correction.source_range.end_pos
            text = text[:begin] + correction.replacement + text[end:]
            applied.append(correction)

        logger.debug("Applied %d correction(s) to %s.", len(applied), self.document.path or "<string>")
        return text
