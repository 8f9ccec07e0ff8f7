# tests/core/test_corrector.py
import logging

import pytest

from template_auditor.corrector import AutocorrectionConflict, Corrector
from template_auditor.model import Correction
from template_auditor.template.builder import TemplateBuilder
from template_auditor.template.nodes import SourceRange


def edit(begin, end, replacement, rule_id="Test.Rule"):
    return Correction(rule_id=rule_id, source_range=SourceRange(begin_pos=begin, end_pos=end), replacement=replacement)


@pytest.fixture
def document():
    return TemplateBuilder().parse_template("abcdefghij", path="t.html")


def test_applies_edits_back_to_front(document):
    corrected = Corrector(document).apply("abcdefghij", [edit(0, 2, "XY1"), edit(5, 6, "")])

    assert corrected == "XY1cdeghij"


def test_no_corrections_returns_the_text(document):
    assert Corrector(document).apply("abcdefghij", []) == "abcdefghij"


def test_insertions_at_the_same_offset_keep_their_order(document):
    corrected = Corrector(document).apply("abcdefghij", [edit(0, 0, "1\n", "A"), edit(0, 0, "2\n", "B")])

    assert corrected == "1\n2\nabcdefghij"


def test_overlapping_edit_is_dropped_with_warning(document, caplog):
    with caplog.at_level(logging.WARNING, logger="template_auditor.corrector"):
        corrected = Corrector(document).apply("abcdefghij", [edit(2, 6, "-"), edit(4, 8, "+")])

    assert corrected == "abcd+ij"
    assert "overlaps another correction" in caplog.text


def test_changed_text_is_a_conflict(document):
    with pytest.raises(AutocorrectionConflict, match="t.html changed"):
        Corrector(document).apply("abcdefghiJ", [edit(0, 1, "z")])
