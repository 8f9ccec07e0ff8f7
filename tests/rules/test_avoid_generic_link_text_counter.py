# tests/rules/test_avoid_generic_link_text_counter.py
import pytest

from template_auditor.corrector import Corrector
from template_auditor.rules.accessibility.avoid_generic_link_text_counter import AvoidGenericLinkTextCounter
from template_auditor.rules.core import RuleConfig
from template_auditor.rules.engine import RuleEngine
from template_auditor.template.builder import TemplateBuilder

RULE_ID = "Accessibility.AvoidGenericLinkTextCounter"


@pytest.fixture
def rule():
    """The rule with the counter protocol switched off, so raw findings surface."""
    return AvoidGenericLinkTextCounter(RuleConfig(counter_enabled=False))


def offenses(rule, source):
    doc = TemplateBuilder().parse_template(source)
    return RuleEngine([rule]).run(doc).findings


@pytest.mark.parametrize("text", ["Click here", "Learn more", "Read more", "More", "Link", "Here"])
def test_warns_on_banned_link_text(rule, text):
    found = offenses(rule, f"<a>{text}</a>")

    assert len(found) == 1
    assert found[0].rule_id == RULE_ID
    assert "Avoid using generic link text" in found[0].message


def test_banned_text_match_is_case_insensitive_and_trimmed(rule):
    assert len(offenses(rule, '<a href="/docs">\n   LEARN MORE \n</a>')) == 1


def test_finding_spans_opening_tag_and_text(rule):
    (finding,) = offenses(rule, 'Intro <a href="/x">Click here</a>')

    assert finding.source_range.begin_pos == 6
    assert finding.source_range.end_pos == len('Intro <a href="/x">Click here')


def test_does_not_warn_when_banned_text_is_part_of_more_text(rule):
    assert offenses(rule, "<a>Learn more about GitHub Stars</a>") == []


def test_does_not_warn_outside_links(rule):
    assert offenses(rule, "<button>Learn more</button>") == []
    assert offenses(rule, "<p>More</p>") == []
    assert offenses(rule, "Learn more") == []


def test_ignores_when_aria_label_with_variable_is_set_on_link_tag(rule):
    assert offenses(rule, '<a aria-label="{{ tooltip_text }}">Learn more</a>\n') == []


def test_flags_when_aria_label_does_not_include_visible_link_text(rule):
    assert len(offenses(rule, '<a aria-label="GitHub Sponsors">Learn more</a>\n')) == 1


def test_does_not_flag_when_aria_label_includes_visible_link_text(rule):
    assert offenses(rule, '<a aria-label="Learn more about GitHub Sponsors">Learn more</a>\n') == []


def test_aria_label_prefix_comparison_is_case_sensitive(rule):
    assert len(offenses(rule, '<a aria-label="learn more about GitHub Sponsors">Learn more</a>')) == 1


def test_ignores_when_aria_labelledby_is_set_on_link_tag(rule):
    assert offenses(rule, "<a aria-labelledby='someElement'>Click here</a>") == []


def test_empty_aria_labelledby_does_not_excuse_the_link(rule):
    assert len(offenses(rule, "<a aria-labelledby=''>Click here</a>")) == 1


def test_ignores_link_with_dynamic_attribute_spread(rule):
    assert offenses(rule, "<a {{ link_attrs }}>Click here</a>") == []


def test_warns_when_link_helper_text_is_banned_text(rule):
    found = offenses(rule, "{{ link_to('click here', redirect_url, id='redirect') }}")

    assert len(found) == 1
    assert found[0].source_range.begin_pos == 0


@pytest.mark.parametrize("source", [
    "{{- link_to('More', url) -}}",
    "{{+ link_to('More', url) }}",
    "{{ link_to('More', url) -}}",
])
def test_warns_on_link_helper_with_whitespace_control(rule, source):
    assert len(offenses(rule, source)) == 1


def test_whitespace_controlled_aria_label_is_compared(rule):
    assert offenses(rule, "<a aria-label=\"{{- 'Learn more about Sponsors' -}}\">Learn more</a>") == []
    assert len(offenses(rule, "<a aria-label=\"{{- 'GitHub Sponsors' -}}\">Learn more</a>")) == 1


def test_apostrophe_in_unquoted_attribute_does_not_hide_findings(rule):
    source = "<a href=/x data-note=don't>Here</a>\n<p>ok</p>\n<a>More</a>"

    assert len(offenses(rule, source)) == 2


def test_warns_on_attribute_access_helper(rule):
    assert len(offenses(rule, "{{ h.link_to('More', url) }}")) == 1


@pytest.mark.parametrize("source", [
    "{{ link_to('learn more', **{'aria-labelledby': 'element1234'}, id='redirect') }}",
    "{{ link_to('learn more', aria_label=some_variable, id='redirect') }}",
    "{{ link_to('learn more', aria_label=f'Learn {variable}', id='redirect') }}",
    "{{ link_to('learn more', **{'aria-label': 'learn more about GitHub'}, id='redirect') }}",
    "{{ link_to('learn more', aria={'label': 'learn more about GitHub'}, id='redirect') }}",
    "{{ link_to('learn more', aria={'labelledby': 'heading-1'}) }}",
    "{{ link_to('learn more', url, {'aria': {'label': 'learn more about GitHub'}}) }}",
    "{{ link_to('learn more', url, aria=aria_options) }}",
    "{{ link_to('learn more', url, **options) }}",
])
def test_ignores_link_helper_with_accessible_name(rule, source):
    assert offenses(rule, source) == []


def test_helper_with_unrelated_aria_keys_is_flagged(rule):
    assert len(offenses(rule, "{{ link_to('Read more', url, aria={'hidden': 'false'}) }}")) == 1


def test_does_not_warn_when_generic_text_is_link_helper_sub_text(rule):
    assert offenses(rule, "{{ link_to('click here to learn about github', redirect_url, id='redirect') }}") == []


def test_other_helpers_are_ignored(rule):
    assert offenses(rule, "{{ button_to('Click here', url) }}") == []
    assert offenses(rule, "{{ link_to(label, url) }}") == []


def test_unparsable_code_does_not_block_other_findings(rule):
    source = "{{ link_to 'More' }}\n<a>Here</a>\n{% for x in items %}{{ link_to('Link', x) }}{% endfor %}"
    found = offenses(rule, source)

    assert len(found) == 2
    assert found[0].source_range.begin_pos == source.index("<a>")
    assert found[1].source_range.begin_pos == source.index("{{ link_to('Link'")


def test_findings_are_in_document_order(rule):
    source = "{{ link_to('More', url) }}<a>Here</a>{{ link_to('Link', url) }}"
    found = offenses(rule, source)

    starts = [f.source_range.begin_pos for f in found]
    assert starts == sorted(starts) and len(starts) == 3


# --- Counter protocol (on by default for this rule) ---

def test_counter_is_on_by_default():
    assert AvoidGenericLinkTextCounter().counter_active


def test_does_not_warn_if_element_has_correct_counter_comment():
    source = "{# template-auditor:counter Accessibility.AvoidGenericLinkTextCounter 1 #}\n<a>Link</a>\n"
    result = RuleEngine([AvoidGenericLinkTextCounter()]).run(TemplateBuilder().parse_template(source))

    assert result.findings == []
    assert result.corrections == []


def test_without_counter_comment_one_finding_suggests_directive():
    source = "<a>Link</a>\n<a>More</a>\n"
    result = RuleEngine([AvoidGenericLinkTextCounter()]).run(TemplateBuilder().parse_template(source))

    assert len(result.findings) == 1
    assert result.findings[0].context == (
        "{# template-auditor:counter Accessibility.AvoidGenericLinkTextCounter 2 #}"
    )


def test_autocorrects_when_counter_is_not_correct():
    source = "{# template-auditor:counter Accessibility.AvoidGenericLinkTextCounter 2 #}\n<a>Link</a>\n"
    doc = TemplateBuilder().parse_template(source)
    result = RuleEngine([AvoidGenericLinkTextCounter()]).run(doc)

    corrected = Corrector(doc).apply(source, result.corrections)

    assert corrected != source
    assert corrected == "{# template-auditor:counter Accessibility.AvoidGenericLinkTextCounter 1 #}\n<a>Link</a>\n"
