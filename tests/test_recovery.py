# ===============================================
# tests/test_recovery.py
# JSON recovery stages on typical model output.
# ===============================================

import json

import pytest

from src.gateway.errors import JSONRecoveryError
from src.gateway.orchestrator import FALLBACK_MARKER
from src.gateway.recovery import (
    PLACEHOLDER_RESULT,
    complete_truncated,
    extract_partial_fields,
    find_balanced_object,
    find_loose_object,
    looks_truncated,
    parse_json,
    recover_json,
    strip_markup,
    try_parse_partial,
)
from src.gateway.schemas import ResumeAnalysis


def test_fenced_json_is_unwrapped_exactly():
    assert recover_json('  ```json\n{"overall_score":85}\n```  ') == '{"overall_score":85}'


@pytest.mark.parametrize(
    "raw",
    [
        '```json\n{"a": [1, 2], "b": {"c": "d"}}\n```',
        '```json\n{"a": [1, 2], "b": {"c": "d"}}\n```   \n',
        '```\n{"a": [1, 2], "b": {"c": "d"}}\n```',
        '```json\n{"a": [1, 2], "b": {"c": "d"}}\n```\n<!-- Generated using fallback model -->',
        'Here is the analysis:\n```json\n{"a": [1, 2], "b": {"c": "d"}}\n```\nHope it helps!',
    ],
)
def test_fenced_variants_parse_to_the_same_object(raw):
    assert json.loads(recover_json(raw)) == {"a": [1, 2], "b": {"c": "d"}}


def test_unterminated_fence_is_stripped():
    assert strip_markup('```json\n{"a": 1') == '{"a": 1'


def test_balanced_scan_ignores_braces_inside_strings():
    text = '{"a": "}{"}'
    assert find_balanced_object(text) == text
    assert json.loads(find_balanced_object(text)) == {"a": "}{"}


def test_balanced_scan_handles_escaped_quotes():
    text = 'prefix {"a": "he said \\"}\\" loudly", "b": {"c": 1}} suffix {"d": 2}'
    found = find_balanced_object(text)
    assert json.loads(found) == {"a": 'he said "}" loudly', "b": {"c": 1}}


def test_prose_around_object_is_discarded():
    assert parse_json('Sure! {"x": {"y": 1}} Let me know if you need more.') == {"x": {"y": 1}}


def test_loose_boundaries():
    assert find_loose_object('noise {"a": 1} more {"b": 2} tail') == '{"a": 1} more {"b": 2}'
    assert find_loose_object("no braces here") is None


def test_truncated_array_is_closed_minimally():
    assert complete_truncated('{"summary":"abc","tags":["x","y"') == '{"summary":"abc","tags":["x","y"]}'
    assert parse_json('{"summary":"abc","tags":["x","y"') == {"summary": "abc", "tags": ["x", "y"]}


def test_dangling_key_is_dropped():
    assert parse_json('{"a": 1, "b":') == {"a": 1}
    assert parse_json('{"a": {"b": 1}, "c"') == {"a": {"b": 1}}


def test_unterminated_string_is_closed():
    assert parse_json('{"a": "hel') == {"a": "hel"}


def test_trailing_comma_in_nested_array():
    assert parse_json('{"items": [{"n": 1}, {"n": 2},') == {"items": [{"n": 1}, {"n": 2}]}


@pytest.mark.parametrize(
    "text,expected",
    [
        ('{"a":', True),
        ('{"a": "b",', True),
        ('{"a": "b", "c": ', True),
        ('{"a": "b"}', False),
        ('{"a": ["x"', False),
    ],
)
def test_looks_truncated(text, expected):
    assert looks_truncated(text) is expected


def test_parse_json_raises_when_nothing_recoverable():
    with pytest.raises(JSONRecoveryError):
        parse_json("I could not analyze this resume, sorry.")


@pytest.mark.parametrize("raw", ["", "   ", "total garbage", "```\n```"])
def test_recover_json_falls_back_to_placeholder(raw):
    out = json.loads(recover_json(raw))
    assert out == PLACEHOLDER_RESULT
    ResumeAnalysis.model_validate(out)


def test_recover_json_accepts_custom_placeholder():
    assert json.loads(recover_json("nope", placeholder={"error": True})) == {"error": True}


def test_fallback_marker_is_not_part_of_recovered_content():
    assert recover_json('{"ok":true}' + FALLBACK_MARKER) == '{"ok":true}'


def test_backticks_inside_string_values_are_kept():
    doc = {"overall_score": 72, "main_roast": "Your skills list reads like ```python``` soup"}
    assert json.loads(recover_json(json.dumps(doc))) == doc
    assert parse_json(json.dumps(doc) + "\n<!-- note -->") == doc


def test_partial_parse_with_backticks_in_strings():
    buf = '{"overall_score": 72, "main_roast": "Too much ```code``` here"}'
    assert try_parse_partial(buf) == {"overall_score": 72, "main_roast": "Too much ```code``` here"}


def test_non_ascii_is_preserved():
    assert recover_json('{"name": "José"}') == '{"name":"José"}'


def test_partial_fields_from_incomplete_buffer():
    buf = '{"overall_score": 72, "ats_score": 6'
    assert extract_partial_fields(buf + '0, "main_roast": "Your resu') == {
        "overall_score": 72,
        "ats_score": 60,
        "main_roast": "Your resu",
    }


def test_partial_fields_decode_closed_strings():
    buf = '{"analysis_headline": "Lead with \\"impact\\"", "improved_resume_score": 91, "improved_sections": ['
    assert extract_partial_fields(buf) == {
        "analysis_headline": 'Lead with "impact"',
        "improved_resume_score": 91,
    }


def test_partial_fields_none_when_nothing_matches():
    assert extract_partial_fields('{"resume_sections": [') is None


def test_try_parse_partial_prefers_full_parse():
    assert try_parse_partial('```json\n{"overall_score": 50, "x": [1]}\n```') == {"overall_score": 50, "x": [1]}
    assert try_parse_partial('{"score_category": "Go') == {"score_category": "Go"}
    assert try_parse_partial("{") is None
