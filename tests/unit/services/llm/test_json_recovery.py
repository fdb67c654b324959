"""Tests for JSON recovery from raw model output."""

import json
import time

import pytest

from casecoach.models.extraction import ExtractionFailureReason, ExtractionStrategy
from casecoach.services.llm.json_recovery import (
    StructureScanner,
    close_open_structures,
    extract_json,
    find_outermost_object,
    repair_truncated_json,
    strip_code_fences,
)

SAMPLE_DOCUMENT = {
    "overall": 3.5,
    "title": 'Fix {braces} and "quotes"',
    "tags": ["a", "b"],
    "nested": {"ok": True, "n": None},
    "count": 12,
    "last": "end",
}


class TestStructureScanner:
    """Tests for the shared string-aware scanner."""

    def test_skips_string_contents(self) -> None:
        """Characters inside strings are not yielded."""
        chars = [c for _, c in StructureScanner('{"a": "}"}')]
        assert chars == ["{", '"', '"', ":", " ", '"', '"', "}"]

    def test_escaped_quote_stays_in_string(self) -> None:
        """An escaped quote does not close the string."""
        scanner = StructureScanner('"a\\"b')
        list(scanner)
        assert scanner.in_string is True

    def test_start_offset(self) -> None:
        """Scanning begins at the given offset."""
        indices = [i for i, _ in StructureScanner("xx{}", start=2)]
        assert indices == [2, 3]


class TestStripCodeFences:
    """Tests for markdown fence removal."""

    def test_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self) -> None:
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_inside_prose(self) -> None:
        text = 'Here it is:\n```json\n{"a": 1}\n```\nDone.'
        assert strip_code_fences(text) == '{"a": 1}'

    def test_unfenced_text_is_trimmed(self) -> None:
        assert strip_code_fences('  {"a": 1}\n') == '{"a": 1}'


class TestFindOutermostObject:
    """Tests for balanced object location."""

    def test_object_in_prose(self) -> None:
        text = 'Sure: {"a": {"b": 1}} bye'
        start, end = find_outermost_object(text)
        assert text[start:end] == '{"a": {"b": 1}}'

    def test_braces_inside_strings_ignored(self) -> None:
        text = 'x {"a": "}{", "b": "{{"} y'
        start, end = find_outermost_object(text)
        assert text[start:end] == '{"a": "}{", "b": "{{"}'

    def test_no_object(self) -> None:
        assert find_outermost_object("no braces here") == (-1, None)

    def test_unclosed_object(self) -> None:
        assert find_outermost_object('text {"a": [1, 2') == (5, None)


class TestExtractJsonScenarios:
    """Documented extraction scenarios."""

    def test_fenced_json(self) -> None:
        outcome = extract_json('```json\n{"a": 1, "b": "x"}\n```')
        assert outcome.ok
        assert outcome.value == {"a": 1, "b": "x"}
        assert outcome.strategy is ExtractionStrategy.DIRECT

    def test_object_surrounded_by_prose(self) -> None:
        outcome = extract_json('Sure, here you go: {"a": {"nested": 1}} Hope that helps!')
        assert outcome.ok
        assert outcome.value == {"a": {"nested": 1}}
        assert outcome.strategy is ExtractionStrategy.BALANCED

    def test_truncated_mid_string(self) -> None:
        outcome = extract_json('{"a": 1, "b": "hello')
        assert outcome.ok
        assert outcome.value == {"a": 1, "b": "hello"}
        assert outcome.strategy is ExtractionStrategy.REPAIRED

    def test_truncated_with_nested_containers(self) -> None:
        outcome = extract_json('{"list": [1, 2, {"x": 3}')
        assert outcome.ok
        assert outcome.value == {"list": [1, 2, {"x": 3}]}
        assert outcome.strategy is ExtractionStrategy.REPAIRED


class TestExtractJson:
    """Behaviour of extract_json() beyond the documented scenarios."""

    @pytest.mark.parametrize(
        "value",
        [
            {"a": 1},
            {"list": [1, {"x": None}], "flag": False},
            [1, 2, 3],
            {"text": "```not a fence```"},
        ],
    )
    def test_valid_json_with_and_without_fence(self, value) -> None:
        """Fenced and unfenced valid JSON parse to the same value."""
        text = json.dumps(value)
        assert extract_json(text).value == json.loads(text)
        assert extract_json(f"```json\n{text}\n```").value == json.loads(text)

    def test_braces_inside_string_values(self) -> None:
        """Literal braces in strings do not end the object early."""
        outcome = extract_json('Result: {"tip": "use {a} and }b{", "n": 2} -- end')
        assert outcome.value == {"tip": "use {a} and }b{", "n": 2}

    def test_first_object_wins(self) -> None:
        outcome = extract_json('{"first": 1} and then {"second": 2}')
        assert outcome.value == {"first": 1}

    def test_dangling_key_is_dropped(self) -> None:
        """A key without its value is absent, never null-padded."""
        outcome = extract_json('{"a": 1, "b":')
        assert outcome.value == {"a": 1}

    def test_partial_key_is_dropped(self) -> None:
        outcome = extract_json('{"a": 1, "bet')
        assert outcome.value == {"a": 1}

    def test_incomplete_literal_is_dropped(self) -> None:
        outcome = extract_json('{"a": 1, "b": tr')
        assert outcome.value == {"a": 1}

    def test_partial_escape_is_dropped(self) -> None:
        outcome = extract_json('{"a": "line\\')
        assert outcome.value == {"a": "line"}

    def test_trailing_comma_before_truncation(self) -> None:
        outcome = extract_json('{"a": [1, 2,')
        assert outcome.value == {"a": [1, 2]}

    @pytest.mark.parametrize("text", ["", "   ", None, "no json here", "[unclosed"])
    def test_no_json_found(self, text) -> None:
        outcome = extract_json(text)
        assert not outcome.ok
        assert outcome.reason is ExtractionFailureReason.NO_JSON_FOUND

    def test_malformed_balanced_object(self) -> None:
        outcome = extract_json("prefix {'single': 'quotes'} suffix")
        assert not outcome.ok
        assert outcome.reason is ExtractionFailureReason.MALFORMED_AFTER_REPAIR

    def test_truncated_unrecoverable(self) -> None:
        outcome = extract_json("{a: 1, b: [2")
        assert not outcome.ok
        assert outcome.reason is ExtractionFailureReason.TRUNCATED_UNRECOVERABLE

    @pytest.mark.parametrize(
        "text",
        ["{{{{", "}}}}", '{"a": "\\', "```json\n", '{"a" 1', "{" * 2000, '"}{"', "\\u12"],
    )
    def test_garbage_never_raises(self, text) -> None:
        outcome = extract_json(text)
        assert outcome.ok or outcome.reason is not None


class TestTruncationRepair:
    """Truncation at every offset keeps what was complete."""

    def test_every_truncation_offset(self) -> None:
        text = json.dumps(SAMPLE_DOCUMENT)
        original_keys = list(SAMPLE_DOCUMENT)

        for offset in range(1, len(text) - 1):
            outcome = extract_json(text[:offset])
            assert outcome.ok, f"offset {offset}: {text[:offset]!r}"
            value = outcome.value
            assert isinstance(value, dict)

            keys = list(value)
            assert keys == original_keys[: len(keys)], text[:offset]
            for key in keys[:-1]:
                assert value[key] == SAMPLE_DOCUMENT[key], text[:offset]
            if keys and not isinstance(value[keys[-1]], (str, list, dict)):
                assert value[keys[-1]] == SAMPLE_DOCUMENT[keys[-1]], text[:offset]

    @pytest.mark.parametrize(
        "text, expected",
        [
            ('{"overall": 4', {}),
            ('{"overall": 4.5, "mece": 3', {"overall": 4.5}),
            ('{"scores": {"overall": 4.5, "mece": 3', {"scores": {"overall": 4.5}}),
            ('{"a": [1, 2', {"a": [1]}),
            ('{"a": 1e', {}),
        ],
    )
    def test_number_at_end_is_dropped(self, text, expected) -> None:
        """A number cut off by the end of input could have had more digits."""
        assert extract_json(text).value == expected

    def test_terminated_number_is_kept(self) -> None:
        assert extract_json('{"a": 4, ').value == {"a": 4}

    def test_complete_literal_at_end_is_kept(self) -> None:
        assert extract_json('{"a": 1, "b": true').value == {"a": 1, "b": True}
        assert extract_json('{"a": null').value == {"a": None}

    @pytest.mark.parametrize("unit", ["[", '{"b":'])
    def test_deep_truncated_nesting_is_fast(self, unit) -> None:
        """Repair time stays linear in nesting depth."""
        text = '{"a":' + unit * 16000

        started = time.perf_counter()
        outcome = extract_json(text)
        elapsed = time.perf_counter() - started

        assert not outcome.ok
        assert outcome.reason is ExtractionFailureReason.TRUNCATED_UNRECOVERABLE
        assert elapsed < 2.0

    def test_repair_returns_parseable_text(self) -> None:
        repaired = repair_truncated_json('{"a": {"b": [1, "x')
        assert json.loads(repaired) == {"a": {"b": [1, "x"]}}

    def test_repair_rejects_closed_object(self) -> None:
        """A complete but invalid object is not a truncation."""
        assert repair_truncated_json("{'a': 1}") is None

    def test_naive_close(self) -> None:
        assert close_open_structures('{"a": [1, "b') == '{"a": [1, "b"]}'

    def test_naive_close_strips_separators(self) -> None:
        assert close_open_structures('{"a": 1, ') == '{"a": 1}'
