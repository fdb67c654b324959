"""JSON recovery for model output.

Models are told to answer with pure JSON but regularly wrap it in markdown
fences, surround it with prose, or get cut off by the output token cap.
extract_json() applies escalating strategies and always returns an
ExtractionOutcome; it never raises on arbitrary text.

1. Strip a surrounding ``` fence (with or without a language tag)
2. Parse the text as-is
3. Parse the first balanced {...} object (braces inside strings ignored)
4. If that object never closes, repair the truncated tail and parse

Both the balanced scan and the repair scan walk the text with the same
StructureScanner so they agree on what is inside a string literal.
"""

import json
import re
from typing import Any, Iterator, List, Optional, Tuple

import structlog

from casecoach.models.extraction import (
    ExtractionFailureReason,
    ExtractionOutcome,
    ExtractionStrategy,
)

logger = structlog.get_logger()

_FENCED_BLOCK = re.compile(r"^```[\w+-]*[ \t]*\n?(.*?)\n?\s*```$", re.DOTALL)
_INNER_FENCE = re.compile(r"```[\w+-]*[ \t]*\n(.*?)\n\s*```", re.DOTALL)
_TRAILING_SEPARATORS = re.compile(r"[,:\s]+$")
_PARTIAL_ESCAPE = re.compile(r"(\\+)(u[0-9a-fA-F]{0,3})?$")

_CLOSERS = {"{": "}", "[": "]"}
_JSON_WHITESPACE = " \t\r\n"
_SCALAR_CHARS = set("-+.0123456789eEtruefalsn")

_UNPARSED = object()

# Container states used by the grammar-aware repair
_EXPECT_KEY_OR_END = "expect_key_or_end"
_EXPECT_KEY = "expect_key"
_EXPECT_COLON = "expect_colon"
_EXPECT_VALUE = "expect_value"
_EXPECT_VALUE_OR_END = "expect_value_or_end"
_AFTER_VALUE = "after_value"


class StructureScanner:
    """Walks text and yields the characters that sit outside string literals.

    The quote characters that open and close a string are yielded as well;
    check ``in_string`` right after receiving a quote to know whether it
    opened (True) or closed (False) the string. Backslash escapes are only
    honoured inside strings.

    Example:
        scanner = StructureScanner('{"a": "}"}')
        [c for _, c in scanner]  # ['{', '"', '"', ':', ' ', '"', '"', '}']
    """

    def __init__(self, text: str, start: int = 0):
        self.text = text
        self.start = start
        self.in_string = False
        self.escaped = False

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        for index in range(self.start, len(self.text)):
            char = self.text[index]
            if self.in_string:
                if self.escaped:
                    self.escaped = False
                elif char == "\\":
                    self.escaped = True
                elif char == '"':
                    self.in_string = False
                    yield index, char
                continue
            if char == '"':
                self.in_string = True
            yield index, char


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence around the payload, if there is one.

    Args:
        text: Raw model output

    Returns:
        Fence interior (trimmed), or the trimmed input when unfenced
    """
    stripped = text.strip()
    match = _FENCED_BLOCK.match(stripped)
    if match:
        return match.group(1).strip()
    match = _INNER_FENCE.search(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def find_outermost_object(text: str) -> Tuple[int, Optional[int]]:
    """Locate the first top-level {...} object.

    Returns:
        (start, end) slice bounds. start is -1 when the text has no "{";
        end is None when the object never closes (truncated output).
    """
    start = text.find("{")
    if start == -1:
        return -1, None

    depth = 0
    for index, char in StructureScanner(text, start):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return start, index + 1
    return start, None


def close_open_structures(fragment: str) -> str:
    """Naive truncation repair.

    Closes an unterminated string, drops trailing separators, then appends
    closers for every container still open, innermost first.
    """
    scanner = StructureScanner(fragment)
    for _ in scanner:
        pass

    repaired = fragment
    if scanner.in_string:
        repaired = _drop_partial_escape(repaired) + '"'
    repaired = _TRAILING_SEPARATORS.sub("", repaired)

    return repaired + "".join(_CLOSERS[kind] for kind in reversed(_open_containers(repaired)))


def repair_truncated_json(fragment: str) -> Optional[str]:
    """Repair a JSON object that was cut off before it closed.

    The grammar-aware cut is tried first: it keeps every completed member
    and closes a partially written string value, but drops a dangling key
    or an incomplete literal. When the fragment does not follow JSON
    grammar closely enough for that, the naive close is tried instead.

    Args:
        fragment: Text starting at the object's opening "{"

    Returns:
        A string that parses as JSON, or None
    """
    candidates = [_GrammarRepair(fragment).repair(), close_open_structures(fragment)]
    for candidate in candidates:
        if candidate is not None and _parse(candidate) is not _UNPARSED:
            return candidate
    return None


def extract_json(text: Optional[str]) -> ExtractionOutcome:
    """Recover a JSON value from raw model output.

    Args:
        text: Raw model output; None and empty strings are accepted

    Returns:
        ExtractionOutcome.parsed(value, strategy) or
        ExtractionOutcome.failed(reason)
    """
    if not text or not text.strip():
        return ExtractionOutcome.failed(ExtractionFailureReason.NO_JSON_FOUND)

    stripped = text.strip()
    unfenced = strip_code_fences(stripped)
    outcome = _recover(unfenced)

    # A fence found mid-text may belong to a string value; retry on the
    # untouched text before giving up.
    if not outcome.ok and unfenced != stripped:
        fallback = _recover(stripped)
        if fallback.ok:
            return fallback

    if outcome.ok:
        if outcome.strategy is not ExtractionStrategy.DIRECT:
            logger.info(
                "json_recovered", strategy=outcome.strategy.value, length=len(text)
            )
    else:
        logger.warning(
            "json_recovery_failed",
            reason=outcome.reason.value,
            preview=stripped[:200],
        )
    return outcome


def _recover(candidate: str) -> ExtractionOutcome:
    value = _parse(candidate)
    if value is not _UNPARSED:
        return ExtractionOutcome.parsed(value, ExtractionStrategy.DIRECT)

    start, end = find_outermost_object(candidate)
    if start == -1:
        return ExtractionOutcome.failed(ExtractionFailureReason.NO_JSON_FOUND)

    if end is not None:
        value = _parse(candidate[start:end])
        if value is not _UNPARSED:
            return ExtractionOutcome.parsed(value, ExtractionStrategy.BALANCED)
        return ExtractionOutcome.failed(ExtractionFailureReason.MALFORMED_AFTER_REPAIR)

    repaired = repair_truncated_json(candidate[start:])
    if repaired is None:
        return ExtractionOutcome.failed(
            ExtractionFailureReason.TRUNCATED_UNRECOVERABLE
        )
    return ExtractionOutcome.parsed(json.loads(repaired), ExtractionStrategy.REPAIRED)


def _parse(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError):
        return _UNPARSED


def _open_containers(text: str) -> List[str]:
    stack: List[str] = []
    for _, char in StructureScanner(text):
        if char in _CLOSERS:
            stack.append(char)
        elif char in "}]" and stack:
            stack.pop()
    return stack


def _drop_partial_escape(text: str) -> str:
    """Remove a dangling backslash or incomplete \\uXXXX at the end."""
    match = _PARTIAL_ESCAPE.search(text)
    if match and len(match.group(1)) % 2 == 1:
        return text[: match.start()] + match.group(1)[:-1]
    return text


class _GrammarRepair:
    """Follows object/array grammar to find where a fragment can be cut.

    Every time a value completes (or a container opens) the position and
    the open containers at that point are recorded. At end of input the
    fragment is cut back to the last such point unless the tail is a
    string value or a complete true/false/null literal. A number at end of
    input has no terminator, so it may be cut short and is dropped.

    Container kinds are also kept as a (kind, parent) chain; a safe point
    stores the chain head instead of a copy of the stack.
    """

    def __init__(self, fragment: str):
        self.fragment = fragment
        self.frames: List[List[str]] = []
        self.chain: Optional[Tuple[str, Any]] = None
        self.safe_end: Optional[int] = None
        self.safe_chain: Optional[Tuple[str, Any]] = None

    def repair(self) -> Optional[str]:
        scanner = StructureScanner(self.fragment)
        scalar_start: Optional[int] = None
        string_is_key = False

        for index, char in scanner:
            if scalar_start is not None:
                if char in _SCALAR_CHARS:
                    continue
                if _parse(self.fragment[scalar_start:index]) is _UNPARSED:
                    return None
                scalar_start = None
                self._complete_value(index)

            if char == '"':
                if scanner.in_string:
                    if not self.frames:
                        return None
                    if self._expects_key():
                        string_is_key = True
                    elif self._expects_value():
                        string_is_key = False
                    else:
                        return None
                elif string_is_key:
                    self.frames[-1][1] = _EXPECT_COLON
                else:
                    self._complete_value(index + 1)
                continue

            if char in _JSON_WHITESPACE:
                continue

            if char in _CLOSERS:
                if self.frames and not self._expects_value():
                    return None
                if not self.frames and index != 0:
                    return None
                state = _EXPECT_KEY_OR_END if char == "{" else _EXPECT_VALUE_OR_END
                self.frames.append([char, state])
                self.chain = (char, self.chain)
                self._mark_safe(index + 1)
            elif char in "}]":
                if not self.frames:
                    return None
                kind, state = self.frames[-1]
                if _CLOSERS[kind] != char or state not in (
                    _AFTER_VALUE,
                    _EXPECT_KEY_OR_END,
                    _EXPECT_VALUE_OR_END,
                ):
                    return None
                self.frames.pop()
                self.chain = self.chain[1]
                if not self.frames:
                    # Closed at top level: not a truncation
                    return None
                self._complete_value(index + 1)
            elif char == ",":
                if not self.frames or self.frames[-1][1] != _AFTER_VALUE:
                    return None
                self.frames[-1][1] = (
                    _EXPECT_KEY if self.frames[-1][0] == "{" else _EXPECT_VALUE
                )
            elif char == ":":
                if not self.frames or self.frames[-1] != ["{", _EXPECT_COLON]:
                    return None
                self.frames[-1][1] = _EXPECT_VALUE
            elif char in _SCALAR_CHARS:
                if not self.frames or not self._expects_value():
                    return None
                scalar_start = index
            else:
                return None

        if scanner.in_string and not string_is_key:
            return _drop_partial_escape(self.fragment) + '"' + _chain_closers(self.chain)
        if scalar_start is not None and not scanner.in_string:
            if self.fragment[scalar_start:] in ("true", "false", "null"):
                return self.fragment + _chain_closers(self.chain)
        if self.safe_end is None:
            return None
        return self.fragment[: self.safe_end] + _chain_closers(self.safe_chain)

    def _mark_safe(self, end: int) -> None:
        self.safe_end = end
        self.safe_chain = self.chain

    def _complete_value(self, end: int) -> None:
        self.frames[-1][1] = _AFTER_VALUE
        self._mark_safe(end)

    def _expects_key(self) -> bool:
        kind, state = self.frames[-1]
        return kind == "{" and state in (_EXPECT_KEY_OR_END, _EXPECT_KEY)

    def _expects_value(self) -> bool:
        kind, state = self.frames[-1]
        return state == _EXPECT_VALUE or (
            kind == "[" and state == _EXPECT_VALUE_OR_END
        )


def _chain_closers(chain: Optional[Tuple[str, Any]]) -> str:
    closers = []
    while chain is not None:
        kind, chain = chain
        closers.append(_CLOSERS[kind])
    return "".join(closers)
