"""
Scanning of arbitrary text for embedded JSON.

Page text, script bodies and attribute values often carry JSON
surrounded by other text (javascript assignments, rendered labels,
log lines). The functions here locate the balanced runs that start
with '{' or '[', ignoring delimiters that appear inside string
literals, and try to parse them.

Main functions:
    iter_json_slices: lazily yield balanced slices of a text
    iter_parsed_slices: lazily yield the slices that parse as JSON
    extract_array_by_known_keys: find an array following a quoted key
"""

import json
import re
from collections.abc import Callable, Iterator, Sequence

_OPENING = {'{': '}', '[': ']'}


def safe_json_loads(text: str) -> object | None:
    """Parse text as JSON. Returns None if the text is not JSON
    (note that a JSON 'null' also gives None)."""
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return None


def _scan_run(text: str, start: int) -> tuple[int | None, list[int]]:
    """Scan the run opened at text[start]. Returns the index of its
    closing delimiter, or None and the openers of the same kind,
    outside strings, still open at the end of the text."""
    opening = text[start]
    closing = _OPENING[opening]
    open_at: list[int] = []
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == opening:
            open_at.append(i)
        elif ch == closing:
            open_at.pop()
            if not open_at:
                return i, []
    return None, open_at


def read_balanced_json(text: str, start: int) -> str | None:
    """
    Read the run of text starting at text[start] up to the delimiter
    that closes it.

    The character at start must be '{' or '['. Only delimiters of the
    same kind are counted; delimiters inside double-quoted strings
    are ignored, and backslash escapes inside strings are honoured.

    Args:
        text: the text to scan
        start: the index of the opening delimiter

    Returns:
        the balanced substring, or None if text[start] is not an
        opening delimiter or the run is never closed.
    """
    if start < 0 or start >= len(text) or text[start] not in _OPENING:
        return None
    end, _ = _scan_run(text, start)
    return None if end is None else text[start : end + 1]


def iter_json_slices(text: str) -> Iterator[str]:
    """
    Yield the balanced '{...}' and '[...]' runs of text, left to
    right. A run that is found is consumed whole: scanning resumes
    after its closing delimiter, so nested runs are not yielded
    separately.
    """
    # openers whose own scan would reach the end of text unclosed
    unclosed: set[int] = set()
    i = 0
    n = len(text)
    while i < n:
        if text[i] in _OPENING and i not in unclosed:
            end, open_at = _scan_run(text, i)
            if end is not None:
                yield text[i : end + 1]
                i = end + 1
                continue
            unclosed.update(open_at)
        i += 1


def iter_parsed_slices(text: str) -> Iterator[object]:
    """Yield the JSON values of the balanced slices of text that
    parse, skipping the others."""
    for candidate in iter_json_slices(text):
        value = safe_json_loads(candidate)
        if value is not None:
            yield value


def read_json_array_after(text: str, index: int) -> str | None:
    """Read the balanced array that starts at index, after optional
    whitespace. Returns None if no array starts there."""
    i = index
    while i < len(text) and text[i].isspace():
        i += 1
    if i >= len(text) or text[i] != '[':
        return None
    return read_balanced_json(text, i)


def extract_array_by_known_keys(
    text: str,
    keys: Sequence[str],
    accept: Callable[[list[object]], bool] = lambda _: True,
) -> list[object] | None:
    """
    Find an array written as the value of one of the given keys,
    i.e. following '"key":' in the text. Keys are tried in order, and
    the occurrences of each key from left to right.

    This is a narrow fallback for texts that as a whole, or in their
    balanced slices, do not parse as JSON (for instance, truncated
    state dumps where the enclosing object is never closed).

    Args:
        text: the text to scan
        keys: the keys to look for
        accept: a predicate the parsed array must satisfy

    Returns:
        the first accepted array, or None.
    """
    if not text:
        return None
    for key in keys:
        pattern = re.compile(r'"' + re.escape(key) + r'"\s*:')
        for match in pattern.finditer(text):
            array_text = read_json_array_after(text, match.end())
            if array_text is None:
                continue
            value = safe_json_loads(array_text)
            if isinstance(value, list) and accept(value):
                return value
    return None
