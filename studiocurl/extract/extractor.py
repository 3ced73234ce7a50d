"""
Capture of tools and messages JSON from host page snapshots.

The extraction walks the candidate sources of a snapshot in tier
order, parses the JSON they contain (whole, then slice by slice) and
returns the first value that the shape heuristics accept. Failures are
returned, not raised, with a diagnostic summary of what was searched.

Main functions:
    extract: capture from one snapshot
    extract_from_frames: capture from the snapshots of all the frames
        of a page
    capture_text: validate JSON pasted by the user
    summarize_capture: count and agent name of a stored capture
    snapshot_extract: apply extract to a snapshot file
"""

import json
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError, validate_call
from pydantic.alias_generators import to_camel

from studiocurl.config.config import Settings, ExtractionSettings
from studiocurl.utils.ioutils import read_json_file, save_text_file
from studiocurl.utils.logging import LoggerBase, get_logger

from .extract_keys import (
    ExtractMode,
    NAME_KEY,
    TYPE_KEY,
    CONFIG_KEY,
    TOOLS_KEY,
    ROLE_KEY,
    CONTENT_KEY,
    AGENT_TYPE,
    TOOL_TYPES,
    TOOLS_ANCHOR_KEYS,
)
from .slices import (
    safe_json_loads,
    iter_parsed_slices,
    extract_array_by_known_keys,
)
from .shapes import SearchResult, find_in_object
from .sources import (
    CandidateSource,
    EnvironmentSnapshot,
    collect_sources,
    describe_sources,
)

# Set up logger
logger: LoggerBase = get_logger(__name__)

FailureReason = Literal['ambiguous_selection', 'not_found', 'invalid_input']

NOT_FOUND_MESSAGES: dict[str, str] = {
    'tools': "Could not find agent node. Click on an agent node in "
    "the canvas first, then capture.",
    'messages': "Could not find conversation/messages array. Open "
    "trace JSON or select a JSON block and retry.",
}


class ExtractionResult(BaseModel):
    """
    The outcome of a capture.

    Attributes:
        ok: True if a value was captured
        value: the captured JSON, pretty-printed
        count: number of tools (agent node or tools array) or of
            messages
        agent_name: the name of the captured agent node
        error: a message for the user, on failure
        debug: diagnostic counts of the searched sources, on failure
        reason: the kind of failure
    """

    ok: bool
    value: str | None = None
    count: int = 0
    agent_name: str | None = None
    error: str | None = None
    debug: str | None = None
    reason: FailureReason | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _failure(
    error: str, reason: FailureReason | None = None, debug: str = ""
) -> ExtractionResult:
    return ExtractionResult(
        ok=False, error=error, reason=reason, debug=debug or None
    )


def _dumps(value: object) -> str | None:
    """Pretty-print a captured value. Returns None for values that
    cannot be represented as JSON (cycles, foreign objects)."""
    try:
        return json.dumps(value, indent=2, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        return None


def _agent_tool_count(node: Mapping[str, Any]) -> int:
    config = node.get(CONFIG_KEY)
    if not isinstance(config, Mapping):
        return 0
    tools = config.get(TOOLS_KEY)
    return len(tools) if isinstance(tools, list) else 0


def _result_from_match(match: SearchResult) -> ExtractionResult | None:
    text = _dumps(match.value)
    if text is None:
        return None
    if match.kind == 'agent_node':
        node: Mapping[str, Any] = match.value
        return ExtractionResult(
            ok=True,
            value=text,
            count=_agent_tool_count(node),
            agent_name=str(node.get(NAME_KEY) or "") or None,
        )
    return ExtractionResult(ok=True, value=text, count=len(match.value))


def _iter_source_values(source: CandidateSource) -> Iterator[object]:
    if source.text is None:
        yield source.value
        return
    whole = safe_json_loads(source.text)
    if whole is not None:
        yield whole
    yield from iter_parsed_slices(source.text)


def _extract(
    snapshot: EnvironmentSnapshot,
    mode: ExtractMode,
    settings: ExtractionSettings,
    logger: LoggerBase,
) -> ExtractionResult:
    sources = collect_sources(snapshot, mode, settings)
    logger.info(f"Searching {len(sources)} sources for {mode}")

    for source in sources:
        for value in _iter_source_values(source):
            match = find_in_object(
                value, mode, settings.tools_ratio_threshold
            )
            if match is None:
                continue
            if match.kind == 'ambiguous':
                return _failure(
                    match.error or "Ambiguous selection",
                    'ambiguous_selection',
                    f"sources={len(sources)}",
                )
            result = _result_from_match(match)
            if result is not None:
                logger.info(
                    f"Captured {mode} from {source.origin} "
                    f"({result.count} items)"
                )
                return result
            logger.warning(
                f"Skipped a match in {source.origin}: not serializable"
            )

    if mode == 'tools':
        for source in sources:
            if source.text is None:
                continue
            array = extract_array_by_known_keys(
                source.text, TOOLS_ANCHOR_KEYS, lambda arr: len(arr) > 0
            )
            if array is not None:
                logger.info(f"Captured tools array from {source.origin}")
                return ExtractionResult(
                    ok=True, value=_dumps(array), count=len(array)
                )

    selected = safe_json_loads(snapshot.selection.strip())
    if isinstance(selected, list):
        text = _dumps(selected)
        if text is not None:
            return ExtractionResult(ok=True, value=text, count=len(selected))

    return _failure(
        NOT_FOUND_MESSAGES[mode],
        'not_found',
        describe_sources(snapshot, sources),
    )


def extract(
    snapshot: EnvironmentSnapshot,
    mode: ExtractMode,
    settings: ExtractionSettings | None = None,
    logger: LoggerBase = logger,
) -> ExtractionResult:
    """
    Capture a tools array, an agent node, or a messages array from the
    snapshot of a host page.

    Args:
        snapshot: the enumerated page state (not modified)
        mode: 'tools' or 'messages'
        settings: bounds and thresholds of the search (read from
            config.toml if None)
        logger: a logger object

    Returns:
        an ExtractionResult. On success, value holds the captured
        JSON. On failure, reason is 'ambiguous_selection' if several
        agents were found and none was selected, and 'not_found' if
        no candidate matched. This function does not raise.
    """
    if settings is None:
        settings = Settings().extraction
    try:
        return _extract(snapshot, mode, settings, logger)
    except Exception as e:
        logger.error(f"Capture failed: {str(e)}")
        return _failure(f"Capture failed: {str(e)}", debug=f"mode={mode}")


def extract_from_frames(
    snapshots: Sequence[EnvironmentSnapshot],
    mode: ExtractMode,
    settings: ExtractionSettings | None = None,
    logger: LoggerBase = logger,
) -> ExtractionResult:
    """
    Capture from the snapshots of all the frames of a page. The first
    successful frame wins. If no frame succeeds, the failure with the
    most diagnostic information is returned, noting the number of
    frames. A frame that found several agents takes precedence, as
    it asks the user to select one.
    """
    if settings is None:
        settings = Settings().extraction
    results = [extract(s, mode, settings, logger) for s in snapshots]
    for result in results:
        if result.ok:
            return result

    if not results:
        return _failure("Capture failed: no frame results")

    ambiguous = [r for r in results if r.reason == 'ambiguous_selection']
    candidates = ambiguous or results
    best = candidates[0]
    for result in candidates[1:]:
        if len(result.debug or "") > len(best.debug or ""):
            best = result
    extra = f"frames={len(results)}"
    debug = f"{best.debug}; {extra}" if best.debug else extra
    return best.model_copy(update={'debug': debug})


# ---------------------------------------------------------------
# manual input


def _looks_like_tool(item: object) -> bool:
    return isinstance(item, Mapping) and bool(
        item.get(NAME_KEY)
        or item.get(TYPE_KEY) in TOOL_TYPES
        or item.get('function')
    )


def _looks_like_agent(value: Mapping[str, Any]) -> bool:
    config = value.get(CONFIG_KEY)
    return value.get(TYPE_KEY) == AGENT_TYPE or (
        isinstance(config, Mapping) and bool(config.get(TOOLS_KEY))
    )


def _looks_like_message(item: object) -> bool:
    return (
        isinstance(item, Mapping)
        and bool(item.get(ROLE_KEY))
        and CONTENT_KEY in item
    )


def capture_text(
    text: str, mode: ExtractMode, logger: LoggerBase = logger
) -> ExtractionResult:
    """
    Validate JSON pasted by the user in place of a capture.

    In tools mode, the JSON may be a tools array or an agent node
    object; in messages mode, it must be an array. Input of the right
    kind that does not look like tools or messages is accepted, with
    a warning.

    Returns:
        an ExtractionResult with the pasted text as value, or a
        failure with reason 'invalid_input'.
    """
    text = text.strip()
    if not text:
        return _failure("Please paste JSON first", 'invalid_input')
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        return _failure(f"Invalid JSON: {e.msg}", 'invalid_input')

    if mode == 'messages':
        if not isinstance(parsed, list):
            return _failure(
                "Messages JSON must be an array", 'invalid_input'
            )
        if parsed and not any(_looks_like_message(x) for x in parsed):
            logger.warning(
                "Does not look like a messages array, saving anyway"
            )
        return ExtractionResult(ok=True, value=text, count=len(parsed))

    match parsed:
        case list():
            if parsed and not any(_looks_like_tool(x) for x in parsed):
                logger.warning(
                    "Does not look like a tools array, saving anyway"
                )
            return ExtractionResult(ok=True, value=text, count=len(parsed))
        case dict():
            if not _looks_like_agent(parsed):
                logger.warning(
                    "Does not look like an agent node, saving anyway"
                )
            return ExtractionResult(
                ok=True,
                value=text,
                count=_agent_tool_count(parsed),
                agent_name=str(parsed.get(NAME_KEY) or "unknown"),
            )
        case _:
            return _failure(
                "JSON must be an array or agent object", 'invalid_input'
            )


def summarize_capture(
    text: str, mode: ExtractMode
) -> tuple[int, str | None]:
    """Count of tools or messages in a stored capture, and the agent
    name if the capture is an agent node. Unreadable captures count
    zero."""
    parsed = safe_json_loads(text) if text else None
    if mode == 'tools' and isinstance(parsed, dict):
        if isinstance(parsed.get(CONFIG_KEY), Mapping):
            name = parsed.get(NAME_KEY)
            return _agent_tool_count(parsed), str(name) if name else None
        return 0, None
    if isinstance(parsed, list):
        return len(parsed), None
    return 0, None


@validate_call(config={'arbitrary_types_allowed': True})
def snapshot_extract(
    sourcefile: str | Path,
    mode: ExtractMode = 'tools',
    save: bool | str | Path = False,
    settings: Settings | None = None,
    logger: LoggerBase = logger,
) -> ExtractionResult:
    """
    Capture from a snapshot file. The file contains a JSON object
    with the fields of EnvironmentSnapshot, or an array of such
    objects (one per frame).

    Args:
        sourcefile: the snapshot file
        mode: 'tools' or 'messages'
        save: if False, does not save; if True, saves the captured
            JSON next to the source, with suffix '.<mode>.json';
            if a filename, saves to that file.
        settings: the configuration (read from config.toml if None)
        logger: a logger object (defaults to console logging)

    Returns:
        an ExtractionResult; a failure with reason 'invalid_input'
        if the file could not be read as a snapshot.
    """
    data = read_json_file(sourcefile, logger)
    if data is None:
        return _failure(
            f"Could not read snapshot: {sourcefile}", 'invalid_input'
        )

    try:
        if isinstance(data, list):
            snapshots = [
                EnvironmentSnapshot.model_validate(d) for d in data
            ]
        else:
            snapshots = [EnvironmentSnapshot.model_validate(data)]
    except ValidationError as e:
        logger.error(f"Invalid snapshot in {sourcefile}:\n{str(e)}")
        return _failure(
            f"Invalid snapshot: {sourcefile}", 'invalid_input'
        )

    if settings is None:
        settings = Settings()
    result = extract_from_frames(
        snapshots, mode, settings.extraction, logger
    )
    if not result.ok:
        logger.warning(f"{result.error} ({result.debug})")
        return result

    match save:
        case False:
            pass
        case True:
            source = Path(sourcefile)
            target = source.with_name(f"{source.stem}.{mode}.json")
            save_text_file(target, result.value or "", logger)
        case str() | Path():
            save_text_file(save, result.value or "", logger)
        case _:
            pass

    return result


if __name__ == "__main__":
    """Interactive loop to test module"""
    import sys
    from studiocurl.utils.ioutils import create_interface

    def call_snapshot_extract(filename: str, target: str) -> None:
        result = snapshot_extract(filename, 'tools', target or False)
        if not result.ok:
            result = snapshot_extract(filename, 'messages', target or False)
        if result.ok:
            print(f"Captured {result.count} items")
            print(result.value)

    create_interface(call_snapshot_extract, sys.argv)
