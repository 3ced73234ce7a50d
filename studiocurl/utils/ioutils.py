"""
Utilities to read/write captures and snapshots to/from disc and print
errors to console. Errors are not propagated, but functions return a
null value.
"""

import json
from pathlib import Path
from collections.abc import Callable

from pydantic import validate_call

# Set up default logger
from .logging import get_logger, LoggerBase  # fmt: skip
logger: LoggerBase = get_logger(__name__)


# Validate file name
def validate_file(
    source: str | Path, logger: LoggerBase = logger
) -> Path | None:
    """Check that source names a readable, non-empty file.

    Returns:
        the path of the file, or None (the problem is logged)."""
    if not source:
        logger.warning("No capture or snapshot file given")
        return None
    source_path = Path(source)
    try:
        if not source_path.is_file():
            problem = "is not a file" if source_path.exists() else "not found"
            logger.error(f"{source_path}: {problem}")
            return None
        if source_path.stat().st_size == 0:
            logger.warning(f"{source_path}: the file is empty")
            return None
    except OSError as e:
        logger.error(f"{source_path}: {str(e)}")
        return None

    return source_path


def read_text_file(
    source: str | Path, logger: LoggerBase = logger
) -> str | None:
    """Read a UTF-8 text file. Returns None on failure."""
    source_path = validate_file(source, logger)
    if source_path is None:
        return None
    try:
        return source_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Could not read {source}: {str(e)}")
        return None


def read_json_file(
    source: str | Path, logger: LoggerBase = logger
) -> object | None:
    """Read and parse a JSON file.

    Args:
        source: the file to read
        logger: a logger object

    Returns:
        the parsed JSON value, or None if the file could not be read
        or did not contain valid JSON.
    """
    text = read_text_file(source, logger)
    if text is None:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {source}: {e.msg} (line {e.lineno})")
        return None


def save_text_file(
    target: str | Path, content: str, logger: LoggerBase = logger
) -> bool:
    """Write content to target, creating parent folders. Returns
    False on failure."""
    try:
        target_path = Path(target)
        target_path.parent.mkdir(parents=True, exist_ok=True)
        target_path.write_text(content, encoding="utf-8")
    except OSError as e:
        logger.error(f"Could not write {target}: {str(e)}")
        return False
    return True


def parse_external_boolean(value: object) -> bool:
    """Sanitize externally given boolean"""
    if isinstance(value, str):
        if value.lower() in ('true', '1', 'yes'):
            return True
        elif value.lower() in ('false', '0', 'no', ''):
            return False
    return bool(value)


# Command line runs of file-level entry points


@validate_call
def create_interface(
    f: Callable[[str, str], object], argv: list[str]
) -> None:
    """Run f(source, target) from the command line arguments.

    argv[1] is the snapshot or capture file that f reads, argv[2]
    (optional) the file f saves to. If argv[3] is 'True', f is re-run
    at each press of Enter until Ctrl-C, so that a snapshot can be
    exported again from the browser between runs.
    """
    match argv:
        case [_, source, *rest]:
            pass
        case _:
            print("Usage: <source file> [<target file>] [True]")
            print("  source: snapshot or capture JSON file")
            print("  target: file to save results to (optional)")
            print("  True: re-run at each Enter press")
            return
    target = rest[0] if rest else ""
    if not validate_file(source):
        return

    repeat = len(rest) > 1 and parse_external_boolean(rest[1])
    if not repeat:
        f(source, target)
        return

    print(f"Enter: run on '{source}'; Ctrl-C: quit.")
    try:
        while True:
            input()
            f(source, target)
    except (KeyboardInterrupt, EOFError):
        print("\nDone.")
