# pyright: reportUnusedImport=false
# flake8: noqa

from .sources import (
    EnvironmentSnapshot,
    ElementSnapshot,
    CandidateSource,
    collect_sources,
)

from .shapes import (
    find_in_object,
    is_likely_tools_array,
    is_likely_messages_array,
    extract_agent_from_canvas,
)

from .extractor import (
    ExtractionResult,
    extract,
    extract_from_frames,
    capture_text,
    summarize_capture,
    snapshot_extract,
)
