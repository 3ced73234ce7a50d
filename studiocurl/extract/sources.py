"""
Collection of candidate sources from a host page snapshot.

The host page is owned by a third party and has no fixed structure.
An external collaborator enumerates what is visible or stateful in it
(selection, texts, script bodies, editor models, global state objects,
elements with their attributes) into an EnvironmentSnapshot; this
module turns the snapshot into an ordered list of candidate sources.

Sources are ordered by tier, from the most to the least intentional:

    1. selection: the text the user selected
    2. body: the visible text of the page
    3. input: values of text areas and input fields
    4. script: inline script bodies
    5. editor: editor models and code editor blocks
    6. state: global/framework state objects, by known name first,
       then by name pattern (bounded)
    7. attribute: data-* attributes carrying serialized JSON
    8. viewer: pre/code blocks, JSON viewer elements, detail panels

The snapshot is never modified.
"""

from collections.abc import Mapping
from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from studiocurl.config.config import Settings, ExtractionSettings
from .extract_keys import (
    ExtractMode,
    KNOWN_STATE_NAMES,
    STATE_NAME_PATTERN,
    EDITOR_CLASS_PATTERN,
    VIEWER_CLASS_PATTERN,
    PANEL_CLASS_PATTERN,
    PANEL_ARRAY_PATTERN,
    VIEWER_TAGS,
    DATA_ATTRIBUTE_PREFIX,
    TOOLS_MARKERS,
    MESSAGES_MARKERS,
)

SourceTier = Literal[
    'selection',
    'body',
    'input',
    'script',
    'editor',
    'state',
    'attribute',
    'viewer',
]


class ElementSnapshot(BaseModel):
    """A DOM element as enumerated by the page collaborator."""

    tag: str = ""
    class_name: str = ""
    element_id: str = ""
    text: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class EnvironmentSnapshot(BaseModel):
    """
    Everything visible or stateful in a host page frame, already
    enumerated. Keys may be given in camelCase, as produced by a
    javascript collaborator.

    Attributes:
        selection: the current user selection
        body_text: the visible text of the document body
        input_values: values of text areas and input fields
        scripts: bodies of inline script elements
        editor_models: texts of editor models (e.g. Monaco)
        global_state: global names of the page mapped to their
            values (framework stores, serialized page data, ...)
        elements: elements that may carry JSON in their text or
            attributes
    """

    selection: str = ""
    body_text: str = ""
    input_values: list[str] = Field(default_factory=list)
    scripts: list[str] = Field(default_factory=list)
    editor_models: list[str] = Field(default_factory=list)
    global_state: dict[str, Any] = Field(default_factory=dict)
    elements: list[ElementSnapshot] = Field(default_factory=list)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class CandidateSource(NamedTuple):
    """A text or an object to search. Exactly one of text and value
    is set."""

    tier: SourceTier
    origin: str
    text: str | None = None
    value: object | None = None


def _state_names(
    state: Mapping[str, Any], max_candidates: int
) -> list[str]:
    known = [name for name in KNOWN_STATE_NAMES if name in state]
    matched = [
        name
        for name in state
        if name not in known and STATE_NAME_PATTERN.search(name)
    ]
    return known + matched[:max_candidates]


def _markers(mode: ExtractMode) -> tuple[str, ...]:
    return TOOLS_MARKERS if mode == 'tools' else MESSAGES_MARKERS


def collect_sources(
    snapshot: EnvironmentSnapshot,
    mode: ExtractMode,
    settings: ExtractionSettings | None = None,
) -> list[CandidateSource]:
    """
    Gather the candidate sources of a snapshot in tier order.

    Args:
        snapshot: the enumerated page state
        mode: 'tools' or 'messages'; selects the text markers that
            make JSON viewer elements worth scanning
        settings: bounds of the collection (read from config.toml if
            None)

    Returns:
        the list of sources, possibly empty.
    """
    if settings is None:
        settings = Settings().extraction
    sources: list[CandidateSource] = []

    def add_text(tier: SourceTier, origin: str, text: str) -> None:
        if text and text.strip():
            sources.append(CandidateSource(tier, origin, text=text))

    add_text('selection', "selection", snapshot.selection.strip())
    add_text('body', "body", snapshot.body_text)
    for i, value in enumerate(snapshot.input_values):
        add_text('input', f"input[{i}]", value)
    for i, script in enumerate(snapshot.scripts):
        add_text('script', f"script[{i}]", script)

    for i, model_text in enumerate(snapshot.editor_models):
        add_text('editor', f"editor[{i}]", model_text)
    for i, el in enumerate(snapshot.elements):
        if EDITOR_CLASS_PATTERN.search(el.class_name):
            add_text('editor', f"element[{i}]", el.text)

    state = snapshot.global_state
    for name in _state_names(state, settings.max_state_candidates):
        value = state[name]
        match value:
            case str():
                if len(value) <= settings.max_state_text_length:
                    add_text('state', name, value)
            case Mapping() | list() | tuple():
                sources.append(
                    CandidateSource('state', name, value=value)
                )
            case _:
                pass

    for i, el in enumerate(snapshot.elements):
        for attr, attr_value in el.attributes.items():
            if (
                attr.startswith(DATA_ATTRIBUTE_PREFIX)
                and len(attr_value) > settings.min_attribute_length
            ):
                add_text('attribute', f"element[{i}].{attr}", attr_value)

    markers = _markers(mode)
    for i, el in enumerate(snapshot.elements):
        origin = f"element[{i}]"
        if el.tag.lower() in VIEWER_TAGS:
            if len(el.text) > settings.min_attribute_length:
                add_text('viewer', origin, el.text)
            continue
        if (
            VIEWER_CLASS_PATTERN.search(el.class_name)
            and len(el.text) > settings.min_viewer_text_length
            and any(m in el.text for m in markers)
        ):
            add_text('viewer', origin, el.text)
        elif (
            mode == 'messages'
            and PANEL_CLASS_PATTERN.search(el.class_name)
            and all(m in el.text for m in MESSAGES_MARKERS)
        ):
            for match in PANEL_ARRAY_PATTERN.finditer(el.text):
                add_text('viewer', origin, match.group(0))

    return sources


def describe_sources(
    snapshot: EnvironmentSnapshot, sources: list[CandidateSource]
) -> str:
    """Diagnostic summary of a collection: counts and sizes only,
    never the page content."""

    def count(tier: SourceTier) -> int:
        return sum(1 for s in sources if s.tier == tier)

    stats = [
        ("sources", len(sources)),
        ("selected", len(snapshot.selection.strip())),
        ("body", len(snapshot.body_text)),
        ("textarea", count('input')),
        ("editor", count('editor')),
        ("scripts", count('script')),
        ("state", count('state')),
        ("attributes", count('attribute')),
        ("elements", count('viewer')),
    ]
    return ", ".join(f"{name}={value}" for name, value in stats)
