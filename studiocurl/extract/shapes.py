"""
Shape heuristics for tools and messages.

Captured page state has no schema we can rely on. Whether an array is
"a list of tools" or "a conversation" is decided here by looking at
the fields of its elements, and the best such array is located inside
an arbitrary nested object (parsed JSON, or state objects of the host
application, which may contain reference cycles).

Main functions:
    score_tools_array / is_likely_tools_array
    score_messages_array / is_likely_messages_array
    extract_agent_from_canvas: pick the agent node of a canvas graph
    find_in_object: search a value for a tools or messages match
"""

from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict

from .extract_keys import (
    ExtractMode,
    NAME_KEY,
    ALIAS_KEY,
    TYPE_KEY,
    CONFIG_KEY,
    TOOLS_KEY,
    ROLE_KEY,
    CONTENT_KEY,
    NODES_KEY,
    AGENT_TYPE,
    SELECTED_KEY,
    ID_KEY,
    TOOL_TYPES,
    TOOL_CONFIG_KEYS,
    TOOLS_PATHS,
    MESSAGES_PATHS,
    TOOLS_KEY_HINTS,
    MESSAGES_KEY_HINTS,
)

DEFAULT_TOOLS_THRESHOLD = 0.5


class ShapeScore(NamedTuple):
    """Number of elements of an array that match a shape."""

    matched: int
    total: int

    @property
    def ratio(self) -> float:
        return self.matched / self.total if self.total else 0.0


class AgentSelection(NamedTuple):
    """Outcome of the agent node selection in a canvas graph. Both
    members are None if the value is not a canvas with agents."""

    agent: Mapping[str, Any] | None = None
    error: str | None = None


MatchKind = Literal['array', 'agent_node', 'ambiguous']


class SearchResult(BaseModel):
    """
    A match found by find_in_object.

    Attributes:
        kind: 'array' for a tools or messages array, 'agent_node'
            for a whole agent node (tools mode), 'ambiguous' when
            several agents exist and none is selected.
        value: the matched array or agent node (the object found in
            the searched value, not a copy)
        error: the message of an ambiguous selection
    """

    kind: MatchKind
    value: Any = None
    error: str | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


def is_object(value: object) -> bool:
    return isinstance(value, Mapping)


def is_array(value: object) -> bool:
    return isinstance(value, (list, tuple))


def get_by_path(value: object, path: Sequence[str]) -> object | None:
    """Follow a sequence of keys into nested mappings. Returns None
    if a step is missing or not a mapping."""
    current = value
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)  # type: ignore
    return current


# ---------------------------------------------------------------
# classifiers


def _is_tool_shaped(item: object) -> bool:
    if not isinstance(item, Mapping):
        return False
    has_identity = isinstance(item.get(NAME_KEY), str) or isinstance(
        item.get(ALIAS_KEY), str
    )
    if not has_identity:
        return False
    if item.get(TYPE_KEY) in TOOL_TYPES:
        return True
    config = item.get(CONFIG_KEY)
    return isinstance(config, Mapping) and any(
        bool(config.get(k)) for k in TOOL_CONFIG_KEYS
    )


def _is_message_shaped(item: object) -> bool:
    return (
        isinstance(item, Mapping)
        and CONTENT_KEY in item
        and isinstance(item.get(ROLE_KEY), str)
    )


def score_tools_array(arr: object) -> ShapeScore:
    """Count the elements that have a name or alias and either
    declare a tool/function type or carry a tool config."""
    if not is_array(arr):
        return ShapeScore(0, 0)
    items: Sequence[object] = arr  # type: ignore
    return ShapeScore(sum(1 for x in items if _is_tool_shaped(x)), len(items))


def is_likely_tools_array(
    arr: object, threshold: float = DEFAULT_TOOLS_THRESHOLD
) -> bool:
    """
    An array is a tools array if at least one element is tool-shaped
    and tool-shaped elements make up at least the threshold ratio.
    The ratio keeps out arrays, like the node list of a canvas, that
    contain a few tool-shaped objects among many others.
    """
    score = score_tools_array(arr)
    return score.matched >= 1 and score.ratio >= threshold


def score_messages_array(arr: object) -> ShapeScore:
    """Count the elements that have a string role and a content
    key (whatever its value)."""
    if not is_array(arr):
        return ShapeScore(0, 0)
    items: Sequence[object] = arr  # type: ignore
    return ShapeScore(
        sum(1 for x in items if _is_message_shaped(x)), len(items)
    )


def is_likely_messages_array(arr: object) -> bool:
    """A single message-shaped element is enough: conversations are
    often short and mixed with other records."""
    return score_messages_array(arr).matched >= 1


def is_agent_node(value: object) -> bool:
    if not isinstance(value, Mapping):
        return False
    config = value.get(CONFIG_KEY)
    return (
        value.get(TYPE_KEY) == AGENT_TYPE
        and isinstance(config, Mapping)
        and bool(config.get(TOOLS_KEY))
    )


def agent_label(node: Mapping[str, Any]) -> str:
    return str(node.get(NAME_KEY) or node.get(ID_KEY) or "unnamed")


def extract_agent_from_canvas(value: object) -> AgentSelection:
    """
    Select the agent node of a canvas graph ({'nodes': [...]}).

    Returns:
        - no agent and no error if value is not a canvas or has no
          node of type 'agent';
        - the agent, if there is only one (whether selected or not);
        - the selected agent, if several exist and one is selected;
        - the first selected agent, if several are selected;
        - an error naming the agents if several exist and none is
          selected.
    """
    if not isinstance(value, Mapping):
        return AgentSelection()
    nodes = value.get(NODES_KEY)
    if not is_array(nodes):
        return AgentSelection()

    agents: list[Mapping[str, Any]] = [
        n
        for n in nodes  # type: ignore
        if isinstance(n, Mapping) and n.get(TYPE_KEY) == AGENT_TYPE
    ]
    match agents:
        case []:
            return AgentSelection()
        case [agent]:
            return AgentSelection(agent=agent)
        case _:
            pass

    selected = [a for a in agents if a.get(SELECTED_KEY) is True]
    if selected:
        return AgentSelection(agent=selected[0])

    names = ", ".join(agent_label(a) for a in agents)
    return AgentSelection(
        error=f"Multiple agents found ({names}). Please click on "
        "the agent you want to capture first."
    )


# ---------------------------------------------------------------
# search


def iter_containers(root: object) -> Iterator[tuple[str | None, object]]:
    """
    Depth-first, pre-order walk over the mappings and arrays
    reachable from root. Yields (key, container) pairs, where key is
    the mapping key the container was reached through (None for the
    root and for array elements).

    Each container is visited once, by identity, so that cyclic
    structures terminate. The walk uses an explicit stack.
    """
    seen: set[int] = set()
    stack: list[tuple[str | None, object]] = [(None, root)]
    while stack:
        key, node = stack.pop()
        if not (is_object(node) or is_array(node)):
            continue
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield key, node

        children: list[tuple[str | None, object]]
        if isinstance(node, Mapping):
            children = [(str(k), v) for k, v in node.items()]  # type: ignore
        else:
            children = [(None, v) for v in node]  # type: ignore
        stack.extend(reversed(children))


def deep_find_array(
    root: object,
    accept: Callable[[object], bool],
    key_hints: Sequence[str] = (),
) -> list[Any] | None:
    """
    Search the object graph under root for an accepted array.

    Arrays stored under a key containing one of key_hints are
    preferred: they are searched in a first pass over the whole
    graph, and any accepted array is searched in a second pass.

    Returns:
        the first accepted array, or None.
    """
    if key_hints:
        for key, node in iter_containers(root):
            if (
                key is not None
                and is_array(node)
                and any(h in key.lower() for h in key_hints)
                and accept(node)
            ):
                return node  # type: ignore
    for _, node in iter_containers(root):
        if is_array(node) and accept(node):
            return node  # type: ignore
    return None


def find_in_object(
    value: object,
    mode: ExtractMode,
    threshold: float = DEFAULT_TOOLS_THRESHOLD,
) -> SearchResult | None:
    """
    Search a parsed value for a tools or messages match.

    In tools mode, the search order is: the value itself as a tools
    array; the agent node of a canvas (an ambiguous selection ends
    the search); the value itself as an agent node; the paths
    config.tools, tools, data.tools; a deep search preferring arrays
    under keys containing 'tool'.

    In messages mode: the value itself as a messages array; a fixed
    list of paths (messages, conversation, thread.messages, ...,
    observation.input); a deep search preferring arrays under keys
    containing 'message' or 'conversation'.

    Args:
        value: a parsed JSON value or a state object
        mode: 'tools' or 'messages'
        threshold: min ratio of tool-shaped elements (tools mode)

    Returns:
        a SearchResult, or None if nothing was found.
    """
    accept: Callable[[object], bool]
    if mode == 'tools':
        accept = lambda arr: is_likely_tools_array(arr, threshold)  # noqa: E731
        paths, hints = TOOLS_PATHS, TOOLS_KEY_HINTS
    else:
        accept = is_likely_messages_array
        paths, hints = MESSAGES_PATHS, MESSAGES_KEY_HINTS

    if is_array(value) and accept(value):
        return SearchResult(kind='array', value=value)
    if not (is_object(value) or is_array(value)):
        return None

    if mode == 'tools':
        selection = extract_agent_from_canvas(value)
        if selection.error:
            return SearchResult(kind='ambiguous', error=selection.error)
        if selection.agent is not None:
            return SearchResult(kind='agent_node', value=selection.agent)
        if is_agent_node(value):
            return SearchResult(kind='agent_node', value=value)

    for path in paths:
        candidate = get_by_path(value, path)
        if is_array(candidate) and accept(candidate):
            return SearchResult(kind='array', value=candidate)

    found = deep_find_array(value, accept, hints)
    if found is not None:
        return SearchResult(kind='array', value=found)
    return None
