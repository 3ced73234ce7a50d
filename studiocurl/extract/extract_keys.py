"""Keys, paths and patterns used in extract functions"""

import re
from typing import Literal

ExtractMode = Literal['tools', 'messages']

# tool and message fields
NAME_KEY = 'name'
ALIAS_KEY = 'alias'
TYPE_KEY = 'type'
CONFIG_KEY = 'config'
TOOLS_KEY = 'tools'
ROLE_KEY = 'role'
CONTENT_KEY = 'content'

# canvas keys
NODES_KEY = 'nodes'
AGENT_TYPE = 'agent'
SELECTED_KEY = 'selected'
ID_KEY = 'id'

TOOL_TYPES = ('tool', 'function')
TOOL_CONFIG_KEYS = ('toolId', 'type', 'schema')

# known locations, tried in order before the deep search
TOOLS_PATHS: tuple[tuple[str, ...], ...] = (
    ('config', 'tools'),
    ('tools',),
    ('data', 'tools'),
)
MESSAGES_PATHS: tuple[tuple[str, ...], ...] = (
    ('messages',),
    ('conversation',),
    ('thread', 'messages'),
    ('threadMessages',),
    ('data', 'messages'),
    # tracing UI spans of chat model calls
    ('input', 'messages'),
    ('input',),
    ('kwargs', 'messages'),
    ('observation', 'input', 'messages'),
    ('observation', 'input'),
)

# substrings of keys under which the deep search looks first
TOOLS_KEY_HINTS = ('tool',)
MESSAGES_KEY_HINTS = ('message', 'conversation')

# key-anchored fallback scan
TOOLS_ANCHOR_KEYS = ('tools',)

# global state discovery
KNOWN_STATE_NAMES = (
    '__INITIAL_STATE__',
    '__REDUX_STATE__',
    '__NEXT_DATA__',
    'store',
    'LANGFUSE_DATA',
    'traceData',
    'observationData',
)
STATE_NAME_PATTERN = re.compile(
    r"state|store|workflow|orchestration|agent|graph|redux|apollo"
    r"|query|tanstack|trace|observation",
    re.IGNORECASE,
)

# element discovery
EDITOR_CLASS_PATTERN = re.compile(r"\bcm-content\b|\bCodeMirror-code\b")
VIEWER_CLASS_PATTERN = re.compile(
    r"json|tree|object-value|string-value|array-value", re.IGNORECASE
)
PANEL_CLASS_PATTERN = re.compile(
    r"observation|detail|panel|drawer", re.IGNORECASE
)
VIEWER_TAGS = ('pre', 'code')
DATA_ATTRIBUTE_PREFIX = 'data-'

# text markers that make a viewer element worth parsing
TOOLS_MARKERS = ('"name"', '"tools"')
MESSAGES_MARKERS = ('"role"', '"content"')

# role/content arrays embedded in panel text
PANEL_ARRAY_PATTERN = re.compile(
    r'\[[\s\S]*?\{[\s\S]*?"role"[\s\S]*?"content"[\s\S]*?\}[\s\S]*?\]'
)
