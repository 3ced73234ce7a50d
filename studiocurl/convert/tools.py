"""
Conversion of studio tools to OpenAI function tools.

Studio tools come in two shapes. Tools that the studio already stores
in OpenAI form,

    {"type": "function",
     "function": {"name": ..., "description": ..., "parameters": {...}}}

pass through unchanged. Studio-native tools,

    {"name": "handoff_to_node", "alias": "store_changes",
     "description": ..., "type": "tool", "config": {"schema": {...}}}

are converted to OpenAI form using the alias as the function name,
when present, and config.schema as the parameters.

Main functions:
    convert_tool, convert_tools: convert to OpenAI form
    normalize_schema: relax object schemas that can never validate
    build_tool_name_map: map studio names and aliases to the names
        declared in the converted tools
"""

import copy
from collections.abc import Mapping, Sequence
from typing import Any

from .convert_keys import (
    FUNCTION_TYPE,
    FUNCTION_KEY,
    UNKNOWN_FUNCTION,
)

DEFAULT_PARAMETERS: dict[str, Any] = {
    'type': 'object',
    'properties': {},
    'required': [],
}


def is_openai_tool(tool: Mapping[str, Any]) -> bool:
    """A tool already in OpenAI form: type 'function' and a
    function object."""
    return tool.get('type') == FUNCTION_TYPE and isinstance(
        tool.get(FUNCTION_KEY), Mapping
    )


def tool_function_name(tool: Mapping[str, Any]) -> str:
    """The name under which a studio tool is declared to OpenAI."""
    return str(tool.get('alias') or tool.get('name') or UNKNOWN_FUNCTION)


def normalize_schema(schema: object) -> object:
    """
    Return a copy of a JSON schema where every object node that
    declares no properties and forbids additional properties allows
    additional properties instead. Such a schema rejects any payload
    but the empty object, and is taken as an authoring mistake.

    The fix is applied to nested property schemas and to the items
    schema of arrays. Values that are not mappings are returned as
    they are.
    """
    if not isinstance(schema, Mapping):
        return schema
    result: dict[str, Any] = copy.deepcopy(dict(schema))  # type: ignore
    _relax_in_place(result)
    return result


def _relax_in_place(node: dict[str, Any]) -> None:
    properties = node.get('properties')
    if node.get('type') == 'object':
        if (
            isinstance(properties, dict)
            and not properties
            and node.get('additionalProperties') is False
        ):
            node['additionalProperties'] = True
    if isinstance(properties, dict):
        for value in properties.values():  # type: ignore
            if isinstance(value, dict):
                _relax_in_place(value)  # type: ignore
    items = node.get('items')
    if isinstance(items, dict):
        _relax_in_place(items)  # type: ignore


def convert_tool(
    tool: Mapping[str, Any], fix_empty_schemas: bool = True
) -> Mapping[str, Any]:
    """
    Convert a studio tool to an OpenAI function tool.

    Args:
        tool: the studio tool
        fix_empty_schemas: apply normalize_schema to the parameters

    Returns:
        the tool itself, if already in OpenAI form; a new tool
        otherwise. The input is not modified.
    """
    if is_openai_tool(tool):
        return tool

    parameters: object = None
    config = tool.get('config')
    if isinstance(config, Mapping):
        parameters = config.get('schema')  # type: ignore
    if parameters is None:
        function = tool.get(FUNCTION_KEY)
        if isinstance(function, Mapping):
            parameters = function.get('parameters')  # type: ignore
    if parameters is None:
        parameters = copy.deepcopy(DEFAULT_PARAMETERS)
    elif fix_empty_schemas:
        parameters = normalize_schema(parameters)
    else:
        parameters = copy.deepcopy(parameters)

    return {
        'type': FUNCTION_TYPE,
        FUNCTION_KEY: {
            'name': tool_function_name(tool),
            'description': str(tool.get('description') or ""),
            'parameters': parameters,
        },
    }


def convert_tools(
    tools: Sequence[Mapping[str, Any]], fix_empty_schemas: bool = True
) -> list[Mapping[str, Any]]:
    """Convert a list of studio tools, skipping entries that are not
    objects."""
    return [
        convert_tool(t, fix_empty_schemas)
        for t in tools
        if isinstance(t, Mapping)
    ]


def build_tool_name_map(
    tools: Sequence[Mapping[str, Any]],
) -> dict[str, str]:
    """
    Map every name and alias of the tools to the function name that
    is declared in the converted tools. Tool calls in studio
    conversations may refer to a tool by its internal name; the map
    redirects them to the declared name. On duplicate keys, the last
    tool wins.
    """
    name_map: dict[str, str] = {}
    for tool in tools:
        if not isinstance(tool, Mapping):
            continue
        if is_openai_tool(tool):
            name = tool[FUNCTION_KEY].get('name')
            if isinstance(name, str) and name:
                name_map[name] = name
            continue
        final = tool_function_name(tool)
        for key in ('name', 'alias'):
            value = tool.get(key)
            if isinstance(value, str) and value:
                name_map[value] = final
    return name_map
