"""
Strict mode for structured output schemas.

With strict json_schema response formats, OpenAI requires every object
schema to list all its properties as required and to forbid additional
properties.
"""

import copy
from typing import Any


def fix_schema_strict(schema: object) -> object:
    """
    Return a copy of schema where every object node has 'required'
    set to the keys of its 'properties' and 'additionalProperties'
    set to false. Property schemas and array item schemas are fixed
    recursively.

    Values that are not mappings are returned unchanged.

    Example:
        ```python
        fix_schema_strict({
            'type': 'object',
            'properties': {'a': {'type': 'string'}},
        })
        # {'type': 'object', 'properties': {'a': {'type': 'string'}},
        #  'required': ['a'], 'additionalProperties': False}
        ```
    """
    if not isinstance(schema, dict):
        return schema
    result: dict[str, Any] = copy.deepcopy(schema)  # type: ignore
    _fix_node(result)
    return result


def _fix_node(node: dict[str, Any]) -> None:
    match node.get('type'):
        case 'object':
            properties = node.get('properties')
            if not isinstance(properties, dict):
                properties = {}
            node['required'] = list(properties)  # type: ignore
            node['additionalProperties'] = False
            for value in properties.values():  # type: ignore
                if isinstance(value, dict):
                    _fix_node(value)  # type: ignore
        case 'array':
            items = node.get('items')
            if isinstance(items, dict):
                _fix_node(items)  # type: ignore
        case _:
            pass
