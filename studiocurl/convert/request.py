"""
Assembly of the OpenAI chat completion request body.

The request body is generated from a capture of the tools (a tools
array, or the agent node that holds them) and a capture of the
conversation, with the request parameters of the configuration. When
the tools capture is an agent node, the model settings of the agent
override the configured temperature, reasoning effort and structured
output.

Main functions:
    build_request_body: build the body from parsed captures
    generate_request_body: build the body from captured JSON texts
    file_request_body: build the body from captured JSON files
"""

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, validate_call

from studiocurl.config.config import Settings, RequestSettings
from studiocurl.utils.ioutils import read_text_file, save_text_file
from studiocurl.utils.logging import LoggerBase, get_logger

from .convert_keys import (
    MODEL_KEY,
    TEMPERATURE_KEY,
    REASONING_EFFORT_KEY,
    STRUCTURED_OUTPUT_KEY,
    STRUCTURED_OUTPUT_FLAGS,
    SCHEMA_KEY,
)
from .messages import ChatMessage, convert_messages
from .schema import fix_schema_strict
from .tools import build_tool_name_map, convert_tools

# Set up logger
logger: LoggerBase = get_logger(__name__)


class RequestBody(BaseModel):
    """The body of a chat completion request. Optional fields set to
    None are left out of the serialized body."""

    temperature: float
    top_p: float
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    max_completion_tokens: int
    tool_choice: str
    messages: list[ChatMessage]
    tools: list[dict[str, Any]]
    reasoning_effort: str | None = None
    response_format: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(exclude_none=True, indent=indent)


def _tools_of(tools: Sequence[Any] | Mapping[str, Any]) -> list[Any]:
    if isinstance(tools, Mapping):
        config = tools.get('config')
        if isinstance(config, Mapping) and isinstance(
            config.get('tools'), list
        ):
            return list(config['tools'])  # type: ignore
        return []
    return list(tools)


def build_request_body(
    tools: Sequence[Any] | Mapping[str, Any],
    messages: Sequence[object],
    settings: Settings | None = None,
    tool_map: Mapping[str, str] | None = None,
    logger: LoggerBase = logger,
) -> RequestBody:
    """
    Build the request body from studio tools and messages.

    Args:
        tools: a list of studio tools, or an agent node whose
            config.tools holds them
        messages: the studio conversation
        settings: the configuration (defaults if None)
        tool_map: names of the tools mapped to their declared names;
            built from tools if None
        logger: a logger object

    Returns:
        the request body. reasoning_effort is set only if reasoning is
        enabled and an effort given; response_format only if
        structured output is enabled and a schema given.
    """
    if settings is None:
        settings = Settings()
    request = settings.request
    conversion = settings.conversion

    tools_list = _tools_of(tools)
    if tool_map is None:
        tool_map = build_tool_name_map(tools_list)

    reasoning_effort: str | None = None
    if request.reasoning_enabled and request.reasoning_effort:
        reasoning_effort = request.reasoning_effort

    response_format: dict[str, Any] | None = None
    schema = request.structured_output_schema
    if request.structured_output_enabled and schema:
        if conversion.strict_structured_output:
            schema = fix_schema_strict(schema)  # type: ignore
        response_format = {
            'type': 'json_schema',
            'json_schema': {
                'name': conversion.response_format_name,
                'strict': True,
                'schema': schema,
            },
        }
    elif request.structured_output_enabled:
        logger.warning("Structured output enabled, but no schema given")

    return RequestBody(
        temperature=request.temperature,
        top_p=request.top_p,
        frequency_penalty=request.frequency_penalty,
        presence_penalty=request.presence_penalty,
        max_completion_tokens=request.max_output_tokens,
        tool_choice=request.tool_choice,
        messages=convert_messages(messages, tool_map, logger),
        tools=[
            dict(t)
            for t in convert_tools(tools_list, conversion.fix_empty_schemas)
        ],
        reasoning_effort=reasoning_effort,
        response_format=response_format,
    )


def settings_from_agent_node(
    node: Mapping[str, Any],
    settings: RequestSettings,
    logger: LoggerBase = logger,
) -> RequestSettings:
    """
    Override the request settings with the model settings of an agent
    node: config.model.temperature, config.model.reasoningEffort, and
    config.structuredOutput (enabled flag and schema).

    Settings of the agent that are not valid request settings are
    ignored with a warning, and the given settings returned.
    """
    config = node.get('config')
    if not isinstance(config, Mapping):
        return settings

    update: dict[str, Any] = {}
    model = config.get(MODEL_KEY)
    if isinstance(model, Mapping):
        temperature = model.get(TEMPERATURE_KEY)
        if isinstance(temperature, (int, float)) and not isinstance(
            temperature, bool
        ):
            update['temperature'] = temperature
        effort = model.get(REASONING_EFFORT_KEY)
        if isinstance(effort, str) and effort.strip():
            update['reasoning_enabled'] = True
            update['reasoning_effort'] = effort

    structured = config.get(STRUCTURED_OUTPUT_KEY)
    if isinstance(structured, Mapping):
        enabled = any(structured.get(k) is True for k in STRUCTURED_OUTPUT_FLAGS)
        schema = structured.get(SCHEMA_KEY)
        if enabled and schema:
            update['structured_output_enabled'] = True
            update['structured_output_schema'] = schema

    if not update:
        return settings
    try:
        return RequestSettings.model_validate(
            settings.model_dump() | update
        )
    except ValidationError as e:
        logger.warning(
            f"Agent model settings ignored: {e.error_count()} invalid"
        )
        return settings


def parse_json_array(
    text: str, logger: LoggerBase = logger
) -> list[Any] | None:
    """Parse a JSON array. Returns None, logging the error, if the
    text is not a JSON array."""
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON: {e.msg}")
        return None
    if not isinstance(value, list):
        logger.error("JSON must be an array")
        return None
    return value  # type: ignore


def parse_tools_input(
    text: str, logger: LoggerBase = logger
) -> list[Any] | dict[str, Any] | None:
    """Parse a tools capture: a tools array or an agent node object.
    Returns None, logging the error, otherwise."""
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid tools JSON: {e.msg}")
        return None
    if not isinstance(value, (list, dict)):
        logger.error("Tools JSON must be an array or agent object")
        return None
    return value  # type: ignore


def generate_request_body(
    tools_text: str,
    messages_text: str,
    settings: Settings | None = None,
    logger: LoggerBase = logger,
) -> RequestBody | None:
    """
    Generate the request body from the captured tools and messages.

    Args:
        tools_text: JSON of a tools array or of an agent node
        messages_text: JSON of a studio conversation
        settings: the configuration (defaults if None)
        logger: a logger object

    Returns:
        the request body, or None if the input is not valid or no
        message is left after conversion.
    """
    tools = parse_tools_input(tools_text, logger)
    if tools is None:
        logger.error("Please enter valid Tools JSON")
        return None
    messages = parse_json_array(messages_text, logger)
    if messages is None:
        logger.error("Please enter valid Messages JSON array")
        return None

    if settings is None:
        settings = Settings()
    if isinstance(tools, dict):
        request = settings_from_agent_node(tools, settings.request, logger)
        settings = settings.model_copy(update={'request': request})

    body = build_request_body(tools, messages, settings, logger=logger)
    if not body.messages:
        logger.error(
            "No valid messages found after conversion. Please check "
            "your input."
        )
        return None
    logger.info(
        f"Generated request: {len(body.messages)} messages, "
        f"{len(body.tools)} tools"
    )
    return body


@validate_call(config={'arbitrary_types_allowed': True})
def file_request_body(
    tools_file: str | Path,
    messages_file: str | Path,
    save: bool | str | Path = False,
    settings: Settings | None = None,
    logger: LoggerBase = logger,
) -> RequestBody | None:
    """
    Generate the request body from captures saved to file.

    Args:
        tools_file: file with the tools JSON
        messages_file: file with the messages JSON
        save: if False, does not save; if True, saves the body next
            to the messages file, with suffix '.body.json'; if a
            filename, saves to that file.
        settings: the configuration (read from config.toml if None)
        logger: a logger object (defaults to console logging)

    Returns:
        the request body, or None on failure.
    """
    tools_text = read_text_file(tools_file, logger)
    if tools_text is None:
        return None
    messages_text = read_text_file(messages_file, logger)
    if messages_text is None:
        return None

    body = generate_request_body(tools_text, messages_text, settings, logger)
    if body is None:
        return None

    match save:
        case False:
            pass
        case True:
            source = Path(messages_file)
            target = source.with_name(f"{source.stem}.body.json")
            save_text_file(target, body.to_json(), logger)
        case str() | Path():
            save_text_file(save, body.to_json(), logger)
        case _:
            pass

    return body


if __name__ == "__main__":
    """Interactive loop to test module. The source file is the tools
    capture; the messages capture is read from the file with the same
    name and suffix '.messages.json' in place of '.tools.json'."""
    import sys
    from studiocurl.utils.ioutils import create_interface

    def call_file_request_body(filename: str, target: str) -> None:
        messages_file = filename.replace(".tools.json", ".messages.json")
        body = file_request_body(filename, messages_file, target or False)
        if body is not None:
            print(body.to_json())

    create_interface(call_file_request_body, sys.argv)
