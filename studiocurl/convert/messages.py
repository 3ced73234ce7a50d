"""
Conversion of studio conversations to OpenAI chat messages.

In a studio conversation, message contents may be lists of text parts
or objects, tool calls may be recorded as {name, args} or in OpenAI
form, and the responses to tool calls carry as role the identifier of
the studio node that executed the call rather than 'tool'. The
conversion rebuilds a message list where every tool call of an
assistant message is answered by a 'tool' message with the id of the
call.

Tool responses are paired with calls in order of arrival: each
response takes the id of the oldest call still unanswered. This is
correct when responses follow the order of the calls, which is the
case of the studio traces, but pairs responses wrongly if they arrive
out of order. The studio does not echo the call id in the response.

Main functions:
    convert_message_content: normalize content to a string
    convert_messages: convert a studio conversation
"""

import json
import time
from collections import deque
from collections.abc import Mapping, Sequence
from typing import Any, Literal

from pydantic import BaseModel, Field

from studiocurl.utils.logging import LoggerBase, get_logger

from .convert_keys import (
    FUNCTION_KEY,
    FUNCTION_TYPE,
    UNKNOWN_FUNCTION,
    CHAT_ROLES,
    ASSISTANT_ROLE,
    TOOL_CALLS_KEY,
    EXECUTED_PATTERN,
)

# Set up logger
logger: LoggerBase = get_logger(__name__)


class FunctionCall(BaseModel):
    """The function invoked by a tool call, with its arguments
    serialized as JSON."""

    name: str
    arguments: str = "{}"


class ToolCall(BaseModel):
    """Represents a tool call requested by the model."""

    id: str
    type: Literal['function'] = FUNCTION_TYPE
    function: FunctionCall


class ChatMessage(BaseModel):
    """Represents a message in a chat conversation."""

    role: Literal['system', 'user', 'assistant', 'tool']
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = Field(
        default=None,
        description="ID of the tool call this message responds to",
    )


def convert_message_content(content: object) -> str:
    """
    Normalize the content of a studio message to a string.

    Strings are returned as they are. Lists of parts are reduced to
    the text of their 'text' parts, joined by newlines. Objects are
    serialized as compact JSON. Null and other falsy values give an
    empty string; anything else is converted with str().
    """
    match content:
        case str():
            return content
        case list() | tuple():
            texts = [
                str(part['text'])
                for part in content  # type: ignore
                if isinstance(part, Mapping)
                and part.get('type') == 'text'
                and part.get('text')
            ]
            return "\n".join(texts)
        case Mapping():
            return json.dumps(
                content, separators=(',', ':'), ensure_ascii=False
            )
        case _:
            return str(content) if content else ""


def _repair_name(next_content: str) -> str | None:
    match = EXECUTED_PATTERN.search(next_content)
    return match.group(1).strip() if match else None


def _convert_tool_call(
    call: object,
    default_id: str,
    tool_map: Mapping[str, str],
    next_content: str,
    logger: LoggerBase,
) -> ToolCall:
    record: Mapping[str, Any] = call if isinstance(call, Mapping) else {}
    function: Mapping[str, Any] = record.get(FUNCTION_KEY) or {}
    if not isinstance(function, Mapping):
        function = {}

    call_id = record.get('id')
    if isinstance(call_id, (int, float)) and not isinstance(call_id, bool):
        call_id = str(call_id)
    if not isinstance(call_id, str) or not call_id:
        call_id = default_id

    name = record.get('name') or function.get('name')
    arguments = (
        record['args'] if 'args' in record else function.get('arguments')
    )

    if not isinstance(name, str) or name not in tool_map:
        repaired = _repair_name(next_content)
        if repaired:
            logger.info(f"Tool call {call_id}: name '{name}' -> '{repaired}'")
            name = repaired
    if not isinstance(name, str) or not name:
        logger.warning(f"Tool call {call_id} has no function name")
        name = UNKNOWN_FUNCTION
    name = tool_map.get(name, name)

    if not isinstance(arguments, str):
        arguments = json.dumps(
            arguments if arguments is not None else {}, ensure_ascii=False
        )
    return ToolCall(
        id=call_id, function=FunctionCall(name=name, arguments=arguments)
    )


def convert_messages(
    messages: Sequence[object],
    tool_map: Mapping[str, str] | None = None,
    logger: LoggerBase = logger,
) -> list[ChatMessage]:
    """
    Convert a studio conversation into OpenAI chat messages.

    Assistant messages with tool calls are converted with all their
    calls; each call gets the id of the record or a generated one,
    and a function name mapped through tool_map. If the name of a
    call is not in tool_map, the name is read from an 'Executed
    **name**' mark in the following message, when present.

    User, assistant and system messages with blank content are
    dropped, as are messages without a role. Messages with any other
    role are responses to tool calls: they become 'tool' messages
    answering the oldest unanswered call, or are dropped if no call
    is pending.

    Args:
        messages: the studio messages
        tool_map: names and aliases of the tools mapped to their
            declared function names (see build_tool_name_map)
        logger: a logger object

    Returns:
        the converted messages. Gaps in the conversation are repaired
        or dropped and logged, not raised.
    """
    if tool_map is None:
        tool_map = {}
    now_ms = int(time.time() * 1000)
    pending: deque[str] = deque()
    converted: list[ChatMessage] = []

    for i, message in enumerate(messages):
        if not isinstance(message, Mapping):
            logger.warning(f"Message {i} is not an object, skipped")
            continue
        role = message.get('role')
        content = convert_message_content(message.get('content'))

        calls = message.get(TOOL_CALLS_KEY)
        if role == ASSISTANT_ROLE and isinstance(calls, list) and calls:
            next_content = ""
            if i + 1 < len(messages):
                following = messages[i + 1]
                if isinstance(following, Mapping):
                    next_content = convert_message_content(
                        following.get('content')
                    )
            tool_calls = [
                _convert_tool_call(
                    call,
                    f"call_{now_ms}_{i}_{j}",
                    tool_map,
                    next_content,
                    logger,
                )
                for j, call in enumerate(calls)  # type: ignore
            ]
            pending.extend(tc.id for tc in tool_calls)
            converted.append(
                ChatMessage(
                    role='assistant', content=content, tool_calls=tool_calls
                )
            )
            continue

        if not isinstance(role, str) or not role:
            logger.warning(f"Message {i} has no role, dropped")
            continue

        if role in CHAT_ROLES:
            if content.strip():
                converted.append(ChatMessage(role=role, content=content))
            else:
                logger.debug(f"Message {i} ({role}) is empty, dropped")
            continue

        if pending:
            converted.append(
                ChatMessage(
                    role='tool',
                    content=content,
                    tool_call_id=pending.popleft(),
                )
            )
        else:
            logger.warning(
                f"Message {i} ({role}) responds to no pending tool "
                "call, dropped"
            )

    if pending:
        logger.warning(
            f"{len(pending)} tool calls have no response: "
            + ", ".join(pending)
        )
    return converted
