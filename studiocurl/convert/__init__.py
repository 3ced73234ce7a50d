# pyright: reportUnusedImport=false
# flake8: noqa

from .tools import (
    convert_tool,
    convert_tools,
    normalize_schema,
    build_tool_name_map,
)

from .messages import (
    ChatMessage,
    ToolCall,
    FunctionCall,
    convert_message_content,
    convert_messages,
)

from .schema import fix_schema_strict

from .request import (
    RequestBody,
    build_request_body,
    settings_from_agent_node,
    generate_request_body,
    file_request_body,
)
