"""Keys and literals of OpenAI chat completion payloads"""

import re

FUNCTION_TYPE = 'function'
FUNCTION_KEY = 'function'
UNKNOWN_FUNCTION = 'unknown_function'

# roles accepted as such; other roles are tool responses
CHAT_ROLES = ('user', 'assistant', 'system')
ASSISTANT_ROLE = 'assistant'
TOOL_ROLE = 'tool'
TOOL_CALLS_KEY = 'tool_calls'

# tool responses of the studio start with the name of the function
EXECUTED_PATTERN = re.compile(r"Executed \*\*([^*]+)\*\*")

# agent node model settings
MODEL_KEY = 'model'
TEMPERATURE_KEY = 'temperature'
REASONING_EFFORT_KEY = 'reasoningEffort'
STRUCTURED_OUTPUT_KEY = 'structuredOutput'
STRUCTURED_OUTPUT_FLAGS = ('enabled', 'enable')
SCHEMA_KEY = 'schema'
