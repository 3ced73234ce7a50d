"""
Read and write configuration file.

The configuration has three sections:

    request: the parameters of the chat completion request that is
        generated from a capture (endpoint, sampling parameters,
        reasoning and structured output options)
    extraction: bounds and thresholds of the page scan
    conversion: switches of the studio-to-OpenAI conversion

The request section mirrors the configuration record edited in the
generator form. Its fields may be given in snake_case or with the
camelCase keys of that record (e.g. 'topP', 'maxOutputTokens').
"""

import json
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

ToolChoice = Literal['auto', 'none', 'required']
ReasoningEffort = Literal['none', 'minimal', 'low', 'medium', 'high']

# Constants for better maintainability
DEFAULT_CONFIG_FILE = "config.toml"
ENV_PREFIX = "STUDIOCURL_"
DEFAULT_API_ENDPOINT = "https://api.openai.com/v1/chat/completions"
DEFAULT_API_VERSION = "2024-02-01"
DEFAULT_API_KEY = "<Your openai key>"
DEFAULT_HOST_HEADER = "api.openai.com"


class RequestSettings(BaseModel):
    """
    Parameters of the generated chat completion request.

    Attributes:
        api_endpoint: the chat completions URL
        api_version: value of the api-version query parameter
        api_key: value of the api-key query parameter
        host_header: value of the Host header
        temperature: float between 0.0 and 2.0
        top_p: nucleus sampling, between 0.0 and 1.0
        tool_choice: 'auto', 'none' or 'required'
        frequency_penalty: between -2.0 and 2.0
        presence_penalty: between -2.0 and 2.0
        max_output_tokens: sent as max_completion_tokens
        reasoning_enabled: whether reasoning_effort is sent
        reasoning_effort: the reasoning effort, if enabled
        structured_output_enabled: whether response_format is sent
        structured_output_schema: the JSON schema of the response
    """

    # endpoint (used by the external request formatter)
    api_endpoint: str = DEFAULT_API_ENDPOINT
    api_version: str = DEFAULT_API_VERSION
    api_key: str = DEFAULT_API_KEY
    host_header: str = DEFAULT_HOST_HEADER

    # sampling
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Controls randomness in model responses (0.0-2.0)",
    )
    top_p: float = Field(default=0.1, ge=0.0, le=1.0)
    tool_choice: ToolChoice = "auto"
    frequency_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    presence_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    max_output_tokens: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of tokens to generate",
    )

    # optional request features
    reasoning_enabled: bool = False
    reasoning_effort: ReasoningEffort | None = None
    structured_output_enabled: bool = False
    structured_output_schema: dict[str, Any] | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra='forbid',
    )

    @field_validator('api_endpoint', mode='after')
    @classmethod
    def validate_endpoint(cls, url: str) -> str:
        cleaned = url.strip()
        if not cleaned:
            return DEFAULT_API_ENDPOINT
        if not re.match(r"^https?://", cleaned, re.IGNORECASE):
            cleaned = "https://" + cleaned
        return cleaned

    @field_validator('reasoning_effort', mode='before')
    @classmethod
    def validate_reasoning_effort(cls, value: object) -> object:
        # the form sends an empty string when no effort is chosen
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @field_validator('structured_output_schema', mode='before')
    @classmethod
    def validate_schema(cls, value: object) -> object:
        # the schema is edited as text in the form
        if isinstance(value, str):
            if not value.strip():
                return None
            try:
                value = json.loads(value)
            except json.JSONDecodeError as e:
                raise ValueError(
                    f"Structured output schema is not valid JSON: {e.msg}"
                ) from e
        if value is not None and not isinstance(value, dict):
            raise ValueError(
                "Structured output schema must be a JSON object"
            )
        return value


class ExtractionSettings(BaseModel):
    """
    Bounds and thresholds of the page scan.

    Attributes:
        max_state_candidates: max number of global state objects
            discovered by name pattern that are searched
        max_state_text_length: global state strings longer than this
            are not scanned
        min_attribute_length: min length of a data-* attribute or a
            pre/code block to be considered
        min_viewer_text_length: min text length of a JSON viewer
            element to be considered
        tools_ratio_threshold: min ratio of tool-shaped elements for
            an array to be classified as a tools array
    """

    max_state_candidates: int = Field(default=40, ge=0)
    max_state_text_length: int = Field(default=5_000_000, ge=1)
    min_attribute_length: int = Field(default=50, ge=0)
    min_viewer_text_length: int = Field(default=100, ge=0)
    tools_ratio_threshold: float = Field(default=0.5, gt=0.0, le=1.0)

    model_config = ConfigDict(frozen=True, extra='forbid')


class ConversionSettings(BaseModel):
    """
    Switches of the studio-to-OpenAI conversion.

    Attributes:
        fix_empty_schemas: relax additionalProperties on object
            schemas that declare no properties
        strict_structured_output: apply the strict-mode fix to the
            structured output schema
        response_format_name: the name of the json_schema in
            response_format
    """

    fix_empty_schemas: bool = True
    strict_structured_output: bool = True
    response_format_name: str = "structured_output"

    model_config = ConfigDict(frozen=True, extra='forbid')

    @field_validator('response_format_name', mode='after')
    @classmethod
    def validate_name(cls, name: str) -> str:
        cleaned = name.strip()
        if not re.fullmatch(r"[A-Za-z0-9_-]{1,64}", cleaned):
            raise ValueError(
                "response_format_name must be 1-64 letters, digits, "
                + "underscores or dashes"
            )
        return cleaned


class Settings(BaseSettings):
    """
    A pydantic settings object containing the fields with the
    configuration information.

    Settings are read from the configuration file in TOML format and
    from environment variables prefixed with STUDIOCURL_, with '__'
    separating sections and fields (e.g.
    STUDIOCURL_REQUEST__API_KEY).

    Attributes:
        request: parameters of the generated request
        extraction: page scan parameters
        conversion: conversion switches
    """

    request: RequestSettings = Field(
        default_factory=RequestSettings,
        description="Parameters of the generated request",
    )
    extraction: ExtractionSettings = Field(
        default_factory=ExtractionSettings,
        description="Page scan bounds and thresholds",
    )
    conversion: ConversionSettings = Field(
        default_factory=ConversionSettings,
        description="Conversion switches",
    )

    model_config = SettingsConfigDict(
        toml_file=DEFAULT_CONFIG_FILE,
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        frozen=True,
        extra='forbid',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize the order of settings sources."""
        return (
            init_settings,
            TomlConfigSettingsSource(settings_cls),
            env_settings,
        )

    def __str__(self) -> str:
        return serialize_settings(self)


def serialize_settings(sets: BaseSettings) -> str:
    """Transform the settings into a string in TOML format.

    Args:
        sets: The settings object to serialize

    Returns:
        TOML formatted string representation of settings
    """
    import tomlkit

    doc = tomlkit.document()
    doc.add(tomlkit.comment("studiocurl configuration file"))
    doc.add(tomlkit.nl())

    data: dict[str, Any] = sets.model_dump()
    for key, value in data.items():
        if isinstance(value, dict):
            tbl = tomlkit.table()
            for kkey, vvalue in value.items():  # type: ignore
                # None values can't be serialized to TOML
                if vvalue is not None:
                    tbl[kkey] = vvalue
            doc[key] = tbl
        elif value is not None:
            doc[key] = value

    return str(tomlkit.dumps(doc))  # type: ignore


def export_settings(
    settings: BaseSettings, file_path: str | Path | None = None
) -> None:
    """Save settings to file in TOML format.

    Args:
        settings: A settings object to save
        file_path: The settings file path (defaults to config.toml)

    Raises:
        OSError: If file cannot be written
    """
    if file_path is None:
        file_path = DEFAULT_CONFIG_FILE

    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with file_path.open("w", encoding="utf-8") as f:
        f.write(serialize_settings(settings))


def create_default_config_file(
    file_path: str | Path | None = None,
) -> None:
    """Create a settings file with default values, replacing any
    existing one.

    Args:
        file_path: Target file path (defaults to config.toml)

    Raises:
        OSError: If file cannot be written
    """
    if file_path is None:
        file_path = DEFAULT_CONFIG_FILE

    file_path = Path(file_path)

    if file_path.exists():
        # otherwise, it would be read in
        file_path.unlink()

    export_settings(Settings(), file_path)


def load_settings(file_path: str | Path | None = None) -> Settings:
    """Load settings from TOML file.

    Args:
        file_path: Path to settings file (defaults to config.toml)

    Returns:
        Loaded settings object

    Raises:
        FileNotFoundError: If settings file doesn't exist
        ValueError: If settings file is invalid
    """
    if file_path is None:
        file_path = DEFAULT_CONFIG_FILE

    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(
            f"Settings file not found: {file_path}"
        )

    try:

        class FileSettings(Settings):
            model_config = SettingsConfigDict(
                toml_file=str(file_path),
                env_prefix=ENV_PREFIX,
                env_nested_delimiter="__",
                frozen=True,
                extra='forbid',
            )

        return FileSettings()
    except Exception as e:
        raise ValueError(
            f"Failed to load settings from {file_path}: "
            + format_pydantic_error_message(str(e))
        ) from e


def format_pydantic_error_message(error_message: str) -> str:
    """Filter out verbose lines from pydantic error messages.

    Args:
        error_message: Raw pydantic error message

    Returns:
        Cleaned error message without verbose help text
    """
    lines = error_message.split('\n')
    filtered_lines = [
        line
        for line in lines
        if "For further information visit" not in line
    ]
    return '\n'.join(filtered_lines)
