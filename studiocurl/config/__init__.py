# pyright: reportUnusedImport=false
# flake8: noqa

from .config import (
    Settings,
    RequestSettings,
    ExtractionSettings,
    ConversionSettings,
    serialize_settings,
    export_settings,
    create_default_config_file,
    load_settings,
)
