"""Configuration resolution and file loading."""

from dephealth.config.loader import (
    apply_settings,
    default_config_template,
    load_config_file,
    load_settings,
    resolve_settings,
    write_config_template,
)

__all__ = [
    "apply_settings",
    "default_config_template",
    "load_config_file",
    "load_settings",
    "resolve_settings",
    "write_config_template",
]
