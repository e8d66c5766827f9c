"""
gcontact_alpine.config - Configuration management module

Contains configuration loading, validation, and resolved runtime settings.
"""

from gcontact_alpine.config.generator import generate_default_config, save_config_file
from gcontact_alpine.config.loader import ConfigError, ConfigLoader
from gcontact_alpine.config.settings import Settings

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "Settings",
    "generate_default_config",
    "save_config_file",
]
