"""
gcontact_alpine.utils - Utility module

Common utilities including logging configuration and path resolution.
"""

from gcontact_alpine.utils.normalization import normalize_email, normalize_string
from gcontact_alpine.utils.paths import (
    CONFIG_DIR_NAME,
    default_addressbook_path,
    home_dir,
    resolve_config_dir,
)

__all__ = [
    "normalize_string",
    "normalize_email",
    "resolve_config_dir",
    "default_addressbook_path",
    "home_dir",
    "CONFIG_DIR_NAME",
]
