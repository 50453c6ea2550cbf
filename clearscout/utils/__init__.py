"""
Shared utility functions.
"""

from clearscout.utils.config_helpers import load_config, merge_configs
from clearscout.utils.text_processing import (
    clean_body_lines,
    clean_body_text,
    first_non_empty,
    normalize_space,
    strip_tags,
)

__all__ = [
    # Text processing
    "normalize_space",
    "strip_tags",
    "clean_body_text",
    "clean_body_lines",
    "first_non_empty",
    # Configuration utilities
    "merge_configs",
    "load_config",
]
