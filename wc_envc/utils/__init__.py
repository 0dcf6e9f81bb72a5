"""
Utils module - file discovery, .gitignore and persistent environment helpers.
"""

from wc_envc.utils.paths import (
    count_variables,
    default_input_name,
    default_output_name,
    find_env_files,
)

__all__ = [
    "count_variables",
    "default_input_name",
    "default_output_name",
    "find_env_files",
]
