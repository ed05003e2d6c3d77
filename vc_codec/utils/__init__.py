"""
Utility functions.
"""

from .string_utils import escape_bytes, sanitize_sort_title, to_camel_case, to_snake_case

__all__ = ['escape_bytes', 'sanitize_sort_title', 'to_camel_case', 'to_snake_case']
