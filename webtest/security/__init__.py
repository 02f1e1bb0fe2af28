"""
Log sanitization for the capture engine.
"""

from .sanitizer import (
    DataSanitizer,
    RedactionMethod,
    SanitizationRule,
    SensitiveDataPattern,
    sanitize_dict,
    sanitize_string,
)

__all__ = [
    "DataSanitizer",
    "SensitiveDataPattern",
    "SanitizationRule",
    "RedactionMethod",
    "sanitize_dict",
    "sanitize_string",
]
