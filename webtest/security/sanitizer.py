"""
Data sanitization for engine logs.

Screenshots travel through the engine as base64 data URLs and recorded
actions can carry credentials typed into the site under test; both are
redacted before anything reaches a log handler.
"""

import hashlib
import logging
import re
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Pattern

logger = logging.getLogger(__name__)


class RedactionMethod(Enum):
    """Methods for redacting sensitive data."""
    MASK = auto()          # Replace with asterisks
    HASH = auto()          # Replace with short hash
    PARTIAL = auto()       # Show first/last few chars
    PLACEHOLDER = auto()   # Replace with placeholder text


@dataclass
class SensitiveDataPattern:
    """Pattern for identifying sensitive data."""

    name: str
    pattern: Pattern[str]
    redaction_method: RedactionMethod = RedactionMethod.PLACEHOLDER
    placeholder: str = "[REDACTED]"
    partial_chars: int = 4
    description: str = ""
    enabled: bool = True

    def matches(self, text: str) -> List[re.Match]:
        """Find all matches in text."""
        if not self.enabled:
            return []
        return list(self.pattern.finditer(text))


@dataclass
class SanitizationRule:
    """Redact every string value stored under one of ``keys``."""

    name: str
    keys: List[str] = field(default_factory=list)
    placeholder: str = "[REDACTED]"
    enabled: bool = True

    def applies_to(self, key: Optional[str]) -> bool:
        if not self.enabled or not key:
            return False
        key_lower = key.lower()
        return any(k in key_lower for k in self.keys)


class DataSanitizer:
    """Redacts screenshots and credentials from strings, dicts and log records."""

    def __init__(self) -> None:
        self.patterns: List[SensitiveDataPattern] = []
        self.rules: List[SanitizationRule] = []
        self._setup_default_patterns()
        self._setup_default_rules()

    def _setup_default_patterns(self) -> None:
        """Set up default sensitive data patterns."""
        self.patterns.extend([
            SensitiveDataPattern(
                name="screenshot_data_url",
                pattern=re.compile(r'data:image/[a-zA-Z+.-]+;base64,[A-Za-z0-9+/=]+'),
                placeholder="[SCREENSHOT]",
                description="Inline base64 screenshots",
            ),
            SensitiveDataPattern(
                name="bearer_token",
                pattern=re.compile(r'Bearer\s+[A-Za-z0-9\-._~+/]+=*', re.IGNORECASE),
                placeholder="Bearer [REDACTED]",
                description="Bearer authentication tokens",
            ),
            SensitiveDataPattern(
                name="api_key_prefix",
                pattern=re.compile(
                    r'(api[_-]?key|apikey|api_secret|access[_-]?token)\s*[:=]\s*["\']?([^"\'\s]+)["\']?',
                    re.IGNORECASE,
                ),
                redaction_method=RedactionMethod.MASK,
                description="API key with common prefixes",
            ),
            SensitiveDataPattern(
                name="password_field",
                pattern=re.compile(r'(password|passwd|pwd)\s*[:=]\s*["\']?([^"\'\s]+)["\']?', re.IGNORECASE),
                placeholder="[PASSWORD]",
                description="Password assignments",
            ),
            SensitiveDataPattern(
                name="jwt_token",
                pattern=re.compile(r'eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+'),
                redaction_method=RedactionMethod.HASH,
                description="JWT tokens",
            ),
        ])

    def _setup_default_rules(self) -> None:
        """Set up default key-based rules."""
        self.rules.append(
            SanitizationRule(
                name="auth_keys",
                keys=["password", "api_key", "apikey", "token", "secret", "authorization"],
            )
        )
        self.rules.append(
            SanitizationRule(
                name="screenshots",
                keys=["screenshot"],
                placeholder="[SCREENSHOT]",
            )
        )

    def add_pattern(self, pattern: SensitiveDataPattern) -> None:
        """Add a custom pattern."""
        self.patterns.append(pattern)

    def sanitize_string(self, text: str) -> str:
        """Redact every enabled pattern found in ``text``."""
        if not text:
            return text

        result = text
        for pattern in self.patterns:
            # Process from the end so earlier spans keep their offsets
            for match in reversed(pattern.matches(result)):
                result = self._apply_redaction(result, match, pattern)
        return result

    def _apply_redaction(
        self,
        text: str,
        match: re.Match,
        pattern: SensitiveDataPattern
    ) -> str:
        start, end = match.span()
        matched_text = match.group()

        if pattern.redaction_method == RedactionMethod.MASK:
            replacement = "*" * len(matched_text)
        elif pattern.redaction_method == RedactionMethod.HASH:
            hash_val = hashlib.sha256(matched_text.encode()).hexdigest()[:8]
            replacement = f"[HASH:{hash_val}]"
        elif pattern.redaction_method == RedactionMethod.PARTIAL:
            if len(matched_text) > pattern.partial_chars * 2:
                replacement = (
                    matched_text[:pattern.partial_chars]
                    + "*" * (len(matched_text) - pattern.partial_chars * 2)
                    + matched_text[-pattern.partial_chars:]
                )
            else:
                replacement = "*" * len(matched_text)
        else:
            replacement = pattern.placeholder

        return text[:start] + replacement + text[end:]

    def sanitize_dict(self, data: Dict[str, Any], max_depth: int = 10) -> Dict[str, Any]:
        """
        Sanitize a dictionary recursively.

        Args:
            data: Dictionary to sanitize
            max_depth: Maximum recursion depth

        Returns:
            Sanitized copy of ``data``
        """
        if max_depth <= 0:
            logger.warning("Max recursion depth reached in sanitize_dict")
            return data

        result = deepcopy(data)

        def _sanitize_value(value: Any, key: Optional[str] = None) -> Any:
            if isinstance(value, str):
                for rule in self.rules:
                    if rule.applies_to(key):
                        return rule.placeholder
                return self.sanitize_string(value)
            if isinstance(value, dict):
                return self.sanitize_dict(value, max_depth - 1)
            if isinstance(value, list):
                return [_sanitize_value(item, key) for item in value]
            return value

        for key, value in result.items():
            result[key] = _sanitize_value(value, str(key))

        return result

    def sanitize_log_record(self, record: logging.LogRecord) -> logging.LogRecord:
        """Sanitize the message and args of a log record in place."""
        record.msg = self.sanitize_string(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = self.sanitize_dict(record.args)
            else:
                record.args = tuple(
                    self.sanitize_string(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return record


_default_sanitizer = DataSanitizer()


def sanitize_string(text: str) -> str:
    """Sanitize a string using default patterns."""
    return _default_sanitizer.sanitize_string(text)


def sanitize_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Sanitize a dictionary using default rules."""
    return _default_sanitizer.sanitize_dict(data)
