"""Input sanitisation and validation shared by the limiter and session registry.

Plain-text inputs are trimmed, stripped of markup, HTML-escaped, length
capped and cleared of NUL characters. Structured inputs (metadata maps, JSON
payloads) are sanitised recursively with tighter caps on keys.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Pattern
from urllib.parse import urlparse

import orjson
from markupsafe import Markup, escape

from .errors import ValidationFailureError

MAX_TEXT_LENGTH = 10000
MAX_KEY_LENGTH = 100
MAX_METADATA_VALUE_LENGTH = 1000
MAX_RATE_LIMIT_KEY_LENGTH = 200
MAX_SESSION_ID_LENGTH = 100
MAX_FILENAME_LENGTH = 100

SESSION_ID_PATTERN = re.compile(r"^session_\d+_[a-z0-9]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_TAG_LIKE = re.compile(r"<[^>]*>")

_TRANSLITERATION = str.maketrans(
    {
        "ç": "c", "Ç": "C", "ğ": "g", "Ğ": "G", "ı": "i", "İ": "I",
        "ö": "o", "Ö": "O", "ş": "s", "Ş": "S", "ü": "u", "Ü": "U",
        "á": "a", "à": "a", "â": "a", "ä": "a", "ã": "a", "å": "a",
        "Á": "A", "À": "A", "Â": "A", "Ä": "A", "Ã": "A", "Å": "A",
        "é": "e", "è": "e", "ê": "e", "ë": "e",
        "É": "E", "È": "E", "Ê": "E", "Ë": "E",
        "í": "i", "ì": "i", "î": "i", "ï": "i",
        "Í": "I", "Ì": "I", "Î": "I", "Ï": "I",
        "ó": "o", "ò": "o", "ô": "o", "õ": "o",
        "Ó": "O", "Ò": "O", "Ô": "O", "Õ": "O",
        "ú": "u", "ù": "u", "û": "u",
        "Ú": "U", "Ù": "U", "Û": "U",
        "ñ": "n", "Ñ": "N",
    }
)  # fmt: skip


@dataclass(frozen=True)
class ValidationRule:
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[Pattern[str]] = None
    custom_validator: Optional[Callable[[str], bool]] = None


@dataclass
class ValidationResult:
    is_valid: bool
    sanitized_value: str
    errors: List[str] = field(default_factory=list)

    def raise_for_errors(self, field_name: Optional[str] = None) -> str:
        """Return the sanitised value or raise ``ValidationFailureError``."""
        if not self.is_valid:
            raise ValidationFailureError(self.errors, field=field_name)
        return self.sanitized_value


def sanitize_text_input(
    value: Any,
    *,
    max_length: int = MAX_TEXT_LENGTH,
    strip_whitespace: bool = True,
    strip_tags: bool = True,
    escape_html: bool = True,
) -> str:
    """Neutralise markup in ``value`` and cap its length; non-strings become ``""``."""
    if not isinstance(value, str):
        return ""

    sanitized = value.strip() if strip_whitespace else value
    if strip_tags and _TAG_LIKE.search(sanitized):
        sanitized = Markup(sanitized).striptags()
    if escape_html:
        sanitized = str(escape(sanitized))
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]
    return sanitized.replace("\0", "")


def validate_and_sanitize_input(value: Any, rule: ValidationRule = ValidationRule(), **options: Any) -> ValidationResult:
    if rule.required and (not isinstance(value, str) or not value.strip()):
        return ValidationResult(False, "", ["This field is required"])

    sanitized = sanitize_text_input(value, **options)
    errors: List[str] = []
    if rule.min_length is not None and len(sanitized) < rule.min_length:
        errors.append(f"Minimum length is {rule.min_length} characters")
    if rule.max_length is not None and len(sanitized) > rule.max_length:
        errors.append(f"Maximum length is {rule.max_length} characters")
    if rule.pattern is not None and not rule.pattern.match(sanitized):
        errors.append("Input format is invalid")
    if rule.custom_validator is not None and not rule.custom_validator(sanitized):
        errors.append("Input validation failed")
    return ValidationResult(not errors, sanitized, errors)


def validate_session_id(session_id: Any) -> ValidationResult:
    return validate_and_sanitize_input(
        session_id,
        ValidationRule(required=True, pattern=SESSION_ID_PATTERN),
        max_length=MAX_SESSION_ID_LENGTH,
    )


def validate_uuid(value: Any) -> ValidationResult:
    return validate_and_sanitize_input(value, ValidationRule(required=True, pattern=UUID_PATTERN), max_length=36)


def validate_email(value: Any) -> ValidationResult:
    return validate_and_sanitize_input(value, ValidationRule(required=True, max_length=254, pattern=EMAIL_PATTERN))


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def validate_url(value: Any) -> ValidationResult:
    # Escaping would mangle query strings, so only tags and whitespace are removed.
    return validate_and_sanitize_input(
        value,
        ValidationRule(required=True, max_length=2048, custom_validator=_is_http_url),
        escape_html=False,
    )


def sanitize_key_component(value: str) -> str:
    """Restrict ``value`` to ``[A-Za-z0-9_-]`` by dropping everything else."""
    return _UNSAFE_KEY_CHARS.sub("", value)


def sanitize_rate_limit_key(key: str) -> str:
    cleaned = sanitize_text_input(key, max_length=MAX_RATE_LIMIT_KEY_LENGTH)
    return _UNSAFE_KEY_CHARS.sub("_", cleaned)


def sanitize_metadata(metadata: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Cap keys and values; scalars pass through, anything else is JSON-encoded."""
    sanitized: Dict[str, Any] = {}
    for key, value in (metadata or {}).items():
        clean_key = sanitize_text_input(str(key), max_length=MAX_KEY_LENGTH)
        if not clean_key:
            continue
        if isinstance(value, str):
            sanitized[clean_key] = sanitize_text_input(value, max_length=MAX_METADATA_VALUE_LENGTH)
        elif isinstance(value, (bool, int, float)):
            sanitized[clean_key] = value
        else:
            encoded = orjson.dumps(value, default=str).decode("utf-8")
            sanitized[clean_key] = encoded[:MAX_METADATA_VALUE_LENGTH]
    return sanitized


def sanitize_json_input(value: Any) -> Any:
    if isinstance(value, str):
        return sanitize_text_input(value)
    if isinstance(value, (list, tuple)):
        return [sanitize_json_input(item) for item in value]
    if isinstance(value, Mapping):
        return {sanitize_text_input(str(key), max_length=MAX_KEY_LENGTH): sanitize_json_input(item) for key, item in value.items()}
    return value


def sanitize_filename(filename: Any) -> str:
    """Make ``filename`` safe for storage paths, transliterating accented letters."""
    if not isinstance(filename, str):
        return "file"

    cleaned = filename.replace("..", "")
    cleaned = re.sub(r"[/\\]", "", cleaned)
    cleaned = re.sub(r"[\x00-\x1f]", "", cleaned)
    cleaned = re.sub(r'[<>:"|?*]', "", cleaned)
    cleaned = cleaned.translate(_TRANSLITERATION)
    cleaned = re.sub(r"[^a-zA-Z0-9.\-_ ]", "", cleaned)
    cleaned = re.sub(r"\s+", "_", cleaned)
    cleaned = re.sub(r"_{2,}", "_", cleaned)
    cleaned = cleaned.strip("._")
    return cleaned[:MAX_FILENAME_LENGTH] or "file"


__all__ = [
    "SESSION_ID_PATTERN",
    "ValidationResult",
    "ValidationRule",
    "sanitize_filename",
    "sanitize_json_input",
    "sanitize_key_component",
    "sanitize_metadata",
    "sanitize_rate_limit_key",
    "sanitize_text_input",
    "validate_and_sanitize_input",
    "validate_email",
    "validate_session_id",
    "validate_url",
    "validate_uuid",
]
