import re

import pytest

from cvguard.errors import ValidationFailureError
from cvguard.sanitization import (
    ValidationRule,
    sanitize_filename,
    sanitize_json_input,
    sanitize_key_component,
    sanitize_metadata,
    sanitize_rate_limit_key,
    sanitize_text_input,
    validate_and_sanitize_input,
    validate_email,
    validate_session_id,
    validate_url,
    validate_uuid,
)

pytestmark = pytest.mark.unit


class TestSanitizeTextInput:
    def test_strips_tags_and_escapes(self):
        assert sanitize_text_input("  <b>Hi</b> & <i>you</i>  ") == "Hi &amp; you"

    def test_escapes_without_stripping(self):
        assert sanitize_text_input("<b>", strip_tags=False) == "&lt;b&gt;"

    def test_caps_length_and_removes_nul(self):
        assert sanitize_text_input("ab\0cdef", max_length=4) == "abc"

    def test_non_string_becomes_empty(self):
        assert sanitize_text_input(None) == ""
        assert sanitize_text_input(42) == ""

    def test_whitespace_kept_when_requested(self):
        assert sanitize_text_input("  x  ", strip_whitespace=False) == "  x  "


class TestValidation:
    def test_required_field(self):
        result = validate_and_sanitize_input("   ", ValidationRule(required=True))

        assert not result.is_valid
        assert result.errors == ["This field is required"]

    def test_rules_accumulate_errors(self):
        rule = ValidationRule(min_length=5, pattern=re.compile(r"^\d+$"), custom_validator=lambda v: False)

        result = validate_and_sanitize_input("abc", rule)

        assert result.errors == [
            "Minimum length is 5 characters",
            "Input format is invalid",
            "Input validation failed",
        ]

    def test_raise_for_errors(self):
        with pytest.raises(ValidationFailureError) as exc_info:
            validate_email("not-an-email").raise_for_errors("email")

        assert exc_info.value.field == "email"
        assert validate_email("a@b.co").raise_for_errors() == "a@b.co"

    @pytest.mark.parametrize(
        ("value", "valid"),
        [
            ("session_1700000000000_abc123", True),
            ("session_abc_123", False),
            ("SESSION_1_a", False),
            ("", False),
        ],
    )
    def test_session_id(self, value, valid):
        assert validate_session_id(value).is_valid is valid

    def test_uuid_and_url(self):
        assert validate_uuid("123e4567-e89b-12d3-a456-426614174000").is_valid
        assert not validate_uuid("123e4567").is_valid
        assert validate_url("https://example.com/a?b=1&c=2").sanitized_value == "https://example.com/a?b=1&c=2"
        assert not validate_url("ftp://example.com").is_valid


class TestKeysAndStructures:
    def test_key_component_drops_unsafe_characters(self):
        assert sanitize_key_component("ses/sion:1*") == "session1"

    def test_rate_limit_key_replaces_unsafe_characters(self):
        assert sanitize_rate_limit_key("user 1:UPLOAD") == "user_1_UPLOAD"

    def test_metadata(self):
        cleaned = sanitize_metadata({"<b>k</b>": "<script>x</script>v", "n": 3, "flag": True, "nested": {"a": [1]}, "<>": "drop"})

        assert cleaned == {"k": "xv", "n": 3, "flag": True, "nested": '{"a":[1]}'}
        assert sanitize_metadata(None) == {}

    def test_json_input_is_sanitised_recursively(self):
        assert sanitize_json_input({"a": ["<b>x</b>", 1], "b": None}) == {"a": ["x", 1], "b": None}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("../../etc/passwd", "etcpasswd"),
        ("Çağrı CV.pdf", "Cagri_CV.pdf"),
        ("my   résumé (final).pdf", "my_resume_final.pdf"),
        ("...", "file"),
        (None, "file"),
    ],
)
def test_sanitize_filename(raw, expected):
    assert sanitize_filename(raw) == expected
