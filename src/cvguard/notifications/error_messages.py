"""User-facing wording for failures, keyed by the action that failed."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional


class ErrorCategory(Enum):
    UPLOAD = "upload"
    ANALYSIS = "analysis"
    EDIT = "edit"
    DOWNLOAD = "download"
    NETWORK = "network"
    VALIDATION = "validation"


USER_FRIENDLY_MESSAGES: Dict[ErrorCategory, str] = {
    ErrorCategory.UPLOAD: "Failed to upload your CV. Please check your file and try again.",
    ErrorCategory.ANALYSIS: "Failed to analyze your CV. Please try again or contact support.",
    ErrorCategory.EDIT: "Failed to edit the section. Please try again.",
    ErrorCategory.DOWNLOAD: "Failed to generate or download your CV. Please try again.",
    ErrorCategory.NETWORK: "Network connection issue. Please check your internet connection.",
    ErrorCategory.VALIDATION: "Invalid input detected. Please check your data and try again.",
}

# Categories shown as a timed warning; everything else is a persistent error.
WARNING_CATEGORIES = frozenset({ErrorCategory.NETWORK, ErrorCategory.VALIDATION})
WARNING_DURATION_MS = 6000

_GUIDANCE: Dict[ErrorCategory, tuple] = {
    ErrorCategory.UPLOAD: (
        ("file too large", "File is too large. Please use a PDF file smaller than 10MB."),
        ("invalid file type", "Invalid file type. Please upload a PDF file only."),
        ("network", "Upload failed due to network issues. Please check your connection and try again."),
    ),
    ErrorCategory.ANALYSIS: (
        ("timeout", "Analysis is taking longer than expected. Please try again."),
        ("AI service", "AI analysis service is temporarily unavailable. Please try again later."),
        ("PDF processing", "Unable to process your PDF. Please ensure it contains readable text."),
    ),
    ErrorCategory.EDIT: (
        ("content too long", "Section content is too long. Please try with shorter content."),
        ("AI service", "AI editing service is temporarily unavailable. Please try again later."),
    ),
    ErrorCategory.DOWNLOAD: (
        ("generation failed", "PDF generation failed. Please try again or contact support."),
        ("storage", "Unable to save generated PDF. Please try again."),
    ),
}


def refine_error_message(category: ErrorCategory, message: str, *, subject: Optional[str] = None) -> str:
    """Replace a raw failure message with specific guidance when one is known.

    ``subject`` is the operation name for network failures and the field
    name for validation failures.
    """
    if category is ErrorCategory.NETWORK:
        if subject:
            return f"Network error during {subject}. Please check your connection and try again."
        return "Network connection issue. Please check your internet connection and try again."
    if category is ErrorCategory.VALIDATION:
        return f"Invalid {subject}: {message}" if subject else message
    for needle, guidance in _GUIDANCE.get(category, ()):
        if needle in message:
            return guidance
    return message


__all__ = [
    "ErrorCategory",
    "USER_FRIENDLY_MESSAGES",
    "WARNING_CATEGORIES",
    "WARNING_DURATION_MS",
    "refine_error_message",
]
