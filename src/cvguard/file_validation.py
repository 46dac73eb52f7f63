"""Upload screening for CV files.

Checks run before an upload reaches the rate limiter: size limits, MIME type
and extension, the ``%PDF`` signature, structural sanity of the document and
a scan for script or executable payloads. Findings are split into threats,
which reject the upload, and warnings, which are informational.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import ValidationFailureError
from .sanitization import sanitize_filename, sanitize_key_component

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
SUSPICIOUS_SIZE_BYTES = 50 * 1024 * 1024
MIN_PLAUSIBLE_PDF_BYTES = 100
ALLOWED_CONTENT_TYPES = ("application/pdf",)
ALLOWED_EXTENSIONS = (".pdf",)
PDF_SIGNATURE = b"%PDF"
RISK_SUFFIX = "may pose security risks"

SUSPICIOUS_CONTENT_PATTERNS = (
    re.compile(rb"javascript:", re.IGNORECASE),
    re.compile(rb"vbscript:", re.IGNORECASE),
    re.compile(rb"onload=", re.IGNORECASE),
    re.compile(rb"onerror=", re.IGNORECASE),
    re.compile(rb"onclick=", re.IGNORECASE),
    re.compile(rb"\x4d\x5a\x90\x00"),
    re.compile(rb"\x7fELF"),
    re.compile(rb"<script", re.IGNORECASE),
    re.compile(rb"<iframe", re.IGNORECASE),
    re.compile(rb"<object", re.IGNORECASE),
    re.compile(rb"<embed", re.IGNORECASE),
)
SUSPICIOUS_FILENAME_PATTERN = re.compile(r"\.(exe|scr|bat|cmd|com|pif|vbs|js)$", re.IGNORECASE)


@dataclass
class FileSecurityResult:
    is_secure: bool
    sanitized_filename: str
    threats: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def validate_file_type(filename: str, content_type: str) -> Optional[str]:
    """Return an error message when the MIME type or extension is not a PDF."""
    if content_type not in ALLOWED_CONTENT_TYPES:
        return f"Invalid file type: {content_type}. Only PDF files are allowed."
    dot = filename.rfind(".")
    extension = filename[dot:].lower() if dot >= 0 else ""
    if extension not in ALLOWED_EXTENSIONS:
        return f"Invalid file extension: {extension or '(none)'}. Only .pdf files are allowed."
    return None


def validate_file_size(size: int, max_size: int = DEFAULT_MAX_FILE_SIZE) -> Optional[str]:
    if size > max_size:
        return (
            f"File size ({size / (1024 * 1024):.2f}MB) exceeds maximum allowed size "
            f"({max_size / (1024 * 1024):.2f}MB)."
        )
    if size == 0:
        return "File appears to be empty."
    return None


def inspect_pdf_structure(content: bytes) -> List[str]:
    warnings: List[str] = []
    if b"%%EOF" not in content:
        warnings.append("PDF file may be corrupted - missing EOF marker")
    if b"xref" not in content:
        warnings.append("PDF file may be corrupted - missing xref table")
    if len(content) < MIN_PLAUSIBLE_PDF_BYTES:
        warnings.append("PDF file is unusually small and may be corrupted")
    if b"/EmbeddedFile" in content or b"/FileAttachment" in content:
        warnings.append(f"PDF contains embedded files which {RISK_SUFFIX}")
    if b"/JavaScript" in content or b"/JS" in content:
        warnings.append(f"PDF contains JavaScript which {RISK_SUFFIX}")
    if b"/AcroForm" in content or b"/XFA" in content:
        warnings.append(f"PDF contains interactive forms which {RISK_SUFFIX}")
    return warnings


def scan_for_threats(content: bytes, filename: str) -> List[str]:
    threats: List[str] = []
    if len(content) > SUSPICIOUS_SIZE_BYTES:
        threats.append("File size exceeds recommended limits for PDF documents")
    if SUSPICIOUS_FILENAME_PATTERN.search(filename):
        threats.append(f"Suspicious filename pattern: {filename.rsplit('.', 1)[-1].lower()}")
    for pattern in SUSPICIOUS_CONTENT_PATTERNS:
        if pattern.search(content):
            threats.append(f"Suspicious pattern detected: {pattern.pattern.decode('latin-1')!r}")
    return threats


def validate_file_upload(
    filename: str,
    content: bytes,
    content_type: str,
    *,
    max_size: int = DEFAULT_MAX_FILE_SIZE,
) -> FileSecurityResult:
    threats: List[str] = []
    for problem in (validate_file_size(len(content), max_size), validate_file_type(filename, content_type)):
        if problem:
            threats.append(problem)

    if not content.startswith(PDF_SIGNATURE):
        threats.append("File signature does not match PDF format")

    warnings = inspect_pdf_structure(content)
    if any(RISK_SUFFIX not in warning for warning in warnings):
        threats.append("PDF file structure is invalid or corrupted")

    threats.extend(scan_for_threats(content, filename))

    result = FileSecurityResult(
        is_secure=not threats,
        sanitized_filename=sanitize_filename(filename),
        threats=threats,
        warnings=warnings,
    )
    if threats:
        logger.warning("Rejected upload %r: %s", result.sanitized_filename, "; ".join(threats))
    return result


def ensure_valid_upload(filename: str, content: bytes, content_type: str, *, max_size: int = DEFAULT_MAX_FILE_SIZE) -> FileSecurityResult:
    result = validate_file_upload(filename, content, content_type, max_size=max_size)
    if not result.is_secure:
        raise ValidationFailureError(result.threats, field="file")
    return result


def generate_secure_file_path(session_id: str, filename: str, timestamp_ms: int) -> str:
    """Storage path ``<session>/<timestamp>_<filename>`` with both parts sanitised."""
    return f"{sanitize_key_component(session_id)}/{timestamp_ms}_{sanitize_filename(filename)}"


__all__ = [
    "DEFAULT_MAX_FILE_SIZE",
    "FileSecurityResult",
    "ensure_valid_upload",
    "generate_secure_file_path",
    "inspect_pdf_structure",
    "scan_for_threats",
    "validate_file_size",
    "validate_file_type",
    "validate_file_upload",
]
