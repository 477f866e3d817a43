"""
Security utilities for Fadeboard.
Provides path traversal protection, input sanitization, upload validation
and the security event log.
"""
import logging
import re
from pathlib import Path
from typing import Set

security_logger = logging.getLogger('security')

# Image types only (NO SVG - can contain JavaScript)
ALLOWED_IMAGE_TYPES: Set[str] = {
    'image/png', 'image/jpeg', 'image/webp', 'image/gif',
}

RECOGNIZED_EXTENSIONS: Set[str] = {'.png', '.jpg', '.jpeg', '.webp', '.gif'}

GENERIC_EXTENSION = '.bin'

# Dangerous patterns in filenames
DANGEROUS_PATTERNS = [
    r'\.\.', r'/', r'\\', r'\x00',  # Path traversal
    r'<', r'>', r':', r'"', r'\|', r'\?', r'\*'  # Windows special chars
]


def validate_path_traversal(base_path: Path, requested_path: str) -> Path:
    """
    Validate that a file path doesn't escape the base directory.

    Args:
        base_path: The allowed base directory
        requested_path: A stored media filename

    Returns:
        Safe resolved path

    Raises:
        ValueError: If path traversal detected
    """
    clean_path = requested_path.replace('..', '').replace('/', '').replace('\\', '')
    if not clean_path:
        raise ValueError("Empty file path")

    full_path = (base_path / clean_path).resolve()

    try:
        full_path.relative_to(base_path.resolve())
    except ValueError:
        security_logger.warning(f"Path traversal attempt: {requested_path}")
        raise ValueError("Invalid file path")

    return full_path


def clean_text(text: str, max_length: int = 1000) -> str:
    """
    Strip null bytes and surrounding whitespace, then truncate.

    Stored text is rendered by the client as text, so no HTML escaping
    happens here.
    """
    if not text:
        return ""
    return text.replace('\x00', '').strip()[:max_length]


def sanitize_filename(filename: str) -> str:
    """
    Sanitize a client-supplied filename.

    Only the extension of the result is ever used; stored names are generated.
    """
    if not filename:
        return ""

    for pattern in DANGEROUS_PATTERNS:
        filename = re.sub(pattern, '', filename)

    return filename.strip('. \t\n\r')


def normalize_content_type(content_type: str) -> str:
    """Lower-case a MIME type and drop parameters such as charset."""
    return (content_type or "").split(';')[0].strip().lower()


def is_allowed_image_type(content_type: str) -> bool:
    return normalize_content_type(content_type) in ALLOWED_IMAGE_TYPES


def pick_extension(filename: str) -> str:
    """
    Keep the original extension when it is a recognized image extension,
    otherwise fall back to a generic one.
    """
    ext = Path(sanitize_filename(filename or "")).suffix.lower()
    return ext if ext in RECOGNIZED_EXTENSIONS else GENERIC_EXTENSION


def log_security_event(event_type: str, details: dict):
    """Log a security-relevant event."""
    security_logger.warning(f"SECURITY_EVENT: {event_type} - {details}")
