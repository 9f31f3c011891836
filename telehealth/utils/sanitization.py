import html
import re
from typing import Optional

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize a string by escaping HTML special characters to prevent XSS.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return html.escape(_CONTROL_CHARS.sub("", value), quote=True)


def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Trim free text; empty or whitespace-only input is stored as NULL"""
    if value is None:
        return None
    value = value.strip()
    return sanitize_string(value) if value else None
