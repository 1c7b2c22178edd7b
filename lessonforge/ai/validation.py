"""
Input checks that run before any provider call.
"""

import re
from typing import Iterable, List, Optional

from lessonforge.errors import ValidationError

URL_PATTERN = re.compile(r'^(http|https)://[^ "]+$')


def is_valid_url(value: str) -> bool:
    return bool(URL_PATTERN.match(value or ""))


def require_text(value: Optional[str], field: str, message: str) -> str:
    """Return the stripped value or raise when it is blank."""
    if not value or not value.strip():
        raise ValidationError(message, field=field)
    return value.strip()


def clean_source_urls(urls: Iterable[str], max_urls: int) -> List[str]:
    """
    Keep the well-formed http(s) URLs from the user's inputs.

    Raises:
        ValidationError: more than ``max_urls`` inputs, or none of them valid.
    """
    inputs = [u.strip() for u in urls if u and u.strip()]
    if len(inputs) > max_urls:
        raise ValidationError(f"At most {max_urls} URLs may be used", field="source_urls")
    valid = [u for u in inputs if is_valid_url(u)]
    if not valid:
        raise ValidationError("Please enter at least one valid URL", field="source_urls")
    return valid
