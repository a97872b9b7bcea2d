"""
City name sanitization and validation for incoming lookups.
"""

import re
from typing import Optional

from shared.errors import ValidationError


MAX_CITY_LENGTH = 30
INVALID_CITY_MESSAGE = "Invalid city name"

_SCRIPT_PATTERN = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]+>")

_VIETNAMESE_LETTERS = (
    "ÀÁÂÃÈÉÊÌÍÒÓÔÕÙÚĂĐĨŨƠàáâãèéêìíòóôõùúăđĩũơƯĂẠẢẤẦẨẪẬẮẰẲẴẶẸẺẼỀỀỂ"
    "ưăạảấầẩẫậắằẳẵặẹẻẽềềểỄỆỈỊỌỎỐỒỔỖỘỚỜỞỠỢỤỦỨỪễệỉịọỏốồổỗộớờởỡợụủứừ"
    "ỬỮỰỲỴÝỶỸửữựỳỵýỷỹ"
)
_CITY_PATTERN = re.compile(rf"^[a-zA-Z{_VIETNAMESE_LETTERS}\s'-]+$")

_SQL_PATTERNS = [
    re.compile(r"(\bOR\b|\bAND\b).*=.*=", re.IGNORECASE),
    re.compile(r"'\s*(OR|AND)\s*'?\d+'?\s*=\s*'?\d+", re.IGNORECASE),
    re.compile(r"--"),
    re.compile(r";.*DROP", re.IGNORECASE),
    re.compile(r";.*DELETE", re.IGNORECASE),
    re.compile(r";.*UPDATE", re.IGNORECASE),
    re.compile(r";.*INSERT", re.IGNORECASE),
    re.compile(r"UNION.*SELECT", re.IGNORECASE),
    re.compile(r"'\s*OR\s*1\s*=\s*1", re.IGNORECASE),
]


def sanitize_input(value: str) -> str:
    """Strip script blocks and HTML tags."""
    value = _SCRIPT_PATTERN.sub("", value)
    return _TAG_PATTERN.sub("", value).strip()


def detect_sql_injection(value: str) -> bool:
    return any(pattern.search(value) for pattern in _SQL_PATTERNS)


def validate_city_name(raw: Optional[str]) -> str:
    """Return the trimmed city name or raise ``ValidationError``."""
    if raw is None:
        raise ValidationError("City is required")

    if detect_sql_injection(raw):
        raise ValidationError(INVALID_CITY_MESSAGE)

    city = sanitize_input(raw)
    # Markup removal that changes the input means the input carried markup.
    if city != raw.strip():
        raise ValidationError(INVALID_CITY_MESSAGE)

    if not city or len(city) > MAX_CITY_LENGTH:
        raise ValidationError(INVALID_CITY_MESSAGE)

    if not _CITY_PATTERN.match(city):
        raise ValidationError(INVALID_CITY_MESSAGE)

    return city
