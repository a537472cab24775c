"""Stitch ID generation and validation.

IDs look like S-YYYYMMDD-xxxx: the creation date followed by 4 random hex
characters, so lexical order follows creation date.
"""

import re
import secrets
from datetime import date, datetime

STITCH_ID_PATTERN = re.compile(r'^S-\d{8}-[a-f0-9]{4}$')
_DATE_PATTERN = re.compile(r'^S-(\d{4})(\d{2})(\d{2})-')


def generate_stitch_id(now: datetime | None = None) -> str:
    """Generate a new stitch ID for the given (or current) date."""
    now = now or datetime.now()
    return f"S-{now.strftime('%Y%m%d')}-{secrets.token_hex(2)}"


def is_valid_stitch_id(stitch_id: str) -> bool:
    return bool(STITCH_ID_PATTERN.match(stitch_id))


def extract_date_from_id(stitch_id: str) -> date | None:
    """Return the creation date encoded in a stitch ID, or None."""
    match = _DATE_PATTERN.match(stitch_id)
    if not match:
        return None
    year, month, day = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None
