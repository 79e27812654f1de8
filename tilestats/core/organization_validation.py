"""Organization ID format validation.

Shared by the tile stats endpoints (query/header/body) and the cache key
builders so malformed organization IDs are rejected in one place.
"""

import re

from tilestats.core.constants import ORGANIZATION_ID_MAX_LENGTH

_ORGANIZATION_ID_RE = re.compile(
    r"^[a-zA-Z0-9_-]{1," + str(ORGANIZATION_ID_MAX_LENGTH) + r"}$"
)


def is_valid_organization_id_format(value: str) -> bool:
    """Return True if value is a safe organization identifier."""
    if not value or len(value) > ORGANIZATION_ID_MAX_LENGTH:
        return False
    return bool(_ORGANIZATION_ID_RE.fullmatch(value))
