"""List paging defaults shared by every collection endpoint.

Clients send either ``offset`` or a 1-based ``page``; ``page`` wins when both
are present.
"""
from typing import Optional, Tuple

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
PAGE_SIZE_OPTIONS = (10, 20, 50, 100)


def _to_int(raw, default: int, name: str) -> int:
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f'{name} must be int')


def normalize_pagination(limit_raw, offset_raw, page_raw: Optional[str] = None) -> Tuple[int, int]:
    """Return a clamped ``(limit, offset)`` pair. Raises ValueError on non-integers."""
    limit = max(1, min(_to_int(limit_raw, DEFAULT_LIMIT, 'limit'), MAX_LIMIT))
    if page_raw is not None and page_raw != '':
        page = max(1, _to_int(page_raw, 1, 'page'))
        return limit, (page - 1) * limit
    return limit, max(0, _to_int(offset_raw, 0, 'offset'))


def page_of(offset: int, limit: int) -> int:
    return offset // limit + 1
