from __future__ import annotations
from typing import Any, Callable, Dict, List, Tuple
from flask import request, abort
from sqlalchemy.orm import Query
from ims.config.pagination import normalize_pagination, page_of


def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    """Apply ?limit with ?offset or ?page from the current request; returns (paged_q, total, limit, offset)."""
    try:
        limit, offset = normalize_pagination(
            request.args.get('limit'), request.args.get('offset'), request.args.get('page')
        )
    except ValueError as e:
        abort(400, description=str(e))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def build_list_payload(rows: List[Dict[str, Any]], total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'page': page_of(offset, limit),
            'pages': (total + limit - 1) // limit,
            'returned': len(rows),
        }
    }


def paginated_response(q: Query, serialize: Callable[[Any], Dict[str, Any]]):
    """Count, page and serialize a list query into the standard list payload."""
    paged_q, total, limit, offset = apply_pagination(q)
    rows = [serialize(r) for r in paged_q.all()]
    return build_list_payload(rows, total, limit, offset)
