from __future__ import annotations
from typing import Dict, List, Optional, Tuple
from flask import abort


def parse_sort(sort_expr: Optional[str], allowed: Dict[str, object]) -> List[Tuple[str, bool]]:
    """Split ``-price,name`` into ``[('price', True), ('name', False)]``.

    Unknown or repeated keys abort with 400; empty tokens are skipped.
    """
    fields: List[Tuple[str, bool]] = []
    seen = set()
    for raw in (sort_expr or '').split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token.lstrip('-')
        if key not in allowed:
            abort(400, description=f'Invalid sort field {key}')
        if key in seen:
            abort(400, description=f'Duplicate sort field {key}')
        seen.add(key)
        fields.append((key, desc))
    return fields


def apply_multi_sort(query, sort_expr: Optional[str], allowed: dict, tie_breaker, default: Optional[str] = None):
    """Order a list query by ``?sort``, falling back to ``default``.

    ``tie_breaker`` is always appended ascending so paging stays stable.
    """
    fields = parse_sort(sort_expr if sort_expr else default, allowed)
    clauses = [allowed[key].desc() if desc else allowed[key].asc() for key, desc in fields]
    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)
