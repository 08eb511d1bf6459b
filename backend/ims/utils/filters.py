from __future__ import annotations
from typing import Any, Dict
from flask import abort

_TRUE = {'1', 'true', 'yes'}
_FALSE = {'0', 'false', 'no'}


def parse_bool(raw: str) -> bool:
    val = raw.strip().lower()
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    raise ValueError(raw)


def apply_filters(query, specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]):
    """Generic filter builder for list endpoints.

    specs: { param_name: { 'op': callable(query, value)->query, 'coerce': callable (optional), 'validate': callable (optional) } }
    Blank parameters are ignored.
    """
    for name, meta in specs.items():
        raw = params.get(name)
        if raw is None or (isinstance(raw, str) and raw.strip() == ''):
            continue
        val = raw
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except (TypeError, ValueError):
                abort(400, description=f'{name} invalid')
        if 'validate' in meta and not meta['validate'](val):
            abort(400, description=f'{name} invalid')
        query = meta['op'](query, val)
    return query
