from __future__ import annotations
"""Audit decorator for mutating route handlers.

Usage:

@audit_log('PRODUCT.CREATE', entity='Product', entity_id_key='id', meta_keys=['name', 'sku'])
def create_product():
    ... return _product_json(p), 201

@audit_log('PRODUCT.UPDATE', entity='Product', entity_id_key='id', diff_keys=['price'],
           pre_fetch=lambda a, kw: _snapshot(kw['product_id']))
def update_product(product_id): ...

Parameters:
  action: audit action code
  entity: optional entity label
  entity_id_key: key in the returned JSON object used as entity_id
  entity_id_arg: view keyword argument used when entity_id_key is absent
  meta_keys: keys projected from the returned JSON into meta
  meta_builder: callable (data, rv, args, kwargs) -> meta; overrides meta_keys
  diff_keys / pre_fetch: record before/after values of the listed keys

Views may return a dict or a (dict, status[, headers]) tuple; the view's
return value is passed through untouched. Only successful views are audited
(an aborted view raises before the audit step).
"""
import logging
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional

from ims.services.audit import add_audit
from ims import get_db

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    changes = {}
    for k in keys:
        if k in before and k in after and before[k] != after[k]:
            changes[k] = {'before': before[k], 'after': after[k]}
    return changes


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data = _extract_payload(rv)
            if not isinstance(data, dict):
                data = {}
            entity_id = None
            if entity_id_key and entity_id_key in data:
                entity_id = data.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            if meta_builder:
                meta = meta_builder(data, rv, args, kwargs)
            elif meta_keys:
                meta = {k: data.get(k) for k in meta_keys if k in data}
            else:
                meta = {}
            if diff_keys and before:
                changes = _diff(before, data, diff_keys)
                if changes:
                    meta['changes'] = changes
            add_audit(action, entity, entity_id, meta)
            session = get_db()
            try:
                session.commit()
            except Exception:
                # the view already committed its own work; only the audit row is lost
                session.rollback()
                logger.exception('failed to persist audit entry %s', action)
            return rv
        return wrapper
    return outer
