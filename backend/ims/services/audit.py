from __future__ import annotations
from typing import Any, Dict, List, Optional
from flask_jwt_extended import get_jwt_identity, get_jwt
from sqlalchemy import select
from ims import get_db
from ims.models.audit import AuditLog


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Stage an audit entry in the current DB session.

    Parameters:
      action: short action code e.g. PRODUCT.CREATE, INVENTORY.TRANSFER, SALE.STATUS
      entity: optional entity name (Product, Sale, ...)
      entity_id: optional primary key
      meta: additional JSON-safe dictionary (shallow copied)
    """
    session = get_db()
    claims: Dict[str, Any] = {}
    actor = None
    try:
        claims = get_jwt() or {}
        ident = get_jwt_identity()
        actor = int(ident) if ident is not None else None
    except RuntimeError:
        # outside a verified request (scripts, tests) – anonymous actor
        claims, actor = {}, None
    log = AuditLog(
        actor_user_id=actor or 0,
        actor_role=claims.get('role'),
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log


def recent_activity(limit: int = 10) -> List[Dict[str, Any]]:
    """Latest audit entries, newest first, shaped for the dashboard feed."""
    session = get_db()
    rows = session.execute(
        select(AuditLog).order_by(AuditLog.id.desc()).limit(limit)
    ).scalars().all()
    return [r.to_dict() for r in rows]
