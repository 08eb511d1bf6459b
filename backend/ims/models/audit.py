from __future__ import annotations
from typing import Any, Dict, Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, JSON, DateTime, func

from .authz import Base


class AuditLog(Base):
    """One recorded mutation; also the source of the dashboard activity feed."""
    __tablename__ = 'audit_logs'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # 0 when the change was made outside an authenticated request
    actor_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    actor_role: Mapped[Optional[str]] = mapped_column(String(16))
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity: Mapped[Optional[str]] = mapped_column(String(64))
    entity_id: Mapped[Optional[str]] = mapped_column(String(64))
    meta: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'action': self.action,
            'entity': self.entity,
            'entity_id': self.entity_id,
            'actor_user_id': self.actor_user_id,
            'actor_role': self.actor_role,
            'meta': self.meta or {},
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
