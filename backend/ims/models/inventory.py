from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, Float, ForeignKey, DateTime, UniqueConstraint, text
from typing import Optional

from .authz import Base


class InventoryItem(Base):
    __tablename__ = 'inventory'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    location_id: Mapped[int] = mapped_column(ForeignKey('locations.id', ondelete='CASCADE'), nullable=False, index=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    reserved_quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    reorder_point: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    max_stock: Mapped[Optional[float]] = mapped_column(Float)
    last_counted: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))

    product = relationship('Product')
    location = relationship('Location')

    __table_args__ = (UniqueConstraint('product_id', 'location_id', name='uq_inventory_product_location'),)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.reorder_point
