from __future__ import annotations
"""Aggregate queries behind the dashboard and exports."""
import csv
import io
from typing import Any, Dict, List
from sqlalchemy import func, select
from ims import get_db
from ims.models.inventory import InventoryItem
from ims.models.product import Category, Location, Product
from ims.models.sale import Sale, SaleItem

TOP_PRODUCTS_LIMIT = 5


def _counted_sales():
    return Sale.status != Sale.STATUS_CANCELLED


def dashboard_metrics() -> Dict[str, Any]:
    session = get_db()
    total_products = session.execute(
        select(func.count(Product.id)).where(Product.is_active.is_(True))
    ).scalar_one()
    low_stock_items = session.execute(
        select(func.count(InventoryItem.id))
        .join(Product, InventoryItem.product_id == Product.id)
        .where(InventoryItem.quantity <= InventoryItem.reorder_point, Product.is_active.is_(True))
    ).scalar_one()
    total_sales, revenue = session.execute(
        select(func.count(Sale.id), func.coalesce(func.sum(Sale.total), 0)).where(_counted_sales())
    ).one()
    active_orders = session.execute(
        select(func.count(Sale.id)).where(Sale.status.in_(Sale.ACTIVE_STATUSES))
    ).scalar_one()
    inventory_value = session.execute(
        select(func.coalesce(func.sum(InventoryItem.quantity * Product.cost), 0))
        .select_from(InventoryItem)
        .join(Product, InventoryItem.product_id == Product.id)
        .where(Product.is_active.is_(True))
    ).scalar_one()
    return {
        'total_products': total_products,
        'low_stock_items': low_stock_items,
        'total_sales': total_sales,
        'revenue': round(float(revenue), 2),
        'active_orders': active_orders,
        'inventory_value': round(float(inventory_value), 2),
        'top_selling_products': top_selling_products(),
    }


def top_selling_products(limit: int = TOP_PRODUCTS_LIMIT) -> List[Dict[str, Any]]:
    session = get_db()
    revenue = func.sum(SaleItem.quantity * SaleItem.price)
    rows = session.execute(
        select(Product.id, Product.name, func.sum(SaleItem.quantity), revenue)
        .select_from(Product)
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .where(_counted_sales())
        .group_by(Product.id, Product.name)
        .order_by(revenue.desc(), Product.id.asc())
        .limit(limit)
    ).all()
    return [
        {'id': pid, 'name': name, 'sales': float(qty or 0), 'revenue': round(float(rev or 0), 2)}
        for pid, name, qty, rev in rows
    ]


def category_performance() -> List[Dict[str, Any]]:
    """Units, revenue and gross profit per category, with each category's share of units."""
    session = get_db()
    units = func.sum(SaleItem.quantity)
    revenue = func.sum(SaleItem.quantity * SaleItem.price)
    profit = func.sum(SaleItem.quantity * (SaleItem.price - Product.cost))
    rows = session.execute(
        select(Category.name, units, revenue, profit)
        .select_from(Category)
        .join(Product, Product.category_id == Category.id)
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .where(_counted_sales())
        .group_by(Category.id, Category.name)
        .order_by(units.desc())
    ).all()
    total_units = sum(float(r[1] or 0) for r in rows)
    return [
        {
            'category': name,
            'sales': float(u or 0),
            'revenue': round(float(rev or 0), 2),
            'profit': round(float(pr or 0), 2),
            'percentage': round(float(u or 0) * 100 / total_units, 1) if total_units else 0,
        }
        for name, u, rev, pr in rows
    ]


INVENTORY_CSV_COLUMNS = ['sku', 'product', 'location', 'quantity', 'reserved_quantity', 'reorder_point', 'max_stock', 'low_stock']


def inventory_csv() -> str:
    session = get_db()
    rows = session.execute(
        select(Product.sku, Product.name, Location.code, InventoryItem)
        .select_from(Product)
        .join(InventoryItem, InventoryItem.product_id == Product.id)
        .join(Location, InventoryItem.location_id == Location.id)
        .order_by(Product.sku.asc(), Location.code.asc())
    ).all()
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(INVENTORY_CSV_COLUMNS)
    for sku, name, loc_code, item in rows:
        writer.writerow([
            sku, name, loc_code, item.quantity, item.reserved_quantity,
            item.reorder_point, '' if item.max_stock is None else item.max_stock,
            'yes' if item.is_low_stock else 'no',
        ])
    return buf.getvalue()
