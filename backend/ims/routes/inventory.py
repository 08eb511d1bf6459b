from datetime import datetime, timezone
from flask import Blueprint, request, abort, current_app
from sqlalchemy import select, or_
from ims import get_db
from ims.constants.permissions import Permission
from ims.decorators.auth import require_permissions
from ims.decorators.audit import audit_log
from ims.models.inventory import InventoryItem
from ims.models.product import Product, Location
from ims.utils.errors import json_body, raise_for_form, raise_for_result
from ims.utils.filters import apply_filters, parse_bool
from ims.utils.listing import paginated_response
from ims.utils.sorting import apply_multi_sort
from ims.utils.validation import FieldRule, is_number, validate_field, validate_form, validate_inventory

inv_bp = Blueprint('inventory', __name__)

EDITABLE_FIELDS = ('quantity', 'reserved_quantity', 'reorder_point', 'max_stock')


def _positive_quantity(value):
    return None if is_number(value) and value > 0 else 'Quantity must be a positive number'


TRANSFER_VALIDATORS = {
    'product_id': lambda v: validate_field(v, FieldRule(required=True), 'Product'),
    'from_location_id': lambda v: validate_field(v, FieldRule(required=True), 'Source location'),
    'to_location_id': lambda v: validate_field(v, FieldRule(required=True), 'Destination location'),
    'quantity': lambda v: validate_field(v, FieldRule(required=True, custom=_positive_quantity), 'Quantity'),
}


def _search(qu, term):
    like = f'%{term}%'
    return qu.join(Product, InventoryItem.product_id == Product.id).filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))


def _low_stock(qu, flag):
    if flag:
        return qu.filter(InventoryItem.quantity <= InventoryItem.reorder_point)
    return qu.filter(InventoryItem.quantity > InventoryItem.reorder_point)


FILTER_SPECS = {
    'location_id': {'coerce': int, 'op': lambda qu, v: qu.filter(InventoryItem.location_id == v)},
    'product_id': {'coerce': int, 'op': lambda qu, v: qu.filter(InventoryItem.product_id == v)},
    'low_stock': {'coerce': parse_bool, 'op': _low_stock},
    'search': {'op': _search},
}

SORT_FIELDS = {
    'quantity': InventoryItem.quantity,
    'reorder_point': InventoryItem.reorder_point,
    'updated_at': InventoryItem.updated_at,
    'id': InventoryItem.id,
}


def _item_json(i: InventoryItem):
    return {
        'id': i.id,
        'product_id': i.product_id,
        'location_id': i.location_id,
        'quantity': i.quantity,
        'reserved_quantity': i.reserved_quantity,
        'available_quantity': i.quantity - i.reserved_quantity,
        'reorder_point': i.reorder_point,
        'max_stock': i.max_stock,
        'low_stock': i.is_low_stock,
        'last_counted': i.last_counted.isoformat() if i.last_counted else None,
    }


def _get_item(session, item_id: int) -> InventoryItem:
    item = session.get(InventoryItem, item_id)
    if not item:
        abort(404)
    return item


def _find_line(session, product_id, location_id):
    return session.execute(
        select(InventoryItem).where(InventoryItem.product_id == product_id, InventoryItem.location_id == location_id)
    ).scalar_one_or_none()


def _check_references(session, product_id, location_id):
    product = session.get(Product, product_id) if isinstance(product_id, int) else None
    if not product or not product.is_active:
        abort(400, description='Product not found')
    if not isinstance(location_id, int) or session.get(Location, location_id) is None:
        abort(400, description='Location not found')


def _snapshot(item_id):
    item = get_db().get(InventoryItem, item_id)
    return _item_json(item) if item else {}


@inv_bp.get('')
@require_permissions(Permission.INVENTORY_VIEW)
def list_inventory():
    q = get_db().query(InventoryItem)
    q = apply_filters(q, FILTER_SPECS, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), SORT_FIELDS, InventoryItem.id)
    return paginated_response(q, _item_json)


@inv_bp.get('/<int:item_id>')
@require_permissions(Permission.INVENTORY_VIEW)
def get_inventory_item(item_id: int):
    return _item_json(_get_item(get_db(), item_id))


@inv_bp.post('')
@require_permissions(Permission.INVENTORY_UPDATE)
@audit_log('INVENTORY.CREATE', entity='InventoryItem', entity_id_key='id', meta_keys=['product_id', 'location_id', 'quantity'])
def create_inventory_item():
    data = json_body()
    raise_for_result(validate_inventory(data))
    session = get_db()
    _check_references(session, data['product_id'], data['location_id'])
    if _find_line(session, data['product_id'], data['location_id']):
        abort(400, description='inventory line exists')
    reorder_point = data.get('reorder_point')
    if reorder_point is None:
        reorder_point = current_app.config['LOW_STOCK_DEFAULT_REORDER_POINT']
    item = InventoryItem(
        product_id=data['product_id'],
        location_id=data['location_id'],
        quantity=data['quantity'],
        reserved_quantity=0,
        reorder_point=reorder_point,
        max_stock=data.get('max_stock'),
    )
    session.add(item)
    session.commit()
    return _item_json(item), 201


@inv_bp.put('/<int:item_id>')
@require_permissions(Permission.INVENTORY_UPDATE)
@audit_log(
    'INVENTORY.UPDATE',
    entity='InventoryItem',
    entity_id_key='id',
    diff_keys=list(EDITABLE_FIELDS),
    pre_fetch=lambda a, kw: _snapshot(kw.get('item_id')),
)
def update_inventory_item(item_id: int):
    session = get_db()
    item = _get_item(session, item_id)
    record = _item_json(item)
    record.update({k: v for k, v in json_body().items() if k in EDITABLE_FIELDS})
    raise_for_result(validate_inventory(record))
    reserved = record['reserved_quantity']
    if not is_number(reserved) or reserved < 0 or reserved > record['quantity']:
        abort(400, description='reserved_quantity must be between 0 and quantity')
    for key in EDITABLE_FIELDS:
        setattr(item, key, record[key])
    session.commit()
    return _item_json(item)


@inv_bp.post('/<int:item_id>/adjust')
@require_permissions(Permission.INVENTORY_ADJUST)
@audit_log(
    'INVENTORY.ADJUST',
    entity='InventoryItem',
    entity_id_key='id',
    diff_keys=['quantity'],
    pre_fetch=lambda a, kw: _snapshot(kw.get('item_id')),
    meta_builder=lambda data, rv, a, kw: {'reason': json_body().get('reason')},
)
def adjust_inventory_item(item_id: int):
    session = get_db()
    item = _get_item(session, item_id)
    data = json_body()
    delta = data.get('delta')
    if not is_number(delta):
        abort(400, description='delta must be a number')
    new_quantity = item.quantity + delta
    if new_quantity < 0:
        abort(400, description='Quantity cannot go below zero')
    if new_quantity < item.reserved_quantity:
        abort(400, description='Quantity cannot go below reserved quantity')
    item.quantity = new_quantity
    item.last_counted = datetime.now(timezone.utc)
    session.commit()
    return _item_json(item)


@inv_bp.post('/transfer')
@require_permissions(Permission.INVENTORY_TRANSFER)
@audit_log('INVENTORY.TRANSFER', entity='InventoryItem', meta_builder=lambda data, rv, a, kw: dict(data.get('transfer', {})))
def transfer_inventory():
    data = json_body()
    raise_for_form(validate_form(data, TRANSFER_VALIDATORS))
    product_id, quantity = data['product_id'], data['quantity']
    source_id, target_id = data['from_location_id'], data['to_location_id']
    if source_id == target_id:
        abort(400, description='Source and destination locations must differ')
    session = get_db()
    _check_references(session, product_id, source_id)
    _check_references(session, product_id, target_id)
    source = _find_line(session, product_id, source_id)
    if not source or source.quantity - source.reserved_quantity < quantity:
        abort(400, description='Insufficient available stock at source location')
    target = _find_line(session, product_id, target_id)
    if target is None:
        target = InventoryItem(
            product_id=product_id,
            location_id=target_id,
            quantity=0,
            reserved_quantity=0,
            reorder_point=current_app.config['LOW_STOCK_DEFAULT_REORDER_POINT'],
        )
        session.add(target)
    source.quantity = source.quantity - quantity
    target.quantity = (target.quantity or 0) + quantity
    session.commit()
    return {
        'transfer': {
            'product_id': product_id,
            'from_location_id': source_id,
            'to_location_id': target_id,
            'quantity': quantity,
        },
        'source': _item_json(source),
        'destination': _item_json(target),
    }
