from flask import Blueprint, request, abort
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import select, func, or_
from ims import get_db
from ims.constants.permissions import Permission
from ims.decorators.auth import require_permissions
from ims.decorators.audit import audit_log
from ims.models.inventory import InventoryItem
from ims.models.product import Product, Category
from ims.utils.errors import ValidationFailed, json_body, raise_for_result, require_strings
from ims.utils.filters import apply_filters, parse_bool
from ims.utils.listing import paginated_response
from ims.utils.sorting import apply_multi_sort
from ims.utils.validation import validate_product

products_bp = Blueprint('products', __name__)

EDITABLE_FIELDS = ('name', 'description', 'sku', 'barcode', 'price', 'cost', 'category_id')
STRING_FIELDS = ('name', 'description', 'sku', 'barcode')


def _stock_subquery():
    return (
        select(func.coalesce(func.sum(InventoryItem.quantity), 0))
        .where(InventoryItem.product_id == Product.id)
        .correlate(Product)
        .scalar_subquery()
    )


def _search(qu, term):
    like = f'%{term}%'
    return qu.filter(or_(Product.name.ilike(like), Product.sku.ilike(like), Product.description.ilike(like)))


def _in_stock(qu, flag):
    stock = _stock_subquery()
    return qu.filter(stock > 0) if flag else qu.filter(stock <= 0)


FILTER_SPECS = {
    'search': {'op': _search},
    'category_id': {'coerce': int, 'op': lambda qu, v: qu.filter(Product.category_id == v)},
    'min_price': {'coerce': float, 'op': lambda qu, v: qu.filter(Product.price >= v)},
    'max_price': {'coerce': float, 'op': lambda qu, v: qu.filter(Product.price <= v)},
    'in_stock': {'coerce': parse_bool, 'op': _in_stock},
}

SORT_FIELDS = {
    'name': Product.name,
    'sku': Product.sku,
    'price': Product.price,
    'cost': Product.cost,
    'created_at': Product.created_at,
    'id': Product.id,
}


def _product_json(p: Product):
    return {
        'id': p.id,
        'name': p.name,
        'description': p.description,
        'sku': p.sku,
        'barcode': p.barcode,
        'price': p.price,
        'cost': p.cost,
        'category_id': p.category_id,
        'is_active': p.is_active,
    }


def _get_active(session, product_id: int) -> Product:
    p = session.execute(select(Product).where(Product.id == product_id, Product.is_active.is_(True))).scalar_one_or_none()
    if not p:
        abort(404)
    return p


def _check_references(session, record: dict, product_id=None):
    category_id = record['category_id']
    if isinstance(category_id, bool) or not isinstance(category_id, int) or session.get(Category, category_id) is None:
        abort(400, description='Category not found')
    clash = session.execute(select(Product).where(Product.sku == record['sku'])).scalar_one_or_none()
    if clash and clash.id != product_id:
        abort(400, description='sku exists')


def _merged(p: Product, updates: dict) -> dict:
    record = _product_json(p)
    record.update({k: v for k, v in updates.items() if k in EDITABLE_FIELDS})
    return record


def _apply(p: Product, record: dict):
    for key in EDITABLE_FIELDS:
        setattr(p, key, record.get(key))


def _snapshot(product_id):
    p = get_db().get(Product, product_id)
    return _product_json(p) if p else {}


@products_bp.get('')
@require_permissions(Permission.PRODUCTS_VIEW)
def list_products():
    q = get_db().query(Product).filter(Product.is_active.is_(True))
    q = apply_filters(q, FILTER_SPECS, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), SORT_FIELDS, Product.id, default='name')
    return paginated_response(q, _product_json)


@products_bp.get('/<int:product_id>')
@require_permissions(Permission.PRODUCTS_VIEW)
def get_product(product_id: int):
    session = get_db()
    p = _get_active(session, product_id)
    body = _product_json(p)
    body['stock_on_hand'] = session.execute(
        select(func.coalesce(func.sum(InventoryItem.quantity), 0)).where(InventoryItem.product_id == p.id)
    ).scalar_one()
    return body


@products_bp.post('')
@require_permissions(Permission.PRODUCTS_CREATE)
@audit_log('PRODUCT.CREATE', entity='Product', entity_id_key='id', meta_keys=['name', 'sku'])
def create_product():
    data = json_body()
    require_strings(data, STRING_FIELDS)
    raise_for_result(validate_product(data))
    session = get_db()
    record = {k: data.get(k) for k in EDITABLE_FIELDS}
    record['sku'] = record['sku'].strip()
    _check_references(session, record)
    p = Product(created_by=int(get_jwt_identity()))
    _apply(p, record)
    session.add(p)
    session.commit()
    return _product_json(p), 201


@products_bp.put('/<int:product_id>')
@require_permissions(Permission.PRODUCTS_UPDATE)
@audit_log(
    'PRODUCT.UPDATE',
    entity='Product',
    entity_id_key='id',
    diff_keys=['name', 'sku', 'price', 'cost', 'category_id'],
    pre_fetch=lambda a, kw: _snapshot(kw.get('product_id')),
)
def update_product(product_id: int):
    session = get_db()
    p = _get_active(session, product_id)
    updates = json_body()
    require_strings(updates, STRING_FIELDS)
    record = _merged(p, updates)
    raise_for_result(validate_product(record))
    _check_references(session, record, product_id=p.id)
    _apply(p, record)
    session.commit()
    return _product_json(p)


@products_bp.delete('/<int:product_id>')
@require_permissions(Permission.PRODUCTS_DELETE)
@audit_log('PRODUCT.DELETE', entity='Product', entity_id_arg='product_id')
def delete_product(product_id: int):
    session = get_db()
    p = _get_active(session, product_id)
    p.is_active = False
    session.commit()
    return {'id': p.id, 'is_active': False}


@products_bp.post('/bulk')
@require_permissions(Permission.PRODUCTS_UPDATE)
@audit_log('PRODUCT.BULK_UPDATE', entity='Product', meta_builder=lambda data, rv, a, kw: {'ids': [r['id'] for r in data.get('data', [])]})
def bulk_update_products():
    """Apply several partial updates atomically; nothing is written if any record fails."""
    payload = json_body()
    updates = payload.get('updates')
    if not isinstance(updates, list) or not updates:
        abort(400, description='updates required')
    session = get_db()
    staged = []
    errors = []
    field_errors = {}
    # sku -> id of the batch entry claiming it
    claimed = {}
    for entry in updates:
        if not isinstance(entry, dict) or not isinstance(entry.get('id'), int):
            abort(400, description='each update needs an integer id')
        changes = entry.get('updates') or {}
        if not isinstance(changes, dict):
            abort(400, description='updates must be objects')
        p = _get_active(session, entry['id'])
        if any(p is s for s, _ in staged):
            abort(400, description=f'Product {p.id}: listed more than once')
        require_strings(changes, STRING_FIELDS)
        record = _merged(p, changes)
        result = validate_product(record)
        if not result.is_valid:
            field_errors[str(p.id)] = result.errors
            errors.extend(f'Product {p.id}: {msg}' for msg in result.errors)
            continue
        _check_references(session, record, product_id=p.id)
        if record['sku'] in claimed:
            abort(400, description=f"Product {p.id}: sku {record['sku']} already used by product {claimed[record['sku']]}")
        claimed[record['sku']] = p.id
        staged.append((p, record))
    if errors:
        raise ValidationFailed(errors, field_errors)
    for p, record in staged:
        _apply(p, record)
    session.commit()
    return {'data': [_product_json(p) for p, _ in staged]}
