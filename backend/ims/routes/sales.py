from flask import Blueprint, request, abort
from flask_jwt_extended import get_jwt_identity
from ims import get_db
from ims.constants.permissions import Permission
from ims.decorators.auth import require_permissions
from ims.decorators.audit import audit_log
from ims.models.customer import Customer
from ims.models.product import Product
from ims.models.sale import Sale, SaleItem
from ims.utils.errors import json_body, raise_for_result, require_strings, validate_status
from ims.utils.filters import apply_filters
from ims.utils.fsm import TransitionValidator
from ims.utils.listing import paginated_response
from ims.utils.sorting import apply_multi_sort
from ims.utils.validation import validate_sale

sales_bp = Blueprint('sales', __name__)

# Sale lifecycle graph:
# pending -> confirmed -> processing -> shipped -> delivered
# any state before delivered -> cancelled
SALE_FSM = TransitionValidator({
    Sale.STATUS_PENDING: {Sale.STATUS_CONFIRMED, Sale.STATUS_CANCELLED},
    Sale.STATUS_CONFIRMED: {Sale.STATUS_PROCESSING, Sale.STATUS_CANCELLED},
    Sale.STATUS_PROCESSING: {Sale.STATUS_SHIPPED, Sale.STATUS_CANCELLED},
    Sale.STATUS_SHIPPED: {Sale.STATUS_DELIVERED, Sale.STATUS_CANCELLED},
    Sale.STATUS_DELIVERED: set(),
    Sale.STATUS_CANCELLED: set(),
})

HEADER_FIELDS = ('customer_id', 'discount', 'tax_rate', 'notes')

FILTER_SPECS = {
    'status': {'op': lambda qu, v: qu.filter(Sale.status == v), 'validate': lambda v: v in Sale.ALL_STATUSES},
    'customer_id': {'coerce': int, 'op': lambda qu, v: qu.filter(Sale.customer_id == v)},
}

SORT_FIELDS = {
    'created_at': Sale.created_at,
    'total': Sale.total,
    'status': Sale.status,
    'id': Sale.id,
}


def compute_totals(items, discount, tax_rate):
    """Return (subtotal, total); discount and tax rate are percentages."""
    subtotal = sum(i['quantity'] * i['price'] for i in items)
    discounted = subtotal * (1 - (discount or 0) / 100)
    total = discounted * (1 + (tax_rate or 0) / 100)
    return round(subtotal, 2), round(total, 2)


def _sale_json(s: Sale):
    return {
        'id': s.id,
        'customer_id': s.customer_id,
        'status': s.status,
        'discount': s.discount,
        'tax_rate': s.tax_rate,
        'subtotal': s.subtotal,
        'total': s.total,
        'notes': s.notes,
        'items': [
            {'id': i.id, 'product_id': i.product_id, 'quantity': i.quantity, 'price': i.price, 'line_total': i.line_total}
            for i in s.items
        ],
    }


def _get_sale(session, sale_id: int) -> Sale:
    s = session.get(Sale, sale_id)
    if not s:
        abort(404)
    return s


def _check_references(session, record: dict):
    customer_id = record.get('customer_id')
    if customer_id is not None:
        customer = session.get(Customer, customer_id) if isinstance(customer_id, int) else None
        if not customer or not customer.is_active:
            abort(400, description='Customer not found')
    for index, item in enumerate(record['items'], start=1):
        product_id = item['product_id']
        product = session.get(Product, product_id) if isinstance(product_id, int) else None
        if not product or not product.is_active:
            abort(400, description=f'Item {index}: Product not found')


def _snapshot(sale_id):
    s = get_db().get(Sale, sale_id)
    return _sale_json(s) if s else {}


@sales_bp.get('')
@require_permissions(Permission.SALES_VIEW)
def list_sales():
    q = get_db().query(Sale)
    q = apply_filters(q, FILTER_SPECS, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), SORT_FIELDS, Sale.id, default='-created_at')
    return paginated_response(q, _sale_json)


@sales_bp.get('/<int:sale_id>')
@require_permissions(Permission.SALES_VIEW)
def get_sale(sale_id: int):
    return _sale_json(_get_sale(get_db(), sale_id))


@sales_bp.post('')
@require_permissions(Permission.SALES_CREATE)
@audit_log('SALE.CREATE', entity='Sale', entity_id_key='id', meta_keys=['customer_id', 'total'])
def create_sale():
    data = json_body()
    require_strings(data, ('notes',))
    raise_for_result(validate_sale(data))
    session = get_db()
    _check_references(session, data)
    items = data['items']
    subtotal, total = compute_totals(items, data.get('discount'), data.get('tax_rate'))
    sale = Sale(
        customer_id=data.get('customer_id'),
        status=Sale.STATUS_PENDING,
        discount=data.get('discount') or 0,
        tax_rate=data.get('tax_rate') or 0,
        notes=data.get('notes') or None,
        subtotal=subtotal,
        total=total,
        created_by=int(get_jwt_identity()),
    )
    sale.items = [SaleItem(product_id=i['product_id'], quantity=i['quantity'], price=i['price']) for i in items]
    session.add(sale)
    session.commit()
    return _sale_json(sale), 201


@sales_bp.put('/<int:sale_id>')
@require_permissions(Permission.SALES_UPDATE)
@audit_log(
    'SALE.UPDATE',
    entity='Sale',
    entity_id_key='id',
    diff_keys=['customer_id', 'discount', 'tax_rate', 'notes', 'total'],
    pre_fetch=lambda a, kw: _snapshot(kw.get('sale_id')),
)
def update_sale(sale_id: int):
    """Edit header fields of a pending sale; totals are recomputed."""
    session = get_db()
    sale = _get_sale(session, sale_id)
    if sale.status != Sale.STATUS_PENDING:
        abort(400, description='Only pending sales can be edited')
    updates = json_body()
    require_strings(updates, ('notes',))
    record = _sale_json(sale)
    record.update({k: v for k, v in updates.items() if k in HEADER_FIELDS})
    raise_for_result(validate_sale(record))
    _check_references(session, record)
    sale.customer_id = record['customer_id']
    sale.discount = record['discount'] or 0
    sale.tax_rate = record['tax_rate'] or 0
    sale.notes = record['notes'] or None
    sale.subtotal, sale.total = compute_totals(record['items'], sale.discount, sale.tax_rate)
    session.commit()
    return _sale_json(sale)


@sales_bp.post('/<int:sale_id>/status')
@require_permissions(Permission.SALES_UPDATE)
@audit_log('SALE.STATUS', entity='Sale', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _snapshot(kw.get('sale_id')), meta_keys=['status'])
def change_sale_status(sale_id: int):
    session = get_db()
    sale = _get_sale(session, sale_id)
    target = json_body().get('status')
    validate_status(target, Sale.ALL_STATUSES, 'status')
    SALE_FSM.assert_can_transition(sale.status, target)
    sale.status = target
    session.commit()
    return _sale_json(sale)


@sales_bp.delete('/<int:sale_id>')
@require_permissions(Permission.SALES_DELETE)
@audit_log('SALE.DELETE', entity='Sale', entity_id_arg='sale_id')
def delete_sale(sale_id: int):
    session = get_db()
    sale = _get_sale(session, sale_id)
    if sale.status not in (Sale.STATUS_PENDING, Sale.STATUS_CANCELLED):
        abort(400, description='Only pending or cancelled sales can be deleted')
    session.delete(sale)
    session.commit()
    return {'id': sale_id, 'deleted': True}
