from flask import Blueprint, request, abort
from sqlalchemy import select, or_
from ims import get_db
from ims.constants.permissions import Permission
from ims.decorators.auth import require_permissions
from ims.decorators.audit import audit_log
from ims.models.customer import Customer
from ims.utils.errors import json_body, raise_for_result, require_strings
from ims.utils.filters import apply_filters
from ims.utils.listing import paginated_response
from ims.utils.sorting import apply_multi_sort
from ims.utils.validation import validate_customer

customers_bp = Blueprint('customers', __name__)

EDITABLE_FIELDS = ('name', 'email', 'phone', 'address', 'company')


def _search(qu, term):
    like = f'%{term}%'
    return qu.filter(or_(Customer.name.ilike(like), Customer.email.ilike(like), Customer.company.ilike(like)))


FILTER_SPECS = {
    'search': {'op': _search},
    'company': {'op': lambda qu, v: qu.filter(Customer.company.ilike(f'%{v}%'))},
}

SORT_FIELDS = {'name': Customer.name, 'company': Customer.company, 'id': Customer.id}


def _customer_json(c: Customer):
    return {
        'id': c.id,
        'name': c.name,
        'email': c.email,
        'phone': c.phone,
        'address': c.address,
        'company': c.company,
    }


def _clean(record: dict) -> dict:
    """Strip strings and store blanks as NULL."""
    out = {}
    for key in EDITABLE_FIELDS:
        val = record.get(key)
        if isinstance(val, str):
            val = val.strip() or None
        out[key] = val
    return out


def _get_active(session, customer_id: int) -> Customer:
    c = session.execute(select(Customer).where(Customer.id == customer_id, Customer.is_active.is_(True))).scalar_one_or_none()
    if not c:
        abort(404)
    return c


def _snapshot(customer_id):
    c = get_db().get(Customer, customer_id)
    return _customer_json(c) if c else {}


@customers_bp.get('')
@require_permissions(Permission.CUSTOMERS_VIEW)
def list_customers():
    q = get_db().query(Customer).filter(Customer.is_active.is_(True))
    q = apply_filters(q, FILTER_SPECS, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), SORT_FIELDS, Customer.id, default='name')
    return paginated_response(q, _customer_json)


@customers_bp.get('/<int:customer_id>')
@require_permissions(Permission.CUSTOMERS_VIEW)
def get_customer(customer_id: int):
    return _customer_json(_get_active(get_db(), customer_id))


@customers_bp.post('')
@require_permissions(Permission.CUSTOMERS_CREATE)
@audit_log('CUSTOMER.CREATE', entity='Customer', entity_id_key='id', meta_keys=['name'])
def create_customer():
    data = json_body()
    require_strings(data, EDITABLE_FIELDS)
    raise_for_result(validate_customer(data))
    session = get_db()
    c = Customer(**_clean(data))
    session.add(c)
    session.commit()
    return _customer_json(c), 201


@customers_bp.put('/<int:customer_id>')
@require_permissions(Permission.CUSTOMERS_UPDATE)
@audit_log(
    'CUSTOMER.UPDATE',
    entity='Customer',
    entity_id_key='id',
    diff_keys=list(EDITABLE_FIELDS),
    pre_fetch=lambda a, kw: _snapshot(kw.get('customer_id')),
)
def update_customer(customer_id: int):
    session = get_db()
    c = _get_active(session, customer_id)
    updates = json_body()
    require_strings(updates, EDITABLE_FIELDS)
    record = _customer_json(c)
    record.update({k: v for k, v in updates.items() if k in EDITABLE_FIELDS})
    raise_for_result(validate_customer(record))
    for key, val in _clean(record).items():
        setattr(c, key, val)
    session.commit()
    return _customer_json(c)


@customers_bp.delete('/<int:customer_id>')
@require_permissions(Permission.CUSTOMERS_DELETE)
@audit_log('CUSTOMER.DELETE', entity='Customer', entity_id_arg='customer_id')
def delete_customer(customer_id: int):
    session = get_db()
    c = _get_active(session, customer_id)
    c.is_active = False
    session.commit()
    return {'id': c.id, 'is_active': False}
