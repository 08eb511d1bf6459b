from flask import Blueprint, abort
from sqlalchemy import select
from ims import get_db
from ims.constants.permissions import Permission
from ims.decorators.auth import require_permissions
from ims.decorators.audit import audit_log
from ims.models.product import Category, Location
from ims.utils.errors import json_body, raise_for_form, require_strings
from ims.utils.listing import paginated_response
from ims.utils.validation import FieldRule, NAME_RULE, validate_field, validate_form

cat_bp = Blueprint('catalog', __name__)

CODE_RULE = FieldRule(required=True, max_length=32, pattern=r'^[A-Za-z0-9\-_]+$')


def _ref_validators():
    return {
        'name': lambda v: validate_field(v, NAME_RULE, 'Name'),
        'code': lambda v: validate_field(v, CODE_RULE, 'Code'),
    }


def _ref_json(obj):
    return {'id': obj.id, 'name': obj.name, 'code': obj.code}


def _create_ref(model):
    data = json_body()
    require_strings(data, ('name', 'code'))
    raise_for_form(validate_form(data, _ref_validators()))
    session = get_db()
    code = str(data['code']).strip()
    if session.execute(select(model).where(model.code == code)).scalar_one_or_none():
        abort(400, description='code exists')
    obj = model(name=str(data['name']).strip(), code=code)
    session.add(obj)
    session.commit()
    return _ref_json(obj), 201


@cat_bp.get('/categories')
@require_permissions(Permission.PRODUCTS_VIEW)
def list_categories():
    q = get_db().query(Category).order_by(Category.name.asc(), Category.id.asc())
    return paginated_response(q, _ref_json)


@cat_bp.post('/categories')
@require_permissions(Permission.PRODUCTS_CREATE)
@audit_log('CATEGORY.CREATE', entity='Category', entity_id_key='id', meta_keys=['code'])
def create_category():
    return _create_ref(Category)


@cat_bp.get('/locations')
@require_permissions(Permission.INVENTORY_VIEW)
def list_locations():
    q = get_db().query(Location).order_by(Location.name.asc(), Location.id.asc())
    return paginated_response(q, _ref_json)


@cat_bp.post('/locations')
@require_permissions(Permission.SETTINGS_MANAGE)
@audit_log('LOCATION.CREATE', entity='Location', entity_id_key='id', meta_keys=['code'])
def create_location():
    return _create_ref(Location)
