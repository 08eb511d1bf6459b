from flask import Blueprint, abort, current_app
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity
from sqlalchemy import select
from ims import get_db
from ims.config.settings import password_policy_from_config
from ims.constants.permissions import ALL_PERMISSIONS, ROLE_PERMISSIONS, Permission, Role, permission_codes_for
from ims.decorators.audit import audit_log
from ims.decorators.auth import require_permissions
from ims.models.authz import User
from ims.services.policy import build_claims
from ims.utils.errors import json_body, raise_for_form, require_strings
from ims.utils.validation import (
    FieldRule,
    NAME_RULE,
    ValidationResult,
    validate_email,
    validate_field,
    validate_form,
    validate_password,
    validate_phone,
)

iam_bp = Blueprint('iam', __name__)


def _user_json(u: User):
    return {
        'id': u.id,
        'full_name': u.full_name,
        'email': u.email,
        'phone': u.phone,
        'role': u.role,
        'is_active': u.is_active,
    }


PHONE_MAX_LENGTH = 32


def _validate_user_phone(value):
    return ValidationResult.merge([
        validate_phone(value),
        validate_field(value, FieldRule(max_length=PHONE_MAX_LENGTH), 'Phone number'),
    ])


def _account_validators():
    policy = password_policy_from_config(current_app.config)
    return {
        'email': validate_email,
        'password': lambda v: validate_password(v, policy),
        'full_name': lambda v: validate_field(v, NAME_RULE, 'Full name'),
        'phone': _validate_user_phone,
    }


def _create_user(data: dict, role: Role) -> User:
    require_strings(data, ('email', 'password', 'full_name', 'phone'))
    raise_for_form(validate_form(data, _account_validators()))
    session = get_db()
    email = data['email'].strip()
    if session.execute(select(User).where(User.email == email)).scalar_one_or_none():
        abort(400, description='email exists')
    user = User(full_name=data['full_name'].strip(), email=email, role=role.value, phone=(data.get('phone') or '').strip() or None)
    user.set_password(data['password'])
    session.add(user)
    session.commit()
    return user


@iam_bp.post('/auth/signup')
def signup():
    # Self-service accounts always start with the least privileged role.
    user = _create_user(json_body(), Role.VIEWER)
    return _user_json(user), 201


@iam_bp.post('/auth/login')
def login():
    data = json_body()
    require_strings(data, ('email', 'password'))
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.verify_password(password):
        abort(401, description='invalid credentials')
    if not user.is_active:
        abort(403, description='account disabled')
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims=build_claims(user.role_enum))
    return {'access_token': token, 'user': _user_json(user)}


@iam_bp.get('/auth/me')
@jwt_required()
def me():
    user_id = int(get_jwt_identity())
    session = get_db()
    user = session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user:
        abort(404)
    body = _user_json(user)
    body['permissions'] = permission_codes_for(user.role_enum)
    return body


@iam_bp.put('/auth/profile')
@jwt_required()
def update_profile():
    user_id = int(get_jwt_identity())
    session = get_db()
    user = session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user:
        abort(404)
    data = json_body()
    require_strings(data, ('email', 'full_name', 'phone'))
    validators = {}
    if 'full_name' in data:
        validators['full_name'] = lambda v: validate_field(v, NAME_RULE, 'Full name')
    if 'email' in data:
        validators['email'] = validate_email
    if 'phone' in data:
        validators['phone'] = _validate_user_phone
    raise_for_form(validate_form(data, validators))
    if 'email' in data:
        email = data['email'].strip()
        clash = session.execute(select(User).where(User.email == email, User.id != user.id)).scalar_one_or_none()
        if clash:
            abort(400, description='email exists')
        user.email = email
    if 'full_name' in data:
        user.full_name = data['full_name'].strip()
    if 'phone' in data:
        user.phone = (data['phone'] or '').strip() or None
    session.commit()
    return _user_json(user)


@iam_bp.get('/permissions')
@require_permissions(Permission.USERS_MANAGE)
def list_permissions():
    return {
        'data': [
            {'code': p.value, 'resource': p.resource, 'action': p.action}
            for p in ALL_PERMISSIONS
        ]
    }


@iam_bp.get('/roles')
@require_permissions(Permission.USERS_MANAGE)
def list_roles():
    return {
        'data': [
            {'role': role.value, 'permissions': [p.value for p in perms]}
            for role, perms in ROLE_PERMISSIONS.items()
        ]
    }


@iam_bp.post('/users')
@require_permissions(Permission.USERS_MANAGE)
@audit_log('USER.CREATE', entity='User', entity_id_key='id', meta_keys=['email', 'role'])
def create_user():
    data = json_body()
    try:
        role = Role(data.get('role', Role.VIEWER.value))
    except ValueError:
        abort(400, description='role invalid')
    user = _create_user(data, role)
    return _user_json(user), 201
