import pytest
from ims.constants.permissions import (
    ALL_PERMISSIONS,
    ROLE_PERMISSIONS,
    Permission,
    Role,
    has_permission,
    permission_codes_for,
    permissions_for,
    to_permission,
    to_role,
)


@pytest.mark.parametrize('role', list(Role))
def test_has_permission_matches_role_table(role):
    granted = set(permissions_for(role))
    for perm in ALL_PERMISSIONS:
        assert has_permission(role, perm) is (perm in granted)


def test_admin_holds_full_universe_in_order():
    assert permissions_for(Role.ADMIN) == list(ALL_PERMISSIONS)
    assert len(ALL_PERMISSIONS) == 22


@pytest.mark.parametrize('role', [Role.MANAGER, Role.EMPLOYEE, Role.VIEWER])
def test_other_roles_are_subsets_without_duplicates(role):
    perms = permissions_for(role)
    assert set(perms) < set(ALL_PERMISSIONS)
    assert len(perms) == len(set(perms))


def test_roles_nest_from_viewer_to_admin():
    viewer, employee, manager, admin = (set(permissions_for(r)) for r in (Role.VIEWER, Role.EMPLOYEE, Role.MANAGER, Role.ADMIN))
    assert viewer <= employee <= manager <= admin


def test_viewer_is_read_only():
    assert all(p.action == 'view' for p in permissions_for(Role.VIEWER))


def test_manager_and_employee_boundaries():
    assert has_permission('manager', 'inventory:transfer')
    assert not has_permission('manager', 'products:delete')
    assert not has_permission('manager', 'users:manage')
    assert has_permission('employee', 'inventory:update')
    assert not has_permission('employee', 'inventory:transfer')
    assert not has_permission('employee', 'reports:export')


def test_string_values_preserved_for_serialization():
    assert Permission.PRODUCTS_VIEW.value == 'products:view'
    assert Permission.SYSTEM_ADMIN.resource == 'system'
    assert Permission.SYSTEM_ADMIN.action == 'admin'
    assert permission_codes_for(Role.VIEWER) == [
        'products:view', 'inventory:view', 'sales:view', 'customers:view', 'reports:view'
    ]


def test_permissions_for_returns_a_copy():
    perms = permissions_for(Role.VIEWER)
    perms.append(Permission.SYSTEM_ADMIN)
    assert Permission.SYSTEM_ADMIN not in permissions_for(Role.VIEWER)


def test_role_table_is_read_only():
    with pytest.raises(TypeError):
        ROLE_PERMISSIONS[Role.VIEWER] = ALL_PERMISSIONS  # type: ignore[index]


def test_unknown_tokens_are_rejected():
    with pytest.raises(ValueError):
        to_role('superuser')
    with pytest.raises(ValueError):
        to_permission('products:destroy')
    with pytest.raises(ValueError):
        has_permission(Role.ADMIN, 'products.view')


def test_every_mutating_endpoint_is_gated(app_instance):
    open_endpoints = {'iam.signup', 'iam.login', 'iam.update_profile'}
    for rule in app_instance.url_map.iter_rules():
        if rule.endpoint in open_endpoints or not (rule.methods & {'POST', 'PUT', 'DELETE'}):
            continue
        view = app_instance.view_functions[rule.endpoint]
        perms = getattr(view, 'required_permissions', None)
        assert perms, f'{rule.rule} has no permission gate'
        assert all(isinstance(p, Permission) for p in perms)
