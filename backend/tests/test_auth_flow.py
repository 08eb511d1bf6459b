from flask_jwt_extended import decode_token
from ims.constants.permissions import Role, permission_codes_for
from tests.test_utils_seed import auth_headers, ensure_user, login, unique


def test_signup_always_creates_viewer(client):
    email = f"{unique('signup').lower()}@example.com"
    resp = client.post('/iam/auth/signup', json={
        'email': email, 'password': 'Str0ngPass', 'full_name': 'Nora Serrano', 'role': 'admin'
    })
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['role'] == 'viewer'
    token = login(client, email, 'Str0ngPass')
    me = client.get('/iam/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    assert me.get_json()['permissions'] == permission_codes_for(Role.VIEWER)


def test_signup_reports_field_errors(client):
    resp = client.post('/iam/auth/signup', json={'email': 'nope', 'password': 'abc', 'full_name': ''})
    assert resp.status_code == 400
    err = resp.get_json()['error']
    assert err['field_errors']['email'] == ['Email format is invalid']
    assert err['field_errors']['full_name'] == ['Full name is required']
    assert 'Password must contain at least one number' in err['errors']


def test_signup_duplicate_email(client):
    email = f"{unique('dup').lower()}@example.com"
    ensure_user(email)
    resp = client.post('/iam/auth/signup', json={'email': email, 'password': 'Str0ngPass', 'full_name': 'Dup User'})
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'email exists'


def test_login_token_carries_role_claims(client, app_instance):
    email = f"{unique('mgr').lower()}@example.com"
    ensure_user(email, Role.MANAGER)
    token = login(client, email)
    with app_instance.app_context():
        claims = decode_token(token)
    assert claims['role'] == 'manager'
    assert claims['perms'] == permission_codes_for(Role.MANAGER)


def test_login_rejects_bad_password_and_disabled_accounts(client):
    from ims import get_db
    email = f"{unique('off').lower()}@example.com"
    user = ensure_user(email)
    bad = client.post('/iam/auth/login', json={'email': email, 'password': 'wrong'})
    assert bad.status_code == 401
    session = get_db()
    session.merge(user).is_active = False
    session.commit()
    disabled = client.post('/iam/auth/login', json={'email': email, 'password': 'Passw0rdX'})
    assert disabled.status_code == 403


def test_profile_update(client):
    headers = auth_headers(client, Role.EMPLOYEE)
    resp = client.put('/iam/auth/profile', json={'full_name': 'Renamed Person', 'phone': '+1 555 0100'}, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    assert resp.get_json()['full_name'] == 'Renamed Person'
    bad = client.put('/iam/auth/profile', json={'email': 'broken'}, headers=headers)
    assert bad.status_code == 400


def test_phone_format_is_checked(client):
    email = f"{unique('phone').lower()}@example.com"
    resp = client.post('/iam/auth/signup', json={
        'email': email, 'password': 'Str0ngPass', 'full_name': 'Ada Phone', 'phone': 'call me'
    })
    assert resp.status_code == 400
    assert resp.get_json()['error']['field_errors']['phone'] == ['Phone number format is invalid']

    headers = auth_headers(client, Role.EMPLOYEE)
    bad = client.put('/iam/auth/profile', json={'phone': 'call me'}, headers=headers)
    assert bad.status_code == 400
    assert bad.get_json()['error']['field_errors']['phone'] == ['Phone number format is invalid']
    too_long = client.put('/iam/auth/profile', json={'phone': '1' * 40}, headers=headers)
    assert too_long.status_code == 400
    ok = client.put('/iam/auth/profile', json={'phone': ' (555) 010-0199 '}, headers=headers)
    assert ok.status_code == 200, ok.get_json()
    assert ok.get_json()['phone'] == '(555) 010-0199'


def test_admin_creates_user_with_role(client):
    headers = auth_headers(client, Role.ADMIN)
    email = f"{unique('emp').lower()}@example.com"
    resp = client.post('/iam/users', json={
        'email': email, 'password': 'Str0ngPass', 'full_name': 'Eve Employee', 'role': 'employee'
    }, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    assert resp.get_json()['role'] == 'employee'
    bad_role = client.post('/iam/users', json={
        'email': f"x{email}", 'password': 'Str0ngPass', 'full_name': 'Bad Role', 'role': 'owner'
    }, headers=headers)
    assert bad_role.status_code == 400
    assert bad_role.get_json()['error']['detail'] == 'role invalid'


def test_roles_and_permissions_listing(client):
    headers = auth_headers(client, Role.ADMIN)
    roles = client.get('/iam/roles', headers=headers).get_json()['data']
    assert [r['role'] for r in roles] == ['admin', 'manager', 'employee', 'viewer']
    perms = client.get('/iam/permissions', headers=headers).get_json()['data']
    assert len(perms) == 22
    assert perms[0] == {'code': 'products:view', 'resource': 'products', 'action': 'view'}
    # managers cannot manage users
    denied = client.get('/iam/roles', headers=auth_headers(client, Role.MANAGER))
    assert denied.status_code == 403
