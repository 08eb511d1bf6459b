from ims.constants.permissions import Role
from tests.test_utils_seed import auth_headers, unique


def test_category_create_and_list(client):
    headers = auth_headers(client, Role.MANAGER)
    code = unique('ALP')
    resp = client.post('/catalog/categories', json={'name': 'Alpaca', 'code': code}, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    dup = client.post('/catalog/categories', json={'name': 'Alpaca again', 'code': code}, headers=headers)
    assert dup.status_code == 400
    assert dup.get_json()['error']['detail'] == 'code exists'
    listing = client.get('/catalog/categories?limit=100', headers=headers).get_json()
    assert code in [c['code'] for c in listing['data']]


def test_location_requires_settings_permission(client):
    payload = {'name': 'Annex', 'code': unique('ANX')}
    denied = client.post('/catalog/locations', json=payload, headers=auth_headers(client, Role.MANAGER))
    assert denied.status_code == 403
    ok = client.post('/catalog/locations', json=payload, headers=auth_headers(client, Role.ADMIN))
    assert ok.status_code == 201


def test_reference_validation(client):
    resp = client.post('/catalog/categories', json={'name': 'W', 'code': 'bad code!'}, headers=auth_headers(client, Role.ADMIN))
    assert resp.status_code == 400
    fields = resp.get_json()['error']['field_errors']
    assert fields == {
        'name': ['Name must be at least 2 characters long'],
        'code': ['Code format is invalid'],
    }
