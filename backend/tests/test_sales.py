import pytest
from ims.constants.permissions import Role
from ims.routes.sales import SALE_FSM, compute_totals
from tests.test_utils_seed import auth_headers, ensure_customer, ensure_product


def _sale(product_id, **overrides):
    body = {'items': [{'product_id': product_id, 'quantity': 2, 'price': 50}], 'discount': 10, 'tax_rate': 5}
    body.update(overrides)
    return body


def test_compute_totals():
    items = [{'quantity': 2, 'price': 50}, {'quantity': 1, 'price': 25}]
    assert compute_totals(items, 20, 5) == (125, 105)
    assert compute_totals(items, None, None) == (125, 125)


def test_sale_fsm_graph():
    assert SALE_FSM.can_transition('pending', 'confirmed')
    assert SALE_FSM.can_transition('shipped', 'cancelled')
    assert not SALE_FSM.can_transition('pending', 'shipped')
    assert SALE_FSM.is_terminal('delivered') and SALE_FSM.is_terminal('cancelled')


def test_sale_order_flow(client):
    headers = auth_headers(client, Role.MANAGER)
    p = ensure_product()
    cust = ensure_customer()
    created = client.post('/sales', json=_sale(p.id, customer_id=cust.id, notes='rush order'), headers=headers)
    assert created.status_code == 201, created.get_json()
    body = created.get_json()
    sid = body['id']
    assert body['status'] == 'pending'
    assert body['subtotal'] == 100
    assert body['total'] == 94.5
    assert body['items'][0]['line_total'] == 100

    upd = client.put(f'/sales/{sid}', json={'discount': 0}, headers=headers)
    assert upd.status_code == 200
    assert upd.get_json()['total'] == 105

    for status in ('confirmed', 'processing', 'shipped', 'delivered'):
        resp = client.post(f'/sales/{sid}/status', json={'status': status}, headers=headers)
        assert resp.status_code == 200, resp.get_json()
        assert resp.get_json()['status'] == status

    frozen = client.put(f'/sales/{sid}', json={'notes': 'late edit'}, headers=headers)
    assert frozen.status_code == 400
    assert client.post(f'/sales/{sid}/status', json={'status': 'cancelled'}, headers=headers).status_code == 400

    listing = client.get(f'/sales?customer_id={cust.id}', headers=headers).get_json()
    assert [s['id'] for s in listing['data']] == [sid]


def test_sale_validation_errors(client):
    headers = auth_headers(client, Role.EMPLOYEE)
    empty = client.post('/sales', json={'items': []}, headers=headers)
    assert empty.status_code == 400
    assert empty.get_json()['error']['errors'] == ['At least one item is required']

    bad_items = client.post('/sales', json={'items': [{'product_id': '', 'quantity': 0, 'price': -1}]}, headers=headers)
    errors = bad_items.get_json()['error']['errors']
    assert len(errors) == 3 and all(e.startswith('Item 1:') for e in errors)

    unknown = client.post('/sales', json=_sale(999999), headers=headers)
    assert unknown.status_code == 400
    assert unknown.get_json()['error']['detail'] == 'Item 1: Product not found'


@pytest.mark.parametrize('status', ['bogus', None])
def test_invalid_status_values(client, status):
    headers = auth_headers(client, Role.MANAGER)
    sid = client.post('/sales', json=_sale(ensure_product().id), headers=headers).get_json()['id']
    resp = client.post(f'/sales/{sid}/status', json={'status': status}, headers=headers)
    assert resp.status_code == 400


def test_cancel_and_delete(client):
    manager = auth_headers(client, Role.MANAGER)
    admin = auth_headers(client, Role.ADMIN)
    sid = client.post('/sales', json=_sale(ensure_product().id), headers=manager).get_json()['id']
    assert client.post(f'/sales/{sid}/status', json={'status': 'confirmed'}, headers=manager).status_code == 200
    # manager lacks sales:delete
    assert client.delete(f'/sales/{sid}', headers=manager).status_code == 403
    assert client.delete(f'/sales/{sid}', headers=admin).status_code == 400
    assert client.post(f'/sales/{sid}/status', json={'status': 'cancelled'}, headers=manager).status_code == 200
    resp = client.delete(f'/sales/{sid}', headers=admin)
    assert resp.status_code == 200
    assert resp.get_json() == {'id': sid, 'deleted': True}
    assert client.get(f'/sales/{sid}', headers=admin).status_code == 404


def test_employee_cannot_change_status(client):
    headers = auth_headers(client, Role.EMPLOYEE)
    sid = client.post('/sales', json=_sale(ensure_product().id), headers=headers).get_json()['id']
    assert client.post(f'/sales/{sid}/status', json={'status': 'confirmed'}, headers=headers).status_code == 403
