import re

import pytest

from raktmap.errors import StoreError
from raktmap.models import CLOSED_MESSAGE
from raktmap.routes import NOT_BUILT_MESSAGE
from raktmap.store import MemoryStore


# ============== GET /api/bloodrequest/<id> ==============

def test_get_open_request(client, make_request):
    make_request(quantity=3, confirmed_units=1)

    resp = client.get('/api/bloodrequest/R1')

    assert resp.status_code == 200
    body = resp.get_json()
    assert body['_id'] == 'R1'
    assert body['confirmedUnits'] == 1


def test_get_unknown_request(client):
    resp = client.get('/api/bloodrequest/nope')

    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Request not found'}


def test_get_full_request_is_closed(client, store, make_request):
    make_request(quantity=2, confirmed_units=2)

    resp = client.get('/api/bloodrequest/R1')

    assert resp.status_code == 200
    assert resp.get_json() == {'status': 'closed', 'message': CLOSED_MESSAGE}
    assert store.get_request('R1')['status'] == 'fulfilled'


# ============== POST confirmation ==============

@pytest.mark.parametrize('path', ['/api/save-location', '/api/bloodrequest/confirm'])
def test_confirm_end_to_end(client, store, make_request, path):
    make_request(quantity=1)

    resp = client.post(path, json={
        'requestId': 'R1', 'latitude': 22.6, 'longitude': 72.8, 'mobileNumber': '9999999999',
    })

    assert resp.status_code == 200
    body = resp.get_json()
    assert body['message'] == 'Saved'
    assert re.match(r'^DON[A-Z0-9]{8}$', body['donorId'])
    assert body['qrData']['donorId'] == body['donorId']
    assert body['qrData']['requestId'] == 'R1'
    req = store.get_request('R1')
    assert req['confirmed_units'] == 1
    assert req['status'] == 'fulfilled'


def test_second_confirmation_is_rejected(client, make_request, donor_payload):
    make_request(quantity=1)

    assert client.post('/api/save-location', json=donor_payload).status_code == 200
    resp = client.post('/api/save-location', json=donor_payload)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Blood request already fulfilled or expired.'}


def test_missing_coordinates(client, make_request):
    make_request()

    resp = client.post('/api/save-location', json={'requestId': 'R1', 'mobileNumber': '1'})

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Coordinates required'}


@pytest.mark.parametrize('body', [[1, 2], 'R1', 7])
def test_non_object_json_body(client, make_request, body):
    make_request()

    resp = client.post('/api/save-location', json=body)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Coordinates required'}


def test_nan_coordinates_do_not_consume_a_unit(client, store, make_request, donor_payload):
    make_request(quantity=1)
    donor_payload['latitude'] = 'nan'

    resp = client.post('/api/save-location', json=donor_payload)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Coordinates must be numeric'}
    assert store.get_request('R1')['confirmed_units'] == 0


def test_non_json_body(client):
    resp = client.post('/api/save-location', data='latitude=1', content_type='text/plain')

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Coordinates required'}


class BrokenStore(MemoryStore):
    def get_request(self, request_id):
        raise StoreError('connection reset')

    def claim_unit(self, request_id, now):
        raise RuntimeError('socket closed')


@pytest.fixture
def broken_client(public_dir):
    from raktmap import create_app
    app = create_app({'TESTING': True, 'PUBLIC_DIR': str(public_dir)}, store=BrokenStore())
    return app.test_client()


def test_store_error_is_500(broken_client):
    resp = broken_client.get('/api/bloodrequest/R1')

    assert resp.status_code == 500
    assert resp.get_json() == {'error': 'connection reset'}


def test_unexpected_error_is_500(broken_client, donor_payload):
    resp = broken_client.post('/api/save-location', json=donor_payload)

    assert resp.status_code == 500
    assert resp.get_json() == {'error': 'socket closed'}


# ============== CORS ==============

@pytest.mark.parametrize('origin', [
    'http://localhost:3000',
    'https://raktmap.vercel.app',
    'https://abc-5000.inc1.devtunnels.ms',
    'https://raktmap.onrender.com',
])
def test_cors_allowed_origins(client, make_request, origin):
    make_request()

    resp = client.get('/api/bloodrequest/R1', headers={'Origin': origin})

    assert resp.headers.get('Access-Control-Allow-Origin') == origin
    assert resp.headers.get('Access-Control-Allow-Credentials') == 'true'


def test_cors_unknown_origin(client, make_request):
    make_request()

    resp = client.get('/api/bloodrequest/R1', headers={'Origin': 'https://evil.example.com'})

    assert 'Access-Control-Allow-Origin' not in resp.headers


# ============== FRONTEND ==============

def test_health(client):
    assert client.get('/health').get_json() == {'status': 'healthy'}


def test_root_without_frontend(client):
    resp = client.get('/')

    assert resp.status_code == 200
    assert resp.get_data(as_text=True) == NOT_BUILT_MESSAGE


def test_unknown_path_without_frontend(client):
    assert client.get('/donor/confirm').status_code == 404


@pytest.mark.parametrize('method', ['post', 'put', 'delete'])
def test_unknown_path_other_methods_are_404(client, method):
    resp = getattr(client, method)('/donor/confirm')

    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Not Found'}


@pytest.fixture
def built_frontend(public_dir):
    public_dir.mkdir()
    (public_dir / 'index.html').write_text('<html>raktmap</html>')
    (public_dir / 'app.js').write_text('console.log(1)')
    return public_dir


def test_root_serves_index(client, built_frontend):
    resp = client.get('/')

    assert resp.status_code == 200
    assert 'raktmap' in resp.get_data(as_text=True)


def test_static_file(client, built_frontend):
    resp = client.get('/app.js')

    assert resp.status_code == 200
    assert 'console.log' in resp.get_data(as_text=True)


def test_client_side_route_serves_index(client, built_frontend):
    resp = client.get('/confirm/R1')

    assert resp.status_code == 200
    assert 'raktmap' in resp.get_data(as_text=True)


def test_unknown_api_path_is_json_404(client, built_frontend):
    resp = client.get('/api/unknown')

    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Not Found'}
