from datetime import timedelta

import pytest

from raktmap import create_app
from raktmap.config import load_config
from raktmap.models import new_blood_request, utcnow
from raktmap.store import MemoryStore


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def config():
    return load_config({'RAKTMAP_STORE': 'memory', 'GEOFENCE_ENFORCE': False,
                        'ALLOW_ZERO_COORDINATES': False})


@pytest.fixture
def make_request(store):
    """Insert a blood request; `hours` is the time left until its deadline"""
    def _make(request_id='R1', quantity=1, confirmed_units=0, status='active', hours=24, **extra):
        doc = new_blood_request('O+', quantity, utcnow() + timedelta(hours=hours),
                                urgency='high', request_id=request_id)
        doc.update(confirmed_units=confirmed_units, status=status, **extra)
        store.put_request(doc)
        return doc
    return _make


@pytest.fixture
def public_dir(tmp_path):
    return tmp_path / 'public'


@pytest.fixture
def app(store, public_dir):
    return create_app({
        'TESTING': True,
        'RAKTMAP_STORE': 'memory',
        'GEOFENCE_ENFORCE': False,
        'ALLOW_ZERO_COORDINATES': False,
        'PUBLIC_DIR': str(public_dir),
    }, store=store)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def donor_payload():
    return {
        'requestId': 'R1',
        'latitude': 22.6,
        'longitude': 72.8,
        'accuracy': 12.5,
        'mobileNumber': '9999999999',
        'token': 'sms-token',
    }
