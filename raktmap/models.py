"""
Document shapes for blood requests and donor locations.

Both record types live in the document store as flat dicts with snake_case
attribute names; the HTTP surface speaks camelCase.
"""
from datetime import datetime, timedelta, timezone
import uuid

# Fixed-width UTC timestamps: lexicographic order equals chronological
# order, which the conditional claim in the store relies on.
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'

STATUS_ACTIVE = 'active'
STATUS_FULFILLED = 'fulfilled'
STATUS_EXPIRED = 'expired'
REQUEST_STATUSES = (STATUS_ACTIVE, STATUS_FULFILLED, STATUS_EXPIRED)

CLOSED_MESSAGE = 'Blood request fulfilled. Thank you.'


def utcnow():
    return datetime.now(timezone.utc)


def format_timestamp(dt):
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value):
    """Parse a stored timestamp back to an aware UTC datetime (None passes through)"""
    if not value:
        return None
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def to_iso(value):
    dt = parse_timestamp(value)
    return dt.strftime('%Y-%m-%dT%H:%M:%SZ') if dt else None


def generate_request_id():
    """Generate unique blood request ID"""
    return f"BR-{uuid.uuid4().hex[:8].upper()}"


def new_blood_request(blood_group, quantity, required_by, urgency='normal',
                      hospital_id=None, request_id=None, now=None):
    """Build a fresh, active blood request document"""
    now = now or utcnow()
    if isinstance(required_by, datetime):
        required_by = format_timestamp(required_by)
    return {
        'request_id': request_id or generate_request_id(),
        'hospital_id': hospital_id,
        'blood_group': blood_group,
        'quantity': int(quantity),
        'confirmed_units': 0,
        'urgency': urgency,
        'required_by': required_by,
        'status': STATUS_ACTIVE,
        'created_at': format_timestamp(now),
    }


def serialize_request(doc):
    """Render a stored blood request in the wire shape"""
    return {
        '_id': doc.get('request_id'),
        'hospitalId': doc.get('hospital_id'),
        'bloodGroup': doc.get('blood_group'),
        'quantity': doc.get('quantity'),
        'confirmedUnits': doc.get('confirmed_units', 0),
        'urgency': doc.get('urgency'),
        'requiredBy': to_iso(doc.get('required_by')),
        'status': doc.get('status'),
        'createdAt': to_iso(doc.get('created_at')),
    }


def closed_view():
    return {'status': 'closed', 'message': CLOSED_MESSAGE}


def new_location_record(donor_id, latitude, longitude, accuracy, mobile_number,
                        request_id=None, token=None, now=None):
    """Donor location snapshot stored once per successful confirmation"""
    now = now or utcnow()
    return {
        'donor_id': donor_id,
        'address': f"Mobile: {mobile_number} - Current Location: {latitude}, {longitude}",
        'latitude': latitude,
        'longitude': longitude,
        'accuracy': accuracy,
        'timestamp': format_timestamp(now),
        'mobile_number': mobile_number,
        'request_id': request_id or None,
        'token': token or None,
    }


def qr_payload(location):
    """Fields a client encodes into the donor's scannable code"""
    return {
        'donorId': location['donor_id'],
        'mobileNumber': location.get('mobile_number'),
        'latitude': location.get('latitude'),
        'longitude': location.get('longitude'),
        'timestamp': to_iso(location.get('timestamp')),
        'requestId': location.get('request_id'),
        'token': location.get('token'),
    }


def default_deadline(hours=24, now=None):
    return format_timestamp((now or utcnow()) + timedelta(hours=hours))
