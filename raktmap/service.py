"""
Request handling shared by the Flask server and the Lambda handler.

resolve_request   - derive and persist the display status of a blood request
confirm_donation  - atomically claim one unit of a request and record the donor
"""
import logging
import math

from .errors import DonorIdExhaustedError, NotFoundError, RequestClosedError, ValidationError
from .geo import within_geofence
from .identifiers import unique_donor_id
from .models import (
    STATUS_ACTIVE, STATUS_EXPIRED, STATUS_FULFILLED,
    closed_view, format_timestamp, new_location_record, parse_timestamp, qr_payload, serialize_request, utcnow,
)

log = logging.getLogger(__name__)


def _is_full(doc):
    return (doc.get('confirmed_units') or 0) >= (doc.get('quantity') or 0)


def resolve_request(store, request_id, now=None):
    """
    Return a blood request for display, or the closed view once it stops
    accepting donors.

    An active request that is full becomes fulfilled; an active request past
    its deadline becomes expired. The closed view is returned whenever the
    request is not active, full or expired, whether or not this call wrote
    the transition.
    """
    doc = store.get_request(request_id)
    if not doc:
        raise NotFoundError()

    # Compare at the stored precision (whole seconds), as the claim does
    now = parse_timestamp(format_timestamp(now or utcnow()))
    required_by = parse_timestamp(doc.get('required_by'))
    is_expired = now > required_by if required_by else False
    is_full = _is_full(doc)

    # Update status if needed
    if doc.get('status', STATUS_ACTIVE) == STATUS_ACTIVE:
        new_status = None
        if is_full:
            new_status = STATUS_FULFILLED
        elif is_expired:
            new_status = STATUS_EXPIRED
        if new_status:
            store.set_request_status(request_id, new_status)
            doc['status'] = new_status
            log.info('Request %s marked %s', request_id, new_status)

    if doc.get('status', STATUS_ACTIVE) != STATUS_ACTIVE or is_full or is_expired:
        return closed_view()

    return serialize_request(doc)


def _missing(value, allow_zero):
    if allow_zero:
        return value is None or value == ''
    # any falsy value, 0 included, counts as missing
    return not value


def parse_coordinates(latitude, longitude, allow_zero=False):
    if _missing(latitude, allow_zero) or _missing(longitude, allow_zero):
        raise ValidationError('Coordinates required')
    try:
        lat, lng = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise ValidationError('Coordinates must be numeric')
    # float() accepts "nan" and "inf", which the store cannot serialize
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise ValidationError('Coordinates must be numeric')
    return lat, lng


def _optional_float(value):
    if value is None or value == '':
        return None
    try:
        accuracy = float(value)
    except (TypeError, ValueError):
        raise ValidationError('Accuracy must be numeric')
    if not math.isfinite(accuracy):
        raise ValidationError('Accuracy must be numeric')
    return accuracy


def confirm_donation(store, payload, config, now=None):
    """
    Confirm a donor against a blood request and store their location.

    payload carries latitude, longitude, accuracy, mobileNumber, token and
    requestId. Returns {message, donorId, qrData}.
    """
    if not isinstance(payload, dict):
        payload = {}
    latitude, longitude = parse_coordinates(
        payload.get('latitude'), payload.get('longitude'),
        allow_zero=config.get('ALLOW_ZERO_COORDINATES', False),
    )
    accuracy = _optional_float(payload.get('accuracy'))
    mobile_number = payload.get('mobileNumber')
    token = payload.get('token')
    request_id = payload.get('requestId')
    if not request_id:
        raise ValidationError('Request ID required')

    # Geofence is checked before the claim so a rejected donor never takes a unit
    radius = config.get('GEOFENCE_RADIUS_KM', 100)
    inside, distance = within_geofence(
        latitude, longitude,
        (config.get('HOSPITAL_LAT', 22.6023), config.get('HOSPITAL_LNG', 72.8205)),
        radius,
    )
    if not inside:
        if config.get('GEOFENCE_ENFORCE', False):
            log.info('Rejected donor for %s: %.1f km from hospital', request_id, distance)
            raise ValidationError(
                f'Location is {distance:.1f} km from the hospital, outside the {radius:g} km radius'
            )
        log.warning('Donor for %s is %.1f km from hospital (radius %g km)', request_id, distance, radius)

    now = now or utcnow()
    updated = store.claim_unit(request_id, now)
    if updated is None:
        log.info('Rejected confirmation for %s: already fulfilled or expired', request_id)
        raise RequestClosedError()

    # Update status to fulfilled if we just hit the quantity
    if _is_full(updated):
        store.set_request_status(request_id, STATUS_FULFILLED)
        log.info('Request %s fulfilled (%s units)', request_id, updated.get('confirmed_units'))

    prefix = config.get('DONOR_ID_PREFIX', 'DON')
    max_attempts = config.get('DONOR_ID_MAX_ATTEMPTS', 10)
    for _ in range(max_attempts):
        donor_id = unique_donor_id(store.donor_exists, prefix, max_attempts)
        location = new_location_record(
            donor_id, latitude, longitude, accuracy, mobile_number,
            request_id=request_id, token=token, now=now,
        )
        if store.insert_location(location):
            break
        log.warning('Donor ID %s taken between check and insert, retrying', donor_id)
    else:
        raise DonorIdExhaustedError()

    log.info('Donor %s confirmed for request %s', donor_id, request_id)
    return {
        'message': 'Saved',
        'donorId': donor_id,
        'qrData': qr_payload(location),
    }
