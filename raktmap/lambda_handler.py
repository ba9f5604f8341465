"""
Stateless entry point for AWS Lambda (API Gateway proxy events).

Exposes the same two operations as the Flask server:

    GET  .../bloodrequest/<id>
    POST .../save-location

The store handle is created on the first invocation and reused by every
warm invocation of the same container.
"""
import base64
import json
import logging

from .config import load_config
from .errors import error_body, status_for
from .service import confirm_donation, resolve_request
from .store import lazy_store

log = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Credentials': 'true',
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET,OPTIONS,PATCH,DELETE,POST,PUT',
    'Access-Control-Allow-Headers': (
        'X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, '
        'Content-MD5, Content-Type, Date, X-Api-Version'
    ),
}

config = load_config()
logging.getLogger().setLevel(config['LOG_LEVEL'])
store = lazy_store(config)


def _response(status_code, body=None):
    headers = dict(CORS_HEADERS)
    if body is None:
        return {'statusCode': status_code, 'headers': headers, 'body': ''}
    headers['Content-Type'] = 'application/json'
    return {'statusCode': status_code, 'headers': headers, 'body': json.dumps(body)}


def _method(event):
    method = event.get('httpMethod')
    if not method:
        method = event.get('requestContext', {}).get('http', {}).get('method', '')
    return method.upper()


def _path(event):
    return event.get('path') or event.get('rawPath') or ''


def _json_body(event):
    body = event.get('body')
    if not body:
        return {}
    if event.get('isBase64Encoded'):
        body = base64.b64decode(body).decode('utf-8')
    try:
        payload = json.loads(body)
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def dispatch(event, store, config):
    method = _method(event)
    path = _path(event)

    if method == 'OPTIONS':
        return _response(200)

    if method == 'GET' and 'bloodrequest' in path:
        request_id = path.rstrip('/').split('/')[-1]
        return _response(200, resolve_request(store, request_id))

    if method == 'POST' and 'save-location' in path:
        return _response(200, confirm_donation(store, _json_body(event), config))

    return _response(200, {'message': 'API is running'})


def handler(event, context=None, store=store, config=config):
    try:
        return dispatch(event, store, config)
    except Exception as e:
        status = status_for(e)
        if status >= 500:
            log.exception('Unhandled error')
        return _response(status, error_body(e))
