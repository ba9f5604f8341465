"""HTTP routes for the long-running server"""
import os

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from .service import confirm_donation, resolve_request
from .store import STORE_EXTENSION

api_bp = Blueprint('api', __name__)
frontend_bp = Blueprint('frontend', __name__)

NOT_BUILT_MESSAGE = 'API is running. Frontend not built. Run npm start in client folder for dev.'


def _store():
    return current_app.extensions[STORE_EXTENSION]


# ============== API ==============

@api_bp.route('/bloodrequest/<request_id>', methods=['GET'])
def get_blood_request(request_id):
    """Blood request details, or the closed view once it stops accepting donors"""
    return jsonify(resolve_request(_store(), request_id))


@api_bp.route('/bloodrequest/confirm', methods=['POST'])
@api_bp.route('/save-location', methods=['POST'])
def save_location():
    """Atomic confirmation plus donor location record"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    return jsonify(confirm_donation(_store(), payload, current_app.config))


# ============== FRONTEND ==============

def serve_index():
    """index.html from the built frontend, or None when there is none"""
    public_dir = current_app.config.get('PUBLIC_DIR')
    if request.path.startswith('/api/') or not public_dir:
        return None
    if os.path.exists(os.path.join(public_dir, 'index.html')):
        return send_from_directory(public_dir, 'index.html')
    return None


@frontend_bp.route('/health')
def health_check():
    return jsonify({'status': 'healthy'})


@frontend_bp.route('/')
def home():
    response = serve_index()
    if response is None:
        return NOT_BUILT_MESSAGE
    return response


@frontend_bp.route('/<path:filename>', methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'])
def static_files(filename):
    if request.method != 'GET':
        return jsonify({'error': 'Not Found'}), 404
    public_dir = current_app.config.get('PUBLIC_DIR')
    if public_dir and os.path.isfile(os.path.join(public_dir, filename)):
        return send_from_directory(public_dir, filename)
    response = serve_index()
    if response is None:
        return jsonify({'error': 'Not Found'}), 404
    return response
