"""
Configuration for the RaktMap backend.

Every value can be overridden from the environment so the same code runs
as a long-lived Flask server, inside AWS Lambda, or against DynamoDB Local.
"""
import os


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name, default):
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [v.strip() for v in value.split(',') if v.strip()]


# Origins allowed by the long-running server. Entries starting with '^'
# are treated as regular expressions by flask-cors.
DEFAULT_CORS_ORIGINS = [
    'http://localhost:3001',
    'http://localhost:3000',
    r'^https://.*\.devtunnels\.ms$',
    r'^https://.*\.vercel\.app$',
    r'^https://.*\.onrender\.com$',
]


class Config:
    # AWS / storage
    AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')
    DYNAMODB_ENDPOINT_URL = os.environ.get('DYNAMODB_ENDPOINT_URL') or None
    REQUESTS_TABLE = os.environ.get('REQUESTS_TABLE', 'BloodRequests')
    LOCATIONS_TABLE = os.environ.get('LOCATIONS_TABLE', 'DonorLocations')
    RAKTMAP_STORE = os.environ.get('RAKTMAP_STORE', 'dynamodb')

    # Geofence around the requesting hospital
    HOSPITAL_LAT = float(os.environ.get('HOSPITAL_LAT', '22.6023'))
    HOSPITAL_LNG = float(os.environ.get('HOSPITAL_LNG', '72.8205'))
    GEOFENCE_RADIUS_KM = float(os.environ.get('GEOFENCE_RADIUS_KM', '100'))
    GEOFENCE_ENFORCE = _env_bool('GEOFENCE_ENFORCE', False)

    # Coordinate validation: by default any falsy value (including 0) is
    # rejected, matching the deployed clients.
    ALLOW_ZERO_COORDINATES = _env_bool('ALLOW_ZERO_COORDINATES', False)

    # Donor identifiers
    DONOR_ID_PREFIX = os.environ.get('DONOR_ID_PREFIX', 'DON')
    DONOR_ID_MAX_ATTEMPTS = int(os.environ.get('DONOR_ID_MAX_ATTEMPTS', '10'))

    # HTTP surface
    CORS_ORIGINS = _env_list('CORS_ORIGINS', DEFAULT_CORS_ORIGINS)
    PUBLIC_DIR = os.environ.get(
        'PUBLIC_DIR',
        os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'public'),
    )
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


def load_config(overrides=None):
    """Return the configuration as a plain dict (for callers without a Flask app)"""
    config = {k: getattr(Config, k) for k in dir(Config) if k.isupper()}
    if overrides:
        config.update(overrides)
    return config
