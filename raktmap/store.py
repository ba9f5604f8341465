"""
Document store access for blood requests and donor locations.

Two implementations share one duck-typed interface:

- DynamoStore talks to AWS DynamoDB (tables `BloodRequests` and
  `DonorLocations`). The confirmation claim is a single conditional
  `update_item`, so at most `quantity` claims can ever succeed no matter how
  many processes race for the same request.
- MemoryStore keeps everything in dictionaries for local development and
  tests; a process-wide lock gives the same claim guarantee inside one
  process.

LazyStore wraps either one and builds it on first use.
"""
from decimal import Decimal
import logging
import threading

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from .errors import StoreError
from .models import STATUS_ACTIVE, format_timestamp

log = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = 'ConditionalCheckFailedException'

# Key under app.extensions holding the store handle
STORE_EXTENSION = 'raktmap.store'


# --- DynamoDB type conversion ---
def _to_dynamo(obj):
    # DynamoDB does not accept Python floats; convert floats to Decimal
    if isinstance(obj, dict):
        return {k: _to_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_to_dynamo(v) for v in obj]
    if isinstance(obj, float):
        return Decimal(str(obj))
    return obj


def _from_dynamo(obj):
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_from_dynamo(v) for v in obj]
    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() else float(obj)
    return obj


def _error_code(err):
    return err.response.get('Error', {}).get('Code')


class DynamoStore:
    """Blood requests and donor locations in DynamoDB"""

    def __init__(self, dynamodb, requests_table='BloodRequests', locations_table='DonorLocations'):
        self.dynamodb = dynamodb
        self.requests_table_name = requests_table
        self.locations_table_name = locations_table
        self.requests = dynamodb.Table(requests_table)
        self.locations = dynamodb.Table(locations_table)

    # --- blood requests ---
    def get_request(self, request_id):
        try:
            resp = self.requests.get_item(Key={'request_id': request_id})
        except (ClientError, NoCredentialsError) as e:
            raise StoreError(str(e)) from e
        item = resp.get('Item')
        return _from_dynamo(item) if item else None

    def put_request(self, record):
        try:
            self.requests.put_item(Item=_to_dynamo(record))
        except (ClientError, NoCredentialsError) as e:
            raise StoreError(str(e)) from e
        return True

    def set_request_status(self, request_id, status):
        """
        Move an active request to `status`.

        Only an active request is updated, so a closed request is never
        reopened. Returns False when the request was no longer active.
        """
        try:
            self.requests.update_item(
                Key={'request_id': request_id},
                UpdateExpression='SET #status = :status',
                ConditionExpression='attribute_exists(request_id) AND #status = :active',
                ExpressionAttributeNames={'#status': 'status'},
                ExpressionAttributeValues={':status': status, ':active': STATUS_ACTIVE},
            )
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                return False
            raise StoreError(str(e)) from e
        except NoCredentialsError as e:
            raise StoreError(str(e)) from e
        return True

    def claim_unit(self, request_id, now):
        """
        Atomically add one confirmed unit to an open request.

        The request must exist, be active, have room left and not be past its
        deadline; otherwise nothing is written and None is returned. On
        success the updated document is returned.
        """
        try:
            resp = self.requests.update_item(
                Key={'request_id': request_id},
                UpdateExpression='ADD #confirmed :one',
                ConditionExpression=(
                    'attribute_exists(request_id) AND #status = :active '
                    'AND #confirmed < #quantity AND #required_by >= :now'
                ),
                ExpressionAttributeNames={
                    '#status': 'status',
                    '#confirmed': 'confirmed_units',
                    '#quantity': 'quantity',
                    '#required_by': 'required_by',
                },
                ExpressionAttributeValues={
                    ':one': 1,
                    ':active': STATUS_ACTIVE,
                    ':now': format_timestamp(now),
                },
                ReturnValues='ALL_NEW',
            )
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                return None
            raise StoreError(str(e)) from e
        except NoCredentialsError as e:
            raise StoreError(str(e)) from e
        return _from_dynamo(resp['Attributes'])

    # --- donor locations ---
    def donor_exists(self, donor_id):
        try:
            resp = self.locations.get_item(
                Key={'donor_id': donor_id},
                ProjectionExpression='donor_id',
            )
        except (ClientError, NoCredentialsError) as e:
            raise StoreError(str(e)) from e
        return 'Item' in resp

    def get_location(self, donor_id):
        try:
            resp = self.locations.get_item(Key={'donor_id': donor_id})
        except (ClientError, NoCredentialsError) as e:
            raise StoreError(str(e)) from e
        item = resp.get('Item')
        return _from_dynamo(item) if item else None

    def insert_location(self, record):
        """Insert a donor location; returns False if the donor ID is already taken"""
        try:
            self.locations.put_item(
                Item=_to_dynamo(record),
                ConditionExpression='attribute_not_exists(donor_id)',
            )
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                return False
            raise StoreError(str(e)) from e
        except NoCredentialsError as e:
            raise StoreError(str(e)) from e
        return True

    # --- tooling ---
    def create_tables(self):
        """Create both tables if they do not exist yet; returns the names created"""
        created = []
        for name, key in ((self.requests_table_name, 'request_id'),
                          (self.locations_table_name, 'donor_id')):
            try:
                table = self.dynamodb.create_table(
                    TableName=name,
                    KeySchema=[{'AttributeName': key, 'KeyType': 'HASH'}],
                    AttributeDefinitions=[{'AttributeName': key, 'AttributeType': 'S'}],
                    BillingMode='PAY_PER_REQUEST',
                )
            except ClientError as e:
                if _error_code(e) == 'ResourceInUseException':
                    continue
                raise StoreError(str(e)) from e
            table.wait_until_exists()
            log.info('Created DynamoDB table %s', name)
            created.append(name)
        self.requests = self.dynamodb.Table(self.requests_table_name)
        self.locations = self.dynamodb.Table(self.locations_table_name)
        return created


class MemoryStore:
    """In-process store with the same claim semantics as DynamoStore"""

    def __init__(self):
        self.requests = {}
        self.locations = {}
        self._lock = threading.Lock()

    def get_request(self, request_id):
        with self._lock:
            doc = self.requests.get(request_id)
            return dict(doc) if doc else None

    def put_request(self, record):
        with self._lock:
            self.requests[record['request_id']] = dict(record)
        return True

    def set_request_status(self, request_id, status):
        with self._lock:
            doc = self.requests.get(request_id)
            if not doc or doc.get('status') != STATUS_ACTIVE:
                return False
            doc['status'] = status
            return True

    def claim_unit(self, request_id, now):
        now = format_timestamp(now)
        with self._lock:
            doc = self.requests.get(request_id)
            if (not doc
                    or doc.get('status') != STATUS_ACTIVE
                    or 'confirmed_units' not in doc or 'quantity' not in doc
                    or doc['confirmed_units'] >= doc['quantity']
                    or not doc.get('required_by')
                    or doc['required_by'] < now):
                return None
            doc['confirmed_units'] += 1
            return dict(doc)

    def donor_exists(self, donor_id):
        with self._lock:
            return donor_id in self.locations

    def get_location(self, donor_id):
        with self._lock:
            doc = self.locations.get(donor_id)
            return dict(doc) if doc else None

    def insert_location(self, record):
        with self._lock:
            if record['donor_id'] in self.locations:
                return False
            self.locations[record['donor_id']] = dict(record)
            return True

    def create_tables(self):
        return []


class LazyStore:
    """
    Store handle built on first use and reused for the life of the process.

    The factory runs at most once even when the first calls arrive on
    several threads at the same time. There is no teardown.
    """

    def __init__(self, factory):
        self._factory = factory
        self._store = None
        self._lock = threading.Lock()

    @property
    def initialized(self):
        return self._store is not None

    def get(self):
        if self._store is None:
            with self._lock:
                if self._store is None:
                    self._store = self._factory()
        return self._store

    def __getattr__(self, name):
        return getattr(self.get(), name)


def build_store(config):
    """Construct the store named by config['RAKTMAP_STORE']"""
    kind = (config.get('RAKTMAP_STORE') or 'dynamodb').lower()
    if kind == 'memory':
        log.info('Using in-memory store')
        return MemoryStore()
    if kind != 'dynamodb':
        raise ValueError(f"Unknown store type: {kind}")

    kwargs = {'region_name': config.get('AWS_REGION', 'us-east-1')}
    if config.get('DYNAMODB_ENDPOINT_URL'):
        kwargs['endpoint_url'] = config['DYNAMODB_ENDPOINT_URL']
    log.info('Using DynamoDB store in %s', kwargs['region_name'])
    dynamodb = boto3.resource('dynamodb', **kwargs)
    return DynamoStore(
        dynamodb,
        requests_table=config.get('REQUESTS_TABLE', 'BloodRequests'),
        locations_table=config.get('LOCATIONS_TABLE', 'DonorLocations'),
    )


def lazy_store(config):
    return LazyStore(lambda: build_store(config))
