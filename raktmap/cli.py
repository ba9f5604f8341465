"""
Flask CLI commands for hospital-facing tooling.

    flask --app app init-tables
    flask --app app create-request --blood-group O+ --quantity 3 --hours 12
    flask --app app seed
"""
import click
from flask import current_app
from flask.cli import with_appcontext

from .models import default_deadline, new_blood_request
from .store import STORE_EXTENSION

# Sample requests for a fresh local environment
SAMPLE_REQUESTS = [
    {'request_id': 'BR-B5C6D7E8', 'blood_group': 'A+', 'quantity': 5, 'urgency': 'high', 'hours': 72},
    {'request_id': 'BR-C1D2E3F4', 'blood_group': 'O-', 'quantity': 2, 'urgency': 'critical', 'hours': 6},
    {'request_id': 'BR-D9E8F7A6', 'blood_group': 'B+', 'quantity': 1, 'urgency': 'normal', 'hours': 48},
]


def _store():
    return current_app.extensions[STORE_EXTENSION]


@click.command('init-tables')
@with_appcontext
def init_tables_command():
    """Create the DynamoDB tables if they do not exist."""
    created = _store().create_tables()
    if created:
        click.echo(f"Created tables: {', '.join(created)}")
    else:
        click.echo('Tables already exist')


@click.command('create-request')
@click.option('--blood-group', required=True, help='Blood group, e.g. O+')
@click.option('--quantity', required=True, type=click.IntRange(min=1), help='Units needed')
@click.option('--urgency', default='normal', show_default=True)
@click.option('--hours', default=24, show_default=True, type=click.IntRange(min=1),
              help='Hours until the request expires')
@click.option('--hospital-id', default=None)
@with_appcontext
def create_request_command(blood_group, quantity, urgency, hours, hospital_id):
    """Post a new active blood request."""
    req = new_blood_request(
        blood_group, quantity, default_deadline(hours),
        urgency=urgency, hospital_id=hospital_id,
    )
    _store().put_request(req)
    click.echo(req['request_id'])


@click.command('seed')
@with_appcontext
def seed_command():
    """Insert sample blood requests - only if not already present."""
    store = _store()
    added = 0
    for sample in SAMPLE_REQUESTS:
        if store.get_request(sample['request_id']):
            continue
        store.put_request(new_blood_request(
            sample['blood_group'], sample['quantity'], default_deadline(sample['hours']),
            urgency=sample['urgency'], request_id=sample['request_id'],
        ))
        added += 1
    click.echo(f"Seeded {added} sample request(s)")


def register_commands(app):
    app.cli.add_command(init_tables_command)
    app.cli.add_command(create_request_command)
    app.cli.add_command(seed_command)
