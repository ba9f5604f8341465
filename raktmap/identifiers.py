"""Donor identifier generation"""
import secrets
import string

from .errors import DonorIdExhaustedError

DONOR_ID_ALPHABET = string.ascii_uppercase + string.digits
DONOR_ID_LENGTH = 8


def generate_donor_id(prefix='DON'):
    """Generate a donor ID, e.g. DON4B7X9K2A"""
    suffix = ''.join(secrets.choice(DONOR_ID_ALPHABET) for _ in range(DONOR_ID_LENGTH))
    return f"{prefix}{suffix}"


def unique_donor_id(exists, prefix='DON', max_attempts=10):
    """
    Draw donor IDs until `exists(donor_id)` reports one unused.

    Raises DonorIdExhaustedError after `max_attempts` collisions.
    """
    for _ in range(max_attempts):
        donor_id = generate_donor_id(prefix)
        if not exists(donor_id):
            return donor_id
    raise DonorIdExhaustedError(
        f'Could not allocate a unique donor ID after {max_attempts} attempts'
    )
