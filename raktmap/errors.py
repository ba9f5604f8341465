"""Error types raised by the core and converted to HTTP responses by the adapters."""


class RaktmapError(Exception):
    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NotFoundError(RaktmapError):
    status_code = 404
    message = 'Request not found'


class ValidationError(RaktmapError):
    status_code = 400
    message = 'Coordinates required'


class RequestClosedError(RaktmapError):
    """The atomic claim matched nothing: the request is full, inactive or past its deadline"""
    status_code = 400
    message = 'Blood request already fulfilled or expired.'


class DonorIdExhaustedError(RaktmapError):
    status_code = 500
    message = 'Could not allocate a unique donor ID'


class StoreError(RaktmapError):
    status_code = 500


def error_body(exc):
    """JSON body for any exception reaching an adapter boundary"""
    if isinstance(exc, RaktmapError):
        return {'error': exc.message}
    return {'error': str(exc) or exc.__class__.__name__}


def status_for(exc):
    return getattr(exc, 'status_code', 500)
