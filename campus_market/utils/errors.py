"""Error types and user-facing error messages.

Every error raised by the services derives from ``MarketplaceError`` and
carries a machine readable ``code``. Codes prefixed with ``store/``,
``storage/`` or ``auth/`` come from a backend and are translated to a
human readable message through the lookup tables below.
"""

import logging

from sqlalchemy import exc as sa_exc

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """Base class for all marketplace errors."""

    code = 'unknown'
    status_code = 500

    def __init__(self, message, code=None, details=None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details


class InvalidArgument(MarketplaceError):
    """Bad caller input (page size out of range, non-positive price, ...)."""

    code = 'invalid-argument'
    status_code = 400


class PermissionDenied(MarketplaceError):
    code = 'permission-denied'
    status_code = 403


class NotFound(MarketplaceError):
    code = 'not-found'
    status_code = 404


class MalformedRecord(MarketplaceError):
    """A stored document does not have the expected shape."""

    code = 'malformed-record'
    status_code = 500


class UploadFailed(MarketplaceError):
    """An image upload failed; the listing was not written."""

    code = 'storage/upload-failed'
    status_code = 502


class StoreUnavailable(MarketplaceError):
    """A read or write against the document store failed."""

    code = 'store/unavailable'
    status_code = 503


STORE_ERROR_MESSAGES = {
    'store/permission-denied': 'You do not have permission to perform this action.',
    'store/unavailable': 'Service is temporarily unavailable. Please try again later.',
    'store/deadline-exceeded': 'Request timed out. Please try again.',
    'store/resource-exhausted': 'Service quota exceeded. Please try again later.',
    'store/failed-precondition': 'Operation failed due to a precondition not being met.',
    'store/aborted': 'Operation was aborted. Please try again.',
    'store/out-of-range': 'Operation is out of valid range.',
    'store/internal': 'Internal error occurred. Please try again.',
}

STORAGE_ERROR_MESSAGES = {
    'storage/upload-failed': 'Image upload failed. Please try again.',
    'storage/not-configured': 'Image storage is not available right now.',
}

AUTH_ERROR_MESSAGES = {
    'auth/token-missing': 'Please sign in to continue.',
    'auth/token-expired': 'Your session has expired. Please sign in again.',
    'auth/token-invalid': 'Your session is invalid. Please sign in again.',
}

RETRYABLE_CODES = {
    'store/unavailable',
    'store/deadline-exceeded',
    'store/resource-exhausted',
    'store/aborted',
    'store/internal',
    'storage/upload-failed',
}


def get_store_error_message(code: str) -> str:
    return STORE_ERROR_MESSAGES.get(code, 'Database operation failed. Please try again.')


def get_storage_error_message(code: str) -> str:
    return STORAGE_ERROR_MESSAGES.get(code, 'File storage failed. Please try again.')


def get_auth_error_message(code: str) -> str:
    return AUTH_ERROR_MESSAGES.get(code, 'Authentication failed. Please try again.')


def store_error_from_exception(error: Exception) -> StoreUnavailable:
    """Translate a SQLAlchemy exception into a ``StoreUnavailable``."""
    if isinstance(error, sa_exc.TimeoutError):
        code = 'store/deadline-exceeded'
    elif isinstance(error, sa_exc.IntegrityError):
        code = 'store/failed-precondition'
    elif isinstance(error, sa_exc.DataError):
        code = 'store/out-of-range'
    elif isinstance(error, (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.DisconnectionError)):
        code = 'store/unavailable'
    else:
        code = 'store/internal'
    return StoreUnavailable(get_store_error_message(code), code=code, details=str(error))


def handle_error(error) -> dict:
    """Turn any exception into an ``{code, message, details}`` dict."""
    if isinstance(error, MarketplaceError):
        code = error.code
        if code.startswith('store/'):
            message = get_store_error_message(code)
        elif code.startswith('storage/') and code != 'storage/upload-failed':
            message = get_storage_error_message(code)
        elif code.startswith('auth/'):
            message = get_auth_error_message(code)
        else:
            message = error.message
        return {'code': code, 'message': message, 'details': error.details}

    if isinstance(error, sa_exc.SQLAlchemyError):
        return handle_error(store_error_from_exception(error))

    logger.error(f"Unexpected error: {error!r}")
    return {
        'code': 'unknown',
        'message': str(error) or 'An unexpected error occurred. Please try again.',
        'details': None,
    }


def is_retryable(code: str) -> bool:
    return code in RETRYABLE_CODES


def get_error_message(error) -> str:
    return handle_error(error)['message']
