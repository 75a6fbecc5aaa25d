"""Shared utilities for the campus marketplace backend.

This package contains reusable helpers shared by the services and the
route modules.
"""

from campus_market.utils.auth import token_required
from campus_market.utils.errors import (
    MarketplaceError,
    InvalidArgument,
    PermissionDenied,
    NotFound,
    MalformedRecord,
    UploadFailed,
    StoreUnavailable,
    handle_error,
    is_retryable,
)

__all__ = [
    'token_required',
    'MarketplaceError',
    'InvalidArgument',
    'PermissionDenied',
    'NotFound',
    'MalformedRecord',
    'UploadFailed',
    'StoreUnavailable',
    'handle_error',
    'is_retryable',
]
