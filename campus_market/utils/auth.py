"""Shared authentication utilities.

This module provides the JWT decorator used by routes that change
listings. Tokens are HS256-signed with ``JWT_SECRET_KEY`` and carry the
owner identifier in the ``user_id`` claim.
"""

from functools import wraps
from flask import request, jsonify, current_app
import jwt

from campus_market.utils.errors import get_auth_error_message


def _auth_error(code):
    return jsonify({'error': get_auth_error_message(code), 'code': code}), 401


def decode_token(token):
    """Return the ``user_id`` claim of a valid token as a string."""
    payload = jwt.decode(token, current_app.config['JWT_SECRET_KEY'], algorithms=['HS256'])
    user_id = payload.get('user_id')
    if user_id is None or user_id == '':
        raise jwt.InvalidTokenError('Token has no user_id claim')
    return str(user_id)


def token_required(f):
    """
    Decorator to require valid JWT token.

    Extracts user_id from JWT token and passes it as the first argument
    to the decorated function.

    Usage:
        @bp.route('/protected')
        @token_required
        def protected_route(current_user_id):
            return jsonify({'user_id': current_user_id})
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization')

        if not auth_header:
            return _auth_error('auth/token-missing')

        try:
            # Support both "Bearer <token>" and raw token formats
            token = auth_header.split(' ')[1] if ' ' in auth_header else auth_header
            current_user_id = decode_token(token)
        except jwt.ExpiredSignatureError:
            return _auth_error('auth/token-expired')
        except (jwt.InvalidTokenError, IndexError):
            return _auth_error('auth/token-invalid')

        return f(current_user_id, *args, **kwargs)
    return decorated
