"""Listing routes for the campus buy/sell/rent marketplace."""

from flask import Blueprint, request, jsonify, current_app
import logging
import math

from campus_market.constants import (
    VALID_CATEGORIES,
    VALID_CONDITIONS,
    RENTAL_DURATIONS,
    LISTING_STATUSES,
    DEFAULT_PAGE_SIZE,
    MAX_IMAGES,
)
from campus_market.services.listing_query import FilterCriteria, ListingQueryService
from campus_market.services.listing_creation import ImageUpload, ListingCreator, ListingDraft
from campus_market.utils.auth import token_required
from campus_market.utils.errors import InvalidArgument, MarketplaceError, NotFound, handle_error

listings_bp = Blueprint('listings', __name__)
logger = logging.getLogger(__name__)

TRUE_VALUES = ('true', '1', 'yes')
FALSE_VALUES = ('false', '0', 'no')


def get_query_service():
    return ListingQueryService(current_app.extensions['document_store'])


def get_creator():
    return ListingCreator(
        current_app.extensions['document_store'],
        current_app.extensions['blob_store'],
        max_workers=current_app.config.get('UPLOAD_WORKERS', MAX_IMAGES),
    )


@listings_bp.errorhandler(MarketplaceError)
def handle_marketplace_error(error):
    body = handle_error(error)
    payload = {'error': body['message'], 'code': body['code']}
    if isinstance(error, InvalidArgument) and isinstance(body['details'], str):
        payload['field'] = body['details']
    if error.status_code >= 500:
        logger.error(f'{request.method} {request.path} failed: {error.code} {error.details}')
    return jsonify(payload), error.status_code


def _float_arg(source, name):
    value = source.get(name)
    if value is None or value == '':
        return None
    try:
        number = float(value)
    except ValueError:
        raise InvalidArgument(f'{name} must be a number', details=name)
    if not math.isfinite(number):
        raise InvalidArgument(f'{name} must be a finite number', details=name)
    return number


def _bool_arg(source, name):
    value = source.get(name)
    if value is None or value == '':
        return None
    lowered = value.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise InvalidArgument(f'{name} must be true or false', details=name)


def _list_arg(source, name):
    """Collect a repeated and/or comma separated argument."""
    values = []
    for raw in source.getlist(name):
        values.extend(part.strip() for part in raw.split(',') if part.strip())
    return values


def parse_filter_criteria(args):
    latitude = _float_arg(args, 'latitude')
    longitude = _float_arg(args, 'longitude')
    origin = (latitude, longitude) if latitude is not None and longitude is not None else None

    max_distance = _float_arg(args, 'max_distance')
    if max_distance is not None and origin is None:
        raise InvalidArgument('max_distance needs latitude and longitude', details='max_distance')

    return FilterCriteria(
        category=args.get('category') or None,
        min_price=_float_arg(args, 'min_price'),
        max_price=_float_arg(args, 'max_price'),
        is_rental=_bool_arg(args, 'is_rental'),
        conditions=frozenset(_list_arg(args, 'condition')),
        max_distance=max_distance,
        origin=origin,
    )


def parse_draft(form, seller_id):
    location = None
    if any(form.get(name) for name in ('latitude', 'longitude', 'address')):
        location = {
            'latitude': _float_arg(form, 'latitude'),
            'longitude': _float_arg(form, 'longitude'),
            'address': form.get('address'),
        }

    return ListingDraft(
        seller_id=seller_id,
        title=form.get('title'),
        description=form.get('description'),
        category=form.get('category'),
        condition=form.get('condition'),
        price=form.get('price'),
        tags=_list_arg(form, 'tags'),
        is_rental=bool(_bool_arg(form, 'is_rental')),
        rental_duration=form.get('rental_duration') or None,
        location=location,
        course_tags=_list_arg(form, 'course_tags'),
        department_tags=_list_arg(form, 'department_tags'),
    )


@listings_bp.route('', methods=['GET'])
def get_listings():
    """Get available listings with filtering and cursor pagination.

    Query params:
    - category, condition (repeatable or comma separated)
    - min_price, max_price
    - is_rental: true/false
    - max_distance (km) with latitude/longitude
    - cursor: next_cursor from a previous page
    - per_page: 1-100 (default: 20)
    """
    try:
        per_page = int(request.args.get('per_page', DEFAULT_PAGE_SIZE))
    except ValueError:
        raise InvalidArgument('per_page must be an integer', details='per_page')
    criteria = parse_filter_criteria(request.args)

    page, error = get_query_service().query(
        criteria,
        cursor=request.args.get('cursor') or None,
        page_size=per_page,
    )
    if error:
        raise error

    return jsonify({
        'listings': [listing.to_dict() for listing in page.listings],
        'next_cursor': page.next_cursor,
        'count': len(page.listings),
    }), 200


@listings_bp.route('/meta', methods=['GET'])
def get_listing_meta():
    """Enumerations the client needs to build listing forms and filters."""
    return jsonify({
        'categories': list(VALID_CATEGORIES),
        'conditions': list(VALID_CONDITIONS),
        'rental_durations': list(RENTAL_DURATIONS),
        'statuses': list(LISTING_STATUSES),
        'max_images': MAX_IMAGES,
    }), 200


@listings_bp.route('/<listing_id>', methods=['GET'])
def get_listing(listing_id):
    """Get a specific listing by ID."""
    listing, error = get_query_service().get(listing_id)
    if error:
        raise error
    if listing is None:
        raise NotFound('Listing not found')
    return jsonify(listing.to_dict()), 200


@listings_bp.route('/user/<seller_id>', methods=['GET'])
def get_user_listings(seller_id):
    """Get every listing of one seller (public endpoint for profile view)."""
    listings, error = get_query_service().list_for_seller(seller_id)
    if error:
        raise error
    return jsonify({
        'listings': [listing.to_dict() for listing in listings],
        'total': len(listings)
    }), 200


@listings_bp.route('', methods=['POST'])
@token_required
def create_listing(current_user_id):
    """Create a new listing from a multipart form with 1-5 ``images`` files."""
    logger.info(f'Listing create request from user {current_user_id}')

    draft = parse_draft(request.form, current_user_id)
    images = [
        ImageUpload(data=file.read(), filename=file.filename or '', content_type=file.mimetype)
        for file in request.files.getlist('images')
        if file.filename
    ]

    listing = get_creator().create(draft, images)

    return jsonify({
        'message': 'Listing created successfully',
        'listing': listing.to_dict()
    }), 201


@listings_bp.route('/<listing_id>/status', methods=['PATCH'])
@token_required
def update_listing_status(current_user_id, listing_id):
    """Change the lifecycle status of the caller's own listing."""
    data = request.get_json(silent=True) or {}
    status = data.get('status')
    if not status:
        raise InvalidArgument('Missing status', details='status')

    listing = get_creator().update_status(listing_id, current_user_id, status)

    return jsonify({
        'message': 'Listing updated successfully',
        'listing': listing.to_dict()
    }), 200
