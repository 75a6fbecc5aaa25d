from campus_market.constants.listings import (
    VALID_CATEGORIES,
    VALID_CONDITIONS,
    RENTAL_DURATIONS,
    LISTING_STATUSES,
    STATUS_TRANSITIONS,
    STATUS_AVAILABLE,
    MIN_PAGE_SIZE,
    MAX_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
    MAX_PRICE,
    MAX_IMAGES,
    LISTINGS_COLLECTION,
)

__all__ = [
    'VALID_CATEGORIES',
    'VALID_CONDITIONS',
    'RENTAL_DURATIONS',
    'LISTING_STATUSES',
    'STATUS_TRANSITIONS',
    'STATUS_AVAILABLE',
    'MIN_PAGE_SIZE',
    'MAX_PAGE_SIZE',
    'DEFAULT_PAGE_SIZE',
    'MAX_PRICE',
    'MAX_IMAGES',
    'LISTINGS_COLLECTION',
]
