"""Listing constants shared across the backend.

Must stay in sync with the mobile client's listing types.
"""

LISTINGS_COLLECTION = 'listings'

# The 8 valid category keys
VALID_CATEGORIES = (
    'textbooks',
    'electronics',
    'furniture',
    'clothing',
    'sports',
    'stationery',
    'appliances',
    'other',
)

VALID_CONDITIONS = ('new', 'like-new', 'good', 'fair', 'poor')

RENTAL_DURATIONS = ('daily', 'weekly', 'monthly', 'semester')

STATUS_AVAILABLE = 'available'
LISTING_STATUSES = (STATUS_AVAILABLE, 'sold', 'rented', 'reserved')

# Allowed lifecycle moves. Nothing leaves sold/rented/reserved.
STATUS_TRANSITIONS = {
    STATUS_AVAILABLE: {'sold', 'rented', 'reserved'},
    'sold': set(),
    'rented': set(),
    'reserved': set(),
}

# Query paging
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20

# Listing limits
MAX_PRICE = 10000
MAX_IMAGES = 5
TITLE_LENGTH = (3, 100)
DESCRIPTION_LENGTH = (10, 1000)
MAX_TAG_LENGTH = 50
