"""Field validators for listing drafts.

Each validator returns a bool; callers decide which error to raise.
"""

import math
from numbers import Real
from urllib.parse import urlparse

from campus_market.constants.listings import (
    MAX_PRICE,
    MAX_TAG_LENGTH,
    TITLE_LENGTH,
    DESCRIPTION_LENGTH,
)


def parse_price(price):
    """Return ``price`` as a float, or None if it is not a number.

    Accepts numbers and numeric strings ("12.50"); booleans are rejected.
    """
    if isinstance(price, bool):
        return None
    if isinstance(price, Real):
        return float(price)
    if isinstance(price, str):
        try:
            return float(price.strip())
        except ValueError:
            return None
    return None


def validate_price(price) -> bool:
    value = parse_price(price)
    return value is not None and 0 < value <= MAX_PRICE


def validate_required(value) -> bool:
    return bool(value and isinstance(value, str) and value.strip())


def validate_title(title) -> bool:
    if not validate_required(title):
        return False
    return TITLE_LENGTH[0] <= len(title.strip()) <= TITLE_LENGTH[1]


def validate_description(description) -> bool:
    if not validate_required(description):
        return False
    return DESCRIPTION_LENGTH[0] <= len(description.strip()) <= DESCRIPTION_LENGTH[1]


def validate_tags(tags) -> bool:
    if not isinstance(tags, (list, tuple)):
        return False
    return all(
        isinstance(tag, str) and tag.strip() and len(tag) <= MAX_TAG_LENGTH
        for tag in tags
    )


def validate_location(location) -> bool:
    """Check a ``{latitude, longitude, address}`` map."""
    if not location or not isinstance(location, dict):
        return False

    latitude = location.get('latitude')
    longitude = location.get('longitude')
    address = location.get('address')

    for coordinate in (latitude, longitude):
        if isinstance(coordinate, bool) or not isinstance(coordinate, Real):
            return False
        if not math.isfinite(coordinate):
            return False

    if latitude < -90 or latitude > 90 or longitude < -180 or longitude > 180:
        return False

    return validate_required(address)


def validate_image_url(url) -> bool:
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)
