"""Listing query service.

Composes optional filter criteria into one store query over the
``listings`` collection and returns a page of normalized listings plus a
continuation cursor.

Read operations return ``(result, error)`` pairs: ``error`` is None on
success and a ``MarketplaceError`` when the store could not be read, so
callers can tell an empty result from a failed one. Bad caller input
raises ``InvalidArgument`` before the store is touched.
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Tuple

from campus_market.constants import (
    LISTINGS_COLLECTION,
    STATUS_AVAILABLE,
    MIN_PAGE_SIZE,
    MAX_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
    VALID_CATEGORIES,
    VALID_CONDITIONS,
)
from campus_market.services.document_store import Predicate, Query, EQ, GTE, LTE, IN
from campus_market.services.normalizer import Listing, normalize
from campus_market.utils.errors import InvalidArgument, MalformedRecord, StoreUnavailable
from campus_market.utils.geo import distance

logger = logging.getLogger(__name__)

CURSOR_PREFIX = 'after:'


@dataclass(frozen=True)
class FilterCriteria:
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    is_rental: Optional[bool] = None
    conditions: FrozenSet[str] = frozenset()
    max_distance: Optional[float] = None
    origin: Optional[Tuple[float, float]] = None

    def __post_init__(self):
        if self.category is not None and self.category not in VALID_CATEGORIES:
            raise InvalidArgument(f'Unknown category: {self.category}')
        unknown = set(self.conditions) - set(VALID_CONDITIONS)
        if unknown:
            raise InvalidArgument(f'Unknown condition: {", ".join(sorted(unknown))}')
        if self.max_distance is not None and self.max_distance <= 0:
            raise InvalidArgument('max_distance must be greater than 0')
        if self.max_distance is not None and self.origin is None:
            raise InvalidArgument('max_distance needs an origin', details='max_distance')


@dataclass
class ListingPage:
    listings: List[Listing] = field(default_factory=list)
    next_cursor: Optional[str] = None


def encode_cursor(doc_id: str) -> str:
    raw = f'{CURSOR_PREFIX}{doc_id}'.encode('utf-8')
    return base64.urlsafe_b64encode(raw).decode('ascii').rstrip('=')


def decode_cursor(cursor: str) -> str:
    """Return the document id wrapped by ``cursor``."""
    try:
        padded = cursor + '=' * (-len(cursor) % 4)
        raw = base64.urlsafe_b64decode(padded.encode('ascii')).decode('utf-8')
    except (binascii.Error, UnicodeError, ValueError):
        raise InvalidArgument('Invalid cursor')

    if not raw.startswith(CURSOR_PREFIX) or len(raw) == len(CURSOR_PREFIX):
        raise InvalidArgument('Invalid cursor')
    return raw[len(CURSOR_PREFIX):]


def build_predicates(criteria: Optional[FilterCriteria]) -> List[Predicate]:
    """Return one predicate per present, non-default criterion."""
    predicates = []
    if criteria is None:
        return predicates

    if criteria.category:
        predicates.append(Predicate('category', EQ, criteria.category))

    if criteria.min_price is not None and criteria.min_price > 0:
        predicates.append(Predicate('price', GTE, criteria.min_price))

    if criteria.max_price is not None and criteria.max_price > 0:
        predicates.append(Predicate('price', LTE, criteria.max_price))

    if criteria.is_rental is not None:
        predicates.append(Predicate('is_rental', EQ, criteria.is_rental))

    if criteria.conditions:
        predicates.append(Predicate('condition', IN, tuple(sorted(criteria.conditions))))

    return predicates


def within_distance(listing: Listing, criteria: FilterCriteria) -> bool:
    if criteria.max_distance is None:
        return True
    if listing.location is None:
        return False
    lat, lng = criteria.origin
    return distance(lat, lng, listing.location.latitude, listing.location.longitude) <= criteria.max_distance


class ListingQueryService:
    """Read side of the listings collection."""

    def __init__(self, store):
        self.store = store

    def query(self, criteria=None, cursor=None, page_size=DEFAULT_PAGE_SIZE):
        """Fetch one page of available listings, newest first.

        Returns:
            Tuple of (ListingPage, error). On store failure the page is
            empty and error is a ``StoreUnavailable``.

        Raises:
            InvalidArgument: page size outside [1, 100] or a bad cursor.
        """
        if isinstance(page_size, bool) or not isinstance(page_size, int) \
                or not MIN_PAGE_SIZE <= page_size <= MAX_PAGE_SIZE:
            raise InvalidArgument(
                f'Invalid page size. Must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}.'
            )

        start_after = decode_cursor(cursor) if cursor else None

        store_query = Query(
            collection=LISTINGS_COLLECTION,
            predicates=[Predicate('status', EQ, STATUS_AVAILABLE)] + build_predicates(criteria),
            order_by='created_at',
            descending=True,
            limit=page_size,
            start_after=start_after,
        )

        try:
            snapshots = self.store.run_query(store_query)
        except StoreUnavailable as e:
            logger.error(f'Error getting listings: {e}')
            return ListingPage(), e

        listings = []
        last_id = None
        for snapshot in snapshots:
            try:
                listing = normalize(snapshot.id, snapshot.data)
            except MalformedRecord as e:
                logger.warning(f'Skipping malformed listing {snapshot.id}: {e}')
                continue
            last_id = snapshot.id
            if criteria is None or within_distance(listing, criteria):
                listings.append(listing)

        # A full page of malformed records still advances past them.
        if last_id is None and snapshots:
            last_id = snapshots[-1].id

        next_cursor = None
        if len(snapshots) == page_size:
            next_cursor = encode_cursor(last_id)

        return ListingPage(listings, next_cursor), None

    def get(self, listing_id):
        """Fetch one listing by id.

        Returns:
            Tuple of (Listing or None, error). A missing listing is
            ``(None, None)``.
        """
        if not listing_id or not isinstance(listing_id, str):
            raise InvalidArgument('Invalid listing ID')

        try:
            snapshot = self.store.get(LISTINGS_COLLECTION, listing_id)
        except StoreUnavailable as e:
            logger.error(f'Error getting listing {listing_id}: {e}')
            return None, e

        if snapshot is None:
            return None, None

        try:
            return normalize(snapshot.id, snapshot.data), None
        except MalformedRecord as e:
            logger.warning(f'Listing {listing_id} is malformed: {e}')
            return None, e

    def list_for_seller(self, seller_id):
        """Fetch every listing owned by ``seller_id``, newest first."""
        if not seller_id or not isinstance(seller_id, str):
            raise InvalidArgument('Invalid user ID')

        store_query = Query(
            collection=LISTINGS_COLLECTION,
            predicates=[Predicate('seller_id', EQ, seller_id)],
            order_by='created_at',
            descending=True,
        )

        try:
            snapshots = self.store.run_query(store_query)
        except StoreUnavailable as e:
            logger.error(f'Error getting listings for user {seller_id}: {e}')
            return [], e

        listings = []
        for snapshot in snapshots:
            try:
                listings.append(normalize(snapshot.id, snapshot.data))
            except MalformedRecord as e:
                logger.warning(f'Skipping malformed listing {snapshot.id}: {e}')
        return listings, None
