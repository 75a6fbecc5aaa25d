"""Listing services and the store interfaces they depend on."""

from campus_market.services.document_store import (
    DocumentStore,
    DocumentSnapshot,
    Predicate,
    Query,
    SqlDocumentStore,
)
from campus_market.services.storage import BlobStore, SupabaseBlobStore
from campus_market.services.normalizer import Listing, Location, normalize
from campus_market.services.listing_query import (
    FilterCriteria,
    ListingPage,
    ListingQueryService,
    build_predicates,
)
from campus_market.services.listing_creation import (
    ImageUpload,
    ListingCreator,
    ListingDraft,
)

__all__ = [
    'DocumentStore',
    'DocumentSnapshot',
    'Predicate',
    'Query',
    'SqlDocumentStore',
    'BlobStore',
    'SupabaseBlobStore',
    'Listing',
    'Location',
    'normalize',
    'FilterCriteria',
    'ListingPage',
    'ListingQueryService',
    'build_predicates',
    'ImageUpload',
    'ListingCreator',
    'ListingDraft',
]
