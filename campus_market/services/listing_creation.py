"""Listing creation and status updates.

Images are uploaded before the listing document is written, so a
document never references an image that failed to upload. Uploads that
did succeed are left in place when a later one fails.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import List, Optional
from uuid import uuid4

from campus_market.constants import (
    LISTINGS_COLLECTION,
    STATUS_AVAILABLE,
    LISTING_STATUSES,
    STATUS_TRANSITIONS,
    VALID_CATEGORIES,
    VALID_CONDITIONS,
    RENTAL_DURATIONS,
    MAX_IMAGES,
    MAX_PRICE,
)
from campus_market.services.normalizer import Listing, normalize
from campus_market.utils.errors import (
    InvalidArgument,
    NotFound,
    PermissionDenied,
    UploadFailed,
)
from campus_market.utils.images import check_image, file_extension
from campus_market.utils.validation import (
    parse_price,
    validate_price,
    validate_title,
    validate_description,
    validate_tags,
    validate_location,
    validate_image_url,
)

logger = logging.getLogger(__name__)

IMAGE_KEY_PREFIX = 'listings'


@dataclass
class ListingDraft:
    """Caller-supplied fields of a new listing."""

    seller_id: str
    title: str
    description: str
    category: str
    condition: str
    price: object
    tags: List[str] = field(default_factory=list)
    is_rental: bool = False
    rental_duration: Optional[str] = None
    location: Optional[dict] = None
    course_tags: List[str] = field(default_factory=list)
    department_tags: List[str] = field(default_factory=list)


@dataclass
class ImageUpload:
    data: bytes
    filename: str
    content_type: Optional[str] = None


def validate_draft(draft: ListingDraft) -> float:
    """Check a draft and return its price as a float.

    Raises:
        InvalidArgument: the first problem found.
    """
    if not draft.seller_id or not isinstance(draft.seller_id, str):
        raise InvalidArgument('Missing seller', details='seller_id')

    if not validate_title(draft.title):
        raise InvalidArgument('Title must be between 3 and 100 characters', details='title')

    if not validate_description(draft.description):
        raise InvalidArgument(
            'Description must be between 10 and 1000 characters', details='description'
        )

    if draft.category not in VALID_CATEGORIES:
        raise InvalidArgument(f'Unknown category: {draft.category}', details='category')

    if draft.condition not in VALID_CONDITIONS:
        raise InvalidArgument(f'Unknown condition: {draft.condition}', details='condition')

    if not validate_price(draft.price):
        raise InvalidArgument(
            f'Price must be greater than 0 and at most {MAX_PRICE}', details='price'
        )

    for name in ('tags', 'course_tags', 'department_tags'):
        if not validate_tags(getattr(draft, name)):
            raise InvalidArgument(f'Invalid {name.replace("_", " ")}', details=name)

    if not isinstance(draft.is_rental, bool):
        raise InvalidArgument('is_rental must be a boolean', details='is_rental')

    if draft.is_rental:
        if draft.rental_duration not in RENTAL_DURATIONS:
            raise InvalidArgument(
                'Rental listings need a rental duration', details='rental_duration'
            )
    elif draft.rental_duration is not None:
        raise InvalidArgument(
            'Only rental listings can have a rental duration', details='rental_duration'
        )

    if draft.location is not None and not validate_location(draft.location):
        raise InvalidArgument('Invalid location', details='location')

    return parse_price(draft.price)


def image_key(index: int, filename: str) -> str:
    """Unique object key: timestamp, position and a random suffix."""
    ext = file_extension(filename) or 'jpg'
    return f'{IMAGE_KEY_PREFIX}/{int(time.time() * 1000)}_{index}_{uuid4().hex[:8]}.{ext}'


class ListingCreator:
    """Write side of the listings collection."""

    def __init__(self, store, blobs, max_workers=MAX_IMAGES):
        self.store = store
        self.blobs = blobs
        self.max_workers = max_workers

    def _upload_one(self, index, image):
        try:
            reference = self.blobs.upload(image.data, image_key(index, image.filename), image.content_type)
            url = self.blobs.resolve(reference)
        except UploadFailed as e:
            if e.code == 'storage/not-configured':
                raise
            raise UploadFailed(f'Failed to upload image {index + 1}', details=e.message) from e
        except Exception as e:
            logger.error(f'Error uploading image {index + 1}: {e}')
            raise UploadFailed(f'Failed to upload image {index + 1}', details=str(e)) from e

        if not validate_image_url(url):
            raise UploadFailed(f'Failed to upload image {index + 1}', details=f'Bad URL: {url!r}')
        return url

    def upload_images(self, images) -> List[str]:
        """Upload concurrently; the returned URLs follow the input order."""
        workers = max(1, min(self.max_workers, len(images)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._upload_one, i, image) for i, image in enumerate(images)]
            return [future.result() for future in futures]

    def create(self, draft: ListingDraft, images) -> Listing:
        """Validate, upload the images, then write the listing.

        Raises:
            InvalidArgument: bad draft or images; nothing was uploaded.
            UploadFailed: an image failed to upload; nothing was written.
            StoreUnavailable: the document write failed.
        """
        images = list(images or [])
        if not images:
            raise InvalidArgument('At least one image is required', details='images')
        if len(images) > MAX_IMAGES:
            raise InvalidArgument(f'At most {MAX_IMAGES} images are allowed', details='images')

        price = validate_draft(draft)

        uploads = []
        for index, image in enumerate(images):
            mime, error = check_image(image.data, image.filename)
            if error:
                raise InvalidArgument(f'Image {index + 1}: {error}', details='images')
            uploads.append(replace(image, content_type=mime))

        image_urls = self.upload_images(uploads)

        document = {
            'seller_id': draft.seller_id,
            'title': draft.title.strip(),
            'description': draft.description.strip(),
            'category': draft.category,
            'tags': [tag.strip() for tag in draft.tags],
            'condition': draft.condition,
            'price': price,
            'is_rental': draft.is_rental,
            'rental_duration': draft.rental_duration,
            'images': image_urls,
            'status': STATUS_AVAILABLE,
            'location': dict(draft.location) if draft.location else None,
            'course_tags': list(draft.course_tags),
            'department_tags': list(draft.department_tags),
        }

        snapshot = self.store.insert(LISTINGS_COLLECTION, document)
        logger.info(f'Listing {snapshot.id} created by {draft.seller_id} with {len(image_urls)} images')
        return normalize(snapshot.id, snapshot.data)

    def update_status(self, listing_id, seller_id, status) -> Listing:
        """Move a listing along its lifecycle.

        Raises:
            InvalidArgument: unknown status or a disallowed transition.
            NotFound: no listing with this id.
            PermissionDenied: ``seller_id`` does not own the listing.
            StoreUnavailable: the read or the write failed.
        """
        if not listing_id or not isinstance(listing_id, str):
            raise InvalidArgument('Invalid listing ID')

        if status not in LISTING_STATUSES:
            raise InvalidArgument('Invalid status value', details='status')

        snapshot = self.store.get(LISTINGS_COLLECTION, listing_id)
        if snapshot is None:
            raise NotFound('Listing not found')

        current = normalize(snapshot.id, snapshot.data)
        if current.seller_id != seller_id:
            raise PermissionDenied('Only the seller can change this listing')

        if status not in STATUS_TRANSITIONS[current.status]:
            raise InvalidArgument(
                f'Cannot change status from {current.status} to {status}', details='status'
            )

        updated = self.store.update(LISTINGS_COLLECTION, listing_id, {'status': status})
        if updated is None:
            raise NotFound('Listing not found')

        logger.info(f'Listing {listing_id} status changed: {current.status} -> {status}')
        return normalize(updated.id, updated.data)
