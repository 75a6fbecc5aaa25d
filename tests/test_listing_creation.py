"""
Tests for listing creation and status updates.
"""

import pytest

from campus_market.constants import LISTINGS_COLLECTION
from campus_market.services.listing_creation import (
    ImageUpload,
    ListingCreator,
    image_key,
    validate_draft,
)
from campus_market.services.listing_query import ListingQueryService
from campus_market.utils.errors import (
    InvalidArgument,
    NotFound,
    PermissionDenied,
    StoreUnavailable,
    UploadFailed,
)
from conftest import JPEG_BYTES, OTHER_USER_ID, SELLER_ID, make_document, make_draft, make_images
from fakes import FailingDocumentStore, FakeBlobStore, key_index


class TestDraftValidation:
    """Draft checks run before any upload or write."""

    @pytest.mark.parametrize('price', [0, '0', -5, '-1', 'abc', None, True, 10001])
    def test_invalid_price(self, price):
        with pytest.raises(InvalidArgument) as exc:
            validate_draft(make_draft(price=price))
        assert exc.value.details == 'price'

    @pytest.mark.parametrize('price,expected', [('12.50', 12.5), (10000, 10000.0), (0.01, 0.01)])
    def test_valid_price(self, price, expected):
        assert validate_draft(make_draft(price=price)) == expected

    def test_rental_without_duration(self):
        """Test a rental listing must name its rental period."""
        with pytest.raises(InvalidArgument) as exc:
            validate_draft(make_draft(is_rental=True))
        assert exc.value.details == 'rental_duration'

    def test_duration_without_rental(self):
        """Test a rental period on a sale listing is rejected."""
        with pytest.raises(InvalidArgument) as exc:
            validate_draft(make_draft(is_rental=False, rental_duration='weekly'))
        assert exc.value.details == 'rental_duration'

    def test_rental_with_duration(self):
        validate_draft(make_draft(is_rental=True, rental_duration='semester'))

    @pytest.mark.parametrize('overrides,field', [
        ({'title': 'ab'}, 'title'),
        ({'title': 'x' * 101}, 'title'),
        ({'title': '   '}, 'title'),
        ({'description': 'too short'}, 'description'),
        ({'category': 'boats'}, 'category'),
        ({'condition': 'mint'}, 'condition'),
        ({'tags': ['ok', '']}, 'tags'),
        ({'tags': ['x' * 51]}, 'tags'),
        ({'course_tags': 'CS101'}, 'course_tags'),
        ({'location': {'latitude': 95, 'longitude': 0, 'address': 'Pole'}}, 'location'),
        ({'location': {'latitude': 10, 'longitude': 0, 'address': ''}}, 'location'),
        ({'location': {'latitude': float('nan'), 'longitude': 0.0, 'address': 'Lab'}}, 'location'),
        ({'seller_id': ''}, 'seller_id'),
    ])
    def test_invalid_fields(self, overrides, field):
        with pytest.raises(InvalidArgument) as exc:
            validate_draft(make_draft(**overrides))
        assert exc.value.details == field


class TestCreateListing:
    """Tests for ListingCreator.create"""

    def test_create_success(self, memory_store, blob_store):
        """Test a valid draft is uploaded and written."""
        creator = ListingCreator(memory_store, blob_store)

        listing = creator.create(make_draft(), make_images(2))

        assert listing.status == 'available'
        assert listing.seller_id == SELLER_ID
        assert listing.price == 40.0
        assert len(listing.images) == 2
        assert all(url.startswith('https://cdn.example.com/') for url in listing.images)
        assert memory_store.writes == [('insert', LISTINGS_COLLECTION, listing.id)]

    def test_zero_images(self, memory_store, blob_store):
        """Test creation fails before any upload when no image is given."""
        creator = ListingCreator(memory_store, blob_store)

        with pytest.raises(InvalidArgument):
            creator.create(make_draft(), [])

        assert blob_store.upload_calls == 0
        assert memory_store.writes == []

    def test_too_many_images(self, memory_store, blob_store):
        with pytest.raises(InvalidArgument):
            ListingCreator(memory_store, blob_store).create(make_draft(), make_images(6))

        assert blob_store.upload_calls == 0

    def test_zero_price_no_write(self, memory_store, blob_store):
        """Test price "0" fails and nothing reaches either store."""
        with pytest.raises(InvalidArgument):
            ListingCreator(memory_store, blob_store).create(make_draft(price='0'), make_images(1))

        assert blob_store.upload_calls == 0
        assert memory_store.writes == []

    def test_non_finite_location_no_write(self, memory_store, blob_store):
        """Test a NaN coordinate fails before anything is uploaded or written."""
        draft = make_draft(location={'latitude': float('nan'), 'longitude': 0.0, 'address': 'Lab'})

        with pytest.raises(InvalidArgument) as exc:
            ListingCreator(memory_store, blob_store).create(draft, make_images(1))

        assert exc.value.details == 'location'
        assert blob_store.upload_calls == 0
        assert memory_store.writes == []

    def test_rental_without_duration_no_upload(self, memory_store, blob_store):
        with pytest.raises(InvalidArgument):
            ListingCreator(memory_store, blob_store).create(make_draft(is_rental=True), make_images(1))

        assert blob_store.upload_calls == 0

    def test_invalid_image_rejected(self, memory_store, blob_store):
        """Test a file that is not an image fails before upload."""
        images = make_images(1) + [ImageUpload(data=b'hello world, not an image', filename='a.png')]

        with pytest.raises(InvalidArgument):
            ListingCreator(memory_store, blob_store).create(make_draft(), images)

        assert blob_store.upload_calls == 0

    def test_mismatched_extension_rejected(self, memory_store, blob_store):
        images = [ImageUpload(data=JPEG_BYTES, filename='photo.png')]

        with pytest.raises(InvalidArgument):
            ListingCreator(memory_store, blob_store).create(make_draft(), images)

    def test_detected_content_type_used(self, memory_store, blob_store):
        images = [ImageUpload(data=JPEG_BYTES, filename='photo.jpg', content_type='text/plain')]

        ListingCreator(memory_store, blob_store).create(make_draft(), images)

        assert [ctype for _, ctype in blob_store.blobs.values()] == ['image/jpeg']
        assert images[0].content_type == 'text/plain'

    def test_upload_order_preserved(self, memory_store):
        """Test URLs follow input order even when uploads finish out of order."""
        blobs = FakeBlobStore(delays={0: 0.2, 1: 0.1, 2: 0.0})
        creator = ListingCreator(memory_store, blobs)

        listing = creator.create(make_draft(), make_images(3))

        assert [key_index(url) for url in listing.images] == [0, 1, 2]

    def test_upload_failure_aborts(self, memory_store):
        """Test one failed upload fails the whole creation without a write."""
        blobs = FakeBlobStore(fail_indexes={1})
        creator = ListingCreator(memory_store, blobs)

        with pytest.raises(UploadFailed) as exc:
            creator.create(make_draft(), make_images(3))

        assert 'image 2' in str(exc.value)
        assert memory_store.writes == []

    def test_store_write_failure(self, blob_store):
        with pytest.raises(StoreUnavailable):
            ListingCreator(FailingDocumentStore(), blob_store).create(make_draft(), make_images(1))

    def test_round_trip(self, memory_store, blob_store):
        """Test a created listing reads back with the same fields and image order."""
        creator = ListingCreator(memory_store, blob_store)
        draft = make_draft(is_rental=True, rental_duration='monthly', department_tags=['Math'])

        created = creator.create(draft, make_images(3))
        fetched, error = ListingQueryService(memory_store).get(created.id)

        assert error is None
        assert fetched == created
        assert fetched.title == draft.title
        assert fetched.rental_duration == 'monthly'
        assert fetched.department_tags == ['Math']
        assert fetched.location.address == 'Main Library'

    def test_image_keys_unique(self):
        keys = {image_key(0, 'a.png') for _ in range(50)}

        assert len(keys) == 50
        assert all(key.startswith('listings/') and key.endswith('.png') for key in keys)


class TestUpdateStatus:
    """Tests for ListingCreator.update_status"""

    def _seed(self, store, **overrides):
        return store.add(LISTINGS_COLLECTION, make_document(**overrides), doc_id='doc-1')

    @pytest.mark.parametrize('status', ['sold', 'rented', 'reserved'])
    def test_owner_can_close(self, memory_store, blob_store, status):
        self._seed(memory_store)

        listing = ListingCreator(memory_store, blob_store).update_status('doc-1', SELLER_ID, status)

        assert listing.status == status
        assert listing.updated_at > listing.created_at

    def test_non_owner_denied(self, memory_store, blob_store):
        self._seed(memory_store)

        with pytest.raises(PermissionDenied):
            ListingCreator(memory_store, blob_store).update_status('doc-1', OTHER_USER_ID, 'sold')

        assert memory_store.writes == []

    def test_no_reverse_transition(self, memory_store, blob_store):
        """Test a sold listing cannot become available again."""
        self._seed(memory_store, status='sold')

        with pytest.raises(InvalidArgument):
            ListingCreator(memory_store, blob_store).update_status('doc-1', SELLER_ID, 'available')

    def test_unknown_status(self, memory_store, blob_store):
        self._seed(memory_store)

        with pytest.raises(InvalidArgument):
            ListingCreator(memory_store, blob_store).update_status('doc-1', SELLER_ID, 'deleted')

    def test_missing_listing(self, memory_store, blob_store):
        with pytest.raises(NotFound):
            ListingCreator(memory_store, blob_store).update_status('nope', SELLER_ID, 'sold')
