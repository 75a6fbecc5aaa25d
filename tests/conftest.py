"""
Pytest configuration and fixtures for testing the Campus Market API.
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from faker import Faker

# Add the parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ['JWT_SECRET_KEY'] = 'test-secret-key-for-testing'

from campus_market import create_app, db
from campus_market.constants import LISTINGS_COLLECTION
from campus_market.models import ListingDocument
from campus_market.services.listing_creation import ImageUpload, ListingDraft
from fakes import BASE_TIME, FakeBlobStore, InMemoryDocumentStore

fake = Faker()

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 32
JPEG_BYTES = b'\xff\xd8\xff\xe0' + b'\x00' * 32

SELLER_ID = 'seller-1'
OTHER_USER_ID = 'seller-2'


def make_document(**overrides):
    """Raw listing document with sensible defaults."""
    data = {
        'seller_id': SELLER_ID,
        'title': fake.sentence(nb_words=3),
        'description': fake.paragraph(nb_sentences=2),
        'category': 'textbooks',
        'tags': ['calculus'],
        'condition': 'good',
        'price': 25.0,
        'is_rental': False,
        'images': ['https://cdn.example.com/listing-images/listings/1.png'],
        'status': 'available',
        'location': {'latitude': 40.0, 'longitude': -75.0, 'address': 'Main Library'},
        'created_at': BASE_TIME,
        'updated_at': BASE_TIME,
    }
    data.update(overrides)
    return data


def make_draft(**overrides):
    data = {
        'seller_id': SELLER_ID,
        'title': 'Calculus textbook',
        'description': 'Stewart, 8th edition, lightly highlighted.',
        'category': 'textbooks',
        'condition': 'good',
        'price': 40,
        'tags': ['math', 'calculus'],
        'location': {'latitude': 40.0, 'longitude': -75.0, 'address': 'Main Library'},
    }
    data.update(overrides)
    return ListingDraft(**data)


def make_images(count=1):
    return [ImageUpload(data=PNG_BYTES, filename=f'photo{i}.png') for i in range(count)]


def make_token(user_id, secret='test-secret-key-for-testing', expires_in=3600):
    payload = {
        'user_id': user_id,
        'exp': datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm='HS256')


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def app(blob_store):
    """Create application for testing, backed by in-memory SQLite."""
    app = create_app('testing', blob_store=blob_store)

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client for each test function."""
    return app.test_client()


@pytest.fixture
def sql_store(app):
    """The application's SQL document store inside an app context."""
    with app.app_context():
        yield app.extensions['document_store']


@pytest.fixture
def seed_listing(app):
    """Insert a listing row directly, bypassing server timestamps."""
    def _seed(**overrides):
        data = make_document(**overrides)
        with app.app_context():
            row = ListingDocument(id=overrides.get('id') or fake.uuid4().replace('-', ''))
            row.apply_fields(data)
            row.created_at = data['created_at'].replace(tzinfo=None)
            row.updated_at = data['updated_at'].replace(tzinfo=None)
            db.session.add(row)
            db.session.commit()
            return row.id
    return _seed


@pytest.fixture
def auth_headers():
    """Authentication headers for the default seller."""
    return {'Authorization': f'Bearer {make_token(SELLER_ID)}'}


@pytest.fixture
def second_auth_headers():
    """Authentication headers for a second user."""
    return {'Authorization': f'Bearer {make_token(OTHER_USER_ID)}'}


@pytest.fixture
def seeded_memory_store(memory_store):
    """Memory store holding five available listings one minute apart."""
    for i in range(5):
        memory_store.add(
            LISTINGS_COLLECTION,
            make_document(title=f'Listing {i}', created_at=BASE_TIME + timedelta(minutes=i)),
            doc_id=f'doc-{i}',
        )
    return memory_store
