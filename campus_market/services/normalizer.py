"""Listing record normalizer.

Maps raw documents from the store into ``Listing`` records. Required
fields must be present and well-formed; optional fields fall back to
empty defaults. Nothing past this module reads raw documents.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from numbers import Real
from typing import List, Optional

from campus_market.constants import (
    VALID_CATEGORIES,
    VALID_CONDITIONS,
    RENTAL_DURATIONS,
    LISTING_STATUSES,
)
from campus_market.utils.errors import MalformedRecord

# Stands in for a missing creation time so normalizing stays deterministic
UNKNOWN_TIMESTAMP = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    address: str

    def to_dict(self):
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'address': self.address,
        }


@dataclass(frozen=True)
class Listing:
    id: str
    seller_id: str
    title: str
    description: str
    category: str
    condition: str
    price: float
    status: str
    created_at: datetime
    updated_at: datetime
    tags: List[str] = field(default_factory=list)
    is_rental: bool = False
    rental_duration: Optional[str] = None
    images: List[str] = field(default_factory=list)
    location: Optional[Location] = None
    course_tags: List[str] = field(default_factory=list)
    department_tags: List[str] = field(default_factory=list)

    def to_dict(self):
        """Convert listing to dictionary."""
        return {
            'id': self.id,
            'seller_id': self.seller_id,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'tags': list(self.tags),
            'condition': self.condition,
            'price': self.price,
            'is_rental': self.is_rental,
            'rental_duration': self.rental_duration,
            'images': list(self.images),
            'status': self.status,
            'location': self.location.to_dict() if self.location else None,
            'course_tags': list(self.course_tags),
            'department_tags': list(self.department_tags),
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }


def _required_text(raw, name):
    value = raw.get(name)
    if not isinstance(value, str) or not value.strip():
        raise MalformedRecord(f'Field {name!r} is missing or not a string', details=name)
    return value


def _required_choice(raw, name, choices):
    value = _required_text(raw, name)
    if value not in choices:
        raise MalformedRecord(f'Field {name!r} has unknown value {value!r}', details=name)
    return value


def _is_number(value):
    return isinstance(value, Real) and not isinstance(value, bool)


def _string_list(raw, name):
    value = raw.get(name)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise MalformedRecord(f'Field {name!r} must be a list of strings', details=name)
    return list(value)


def _timestamp(raw, name):
    value = raw.get(name)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise MalformedRecord(f'Field {name!r} is not a timestamp', details=name)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    if value is None:
        return None
    raise MalformedRecord(f'Field {name!r} is not a timestamp', details=name)


def _location(raw):
    value = raw.get('location')
    if value is None:
        return None
    if not isinstance(value, dict):
        raise MalformedRecord('Field location must be a map', details='location')

    latitude = value.get('latitude')
    longitude = value.get('longitude')
    address = value.get('address')
    if not _is_number(latitude) or not -90 <= latitude <= 90:
        raise MalformedRecord('Location latitude is invalid', details='location')
    if not _is_number(longitude) or not -180 <= longitude <= 180:
        raise MalformedRecord('Location longitude is invalid', details='location')
    if not isinstance(address, str):
        raise MalformedRecord('Location address is invalid', details='location')
    return Location(float(latitude), float(longitude), address)


def normalize(doc_id: str, raw) -> Listing:
    """Build a ``Listing`` from a stored document.

    Raises:
        MalformedRecord: a required field is absent or has the wrong shape.
    """
    if not isinstance(raw, dict):
        raise MalformedRecord(f'Document {doc_id} is not a map')

    price = raw.get('price')
    if not _is_number(price):
        raise MalformedRecord("Field 'price' is missing or not a number", details='price')

    is_rental = raw.get('is_rental', False)
    if is_rental is None:
        is_rental = False
    if not isinstance(is_rental, bool):
        raise MalformedRecord("Field 'is_rental' must be a boolean", details='is_rental')

    rental_duration = raw.get('rental_duration')
    if rental_duration is not None and rental_duration not in RENTAL_DURATIONS:
        raise MalformedRecord(
            f'Field rental_duration has unknown value {rental_duration!r}',
            details='rental_duration'
        )

    created_at = _timestamp(raw, 'created_at') or UNKNOWN_TIMESTAMP
    updated_at = _timestamp(raw, 'updated_at') or created_at

    return Listing(
        id=doc_id,
        seller_id=_required_text(raw, 'seller_id'),
        title=_required_text(raw, 'title'),
        description=_required_text(raw, 'description'),
        category=_required_choice(raw, 'category', VALID_CATEGORIES),
        condition=_required_choice(raw, 'condition', VALID_CONDITIONS),
        price=float(price),
        status=_required_choice(raw, 'status', LISTING_STATUSES),
        created_at=created_at,
        updated_at=updated_at,
        tags=_string_list(raw, 'tags'),
        is_rental=is_rental,
        rental_duration=rental_duration,
        images=_string_list(raw, 'images'),
        location=_location(raw),
        course_tags=_string_list(raw, 'course_tags'),
        department_tags=_string_list(raw, 'department_tags'),
    )
