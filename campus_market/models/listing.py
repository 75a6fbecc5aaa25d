"""Listing document table."""

from datetime import datetime, timezone
from campus_market import db


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ListingDocument(db.Model):
    """Row backing one document of the ``listings`` collection.

    Columns are nullable on purpose: rows are read back as untyped
    documents and checked by the normalizer, not by the schema.
    """

    __tablename__ = 'listings'

    # Fields that live in the nested ``location`` map of a document
    LOCATION_FIELDS = ('latitude', 'longitude', 'address')

    id = db.Column(db.String(36), primary_key=True)
    seller_id = db.Column(db.String(128), nullable=True, index=True)
    title = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(50), nullable=True, index=True)
    tags = db.Column(db.JSON, nullable=True)
    condition = db.Column(db.String(20), nullable=True, index=True)
    price = db.Column(db.Float, nullable=True, index=True)
    is_rental = db.Column(db.Boolean, nullable=True, index=True)
    rental_duration = db.Column(db.String(20), nullable=True)
    images = db.Column(db.JSON, nullable=True)
    status = db.Column(db.String(20), nullable=True, index=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    address = db.Column(db.String(255), nullable=True)
    course_tags = db.Column(db.JSON, nullable=True)
    department_tags = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @classmethod
    def column_for(cls, field):
        """Return the mapped column for a top-level document field."""
        if field == 'id' or field not in cls.__table__.columns:
            raise ValueError(f'Unknown listing field: {field}')
        return getattr(cls, field)

    def apply_fields(self, data):
        """Copy document fields onto the row (``location`` is flattened)."""
        for key, value in data.items():
            if key == 'location':
                location = value or {}
                for name in self.LOCATION_FIELDS:
                    setattr(self, name, location.get(name))
            elif key != 'id' and key in self.__table__.columns:
                setattr(self, key, value)

    def touch(self):
        self.updated_at = utcnow()

    def to_document(self):
        """Return the row as a plain document dict, omitting unset fields."""
        data = {}
        for column in self.__table__.columns:
            name = column.name
            if name == 'id' or name in self.LOCATION_FIELDS:
                continue
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, datetime):
                value = value.replace(tzinfo=timezone.utc)
            data[name] = value

        if any(getattr(self, name) is not None for name in self.LOCATION_FIELDS):
            data['location'] = {
                name: getattr(self, name) for name in self.LOCATION_FIELDS
            }
        return data

    def __repr__(self):
        return f'<ListingDocument {self.id}: {self.title}>'
