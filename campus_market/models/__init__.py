"""Database models for the campus marketplace."""

from .listing import ListingDocument

__all__ = ['ListingDocument']
