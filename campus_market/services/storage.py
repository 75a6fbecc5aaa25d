"""Supabase Storage service for listing images.

Uploads go to a single public bucket (``listing-images`` by default).
The store returns the object path as its reference; ``resolve`` turns a
reference into the public URL saved on the listing.
"""

import os
import logging

from campus_market.utils.errors import UploadFailed, get_storage_error_message

logger = logging.getLogger(__name__)


class BlobStore:
    """Interface to a remote blob store."""

    def upload(self, data: bytes, key: str, content_type: str = 'image/jpeg') -> str:
        """Store ``data`` under ``key`` and return an opaque reference."""
        raise NotImplementedError

    def resolve(self, reference: str) -> str:
        """Return the public URL for a reference returned by ``upload``."""
        raise NotImplementedError


class SupabaseBlobStore(BlobStore):
    """Blob store backed by a Supabase Storage bucket."""

    def __init__(self, client, bucket):
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_env(cls, bucket):
        """Build the store from ``SUPABASE_URL``/``SUPABASE_SERVICE_KEY``.

        Returns a store with no client when credentials are missing; every
        upload then fails with ``storage/not-configured``.
        """
        url = os.getenv('SUPABASE_URL')
        key = os.getenv('SUPABASE_SERVICE_KEY')

        if not url or not key:
            logger.warning('Supabase credentials not configured. Image uploads will not work.')
            return cls(None, bucket)

        from supabase import create_client
        client = create_client(url, key)
        logger.info('Supabase client initialized successfully')
        return cls(client, bucket)

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def _require_client(self):
        if self.client is None:
            raise UploadFailed(
                get_storage_error_message('storage/not-configured'),
                code='storage/not-configured',
            )
        return self.client

    def upload(self, data, key, content_type='image/jpeg'):
        client = self._require_client()

        logger.info(f'Uploading file to {self.bucket}/{key} ({content_type})')
        try:
            client.storage.from_(self.bucket).upload(
                path=key,
                file=data,
                file_options={'content-type': content_type}
            )
        except Exception as e:
            logger.error(f'Upload failed for {self.bucket}/{key}: {e}')
            raise UploadFailed(f'Upload failed: {e}', details=key) from e

        return key

    def resolve(self, reference):
        client = self._require_client()
        return client.storage.from_(self.bucket).get_public_url(reference)
