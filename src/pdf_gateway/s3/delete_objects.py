"""Functions for deleting objects from the bucket--the "D" in CRUD."""

import logging

from pdf_gateway.s3.client import ObjectStore

logger = logging.getLogger(__name__)


async def delete_document(store: ObjectStore, key: str) -> None:
    """
    Delete ``key``.

    S3 deletes are idempotent, so an absent key succeeds exactly like a
    present one and callers never need to check for existence first.
    """
    await store.delete(key)
    logger.info("Deleted %s from bucket %s", key, store.bucket_name)
