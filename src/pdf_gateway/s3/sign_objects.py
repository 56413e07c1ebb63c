"""Presigned download URLs."""

from pdf_gateway.s3.client import ObjectStore

DEFAULT_SIGNED_URL_TTL_SECONDS = 3600


async def sign_document_url(store: ObjectStore, key: str, ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS) -> str:
    """
    Time-limited GET URL for ``key``.

    The key's existence is not checked; the URL may later resolve to a 404.
    """
    return await store.sign_get(key, ttl_seconds=ttl_seconds)
