"""
Error types
Exceptions raised across the remote client, the store and the pipeline.
"""

from typing import Optional


class CatalogMirrorError(Exception):
    """Base class for every error raised by catalog_mirror."""


class ConfigurationError(CatalogMirrorError):
    """Required settings are missing."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required settings: {', '.join(self.missing)}")


class RemoteCatalogError(CatalogMirrorError):
    """The WooCommerce API call failed or returned something unusable."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        detail = message
        if status_code is not None:
            detail = f"{detail}: {status_code} {body or ''}".rstrip()
        super().__init__(detail)


class StoreError(CatalogMirrorError):
    """A Supabase operation failed."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.details = details
        super().__init__(f"[{code}] {message}" if code else message)


class StoreWriteError(StoreError):
    """The store rejected a single request. Scoped to one batch."""


class StoreConnectionError(StoreError):
    """The store could not be reached at all."""


class WebhookPayloadError(CatalogMirrorError):
    """A webhook product payload was rejected by the sanitizer."""

    def __init__(self, reason: str, field: Optional[str] = None):
        self.reason = reason
        self.field = field
        super().__init__(f"{reason} ({field})" if field else reason)
