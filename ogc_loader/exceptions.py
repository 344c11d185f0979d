# ============================================================================
# CONTEXT - OGC LOADER EXCEPTIONS
# ============================================================================
# STATUS: Foundation - Error kinds for the feature loader
# PURPOSE: Typed errors raised by URL building, metadata, strategies, search
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: OGCLoaderError, CollectionInfoError, MetadataFetchError,
#          CapabilityProbeError, PageFetchError, FeatureDecodeError,
#          InvalidConfigurationError, LoadCancelledError,
#          PageLimitExceededError, SearchError
# DEPENDENCIES: typing (stdlib only)
# ============================================================================

"""
Exception hierarchy for the OGC API Features loader.

All errors derive from OGCLoaderError so callers can catch the whole
family. LoadCancelledError is deliberately part of the family too, but
callers must check for it first: a cancelled load is "superseded", not
failed.

Hierarchy:
    OGCLoaderError
    ├── CollectionInfoError         (memo is cleared, next load retries)
    │   ├── MetadataFetchError      (non-2xx on /collections/{id})
    │   └── CapabilityProbeError    (non-200 on the offset probe)
    ├── PageFetchError              (non-200 on a page request)
    ├── FeatureDecodeError          (body is not a FeatureCollection)
    ├── InvalidConfigurationError   (e.g. concurrency < 1)
    ├── LoadCancelledError          (session superseded or aborted)
    ├── PageLimitExceededError      (next-link safety bound hit)
    └── SearchError                 (search request failed)
"""

from typing import Optional


class OGCLoaderError(Exception):
    """Base class for all loader errors."""


class CollectionInfoError(OGCLoaderError):
    """
    Failure while resolving collection metadata or capabilities.

    Carries the HTTP status code when the failure was an HTTP response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MetadataFetchError(CollectionInfoError):
    """Non-2xx response from the collection metadata endpoint."""


class CapabilityProbeError(CollectionInfoError):
    """Non-200 response from the offset-support probe request."""


class PageFetchError(OGCLoaderError):
    """Non-200 response (or transport failure) on a page request."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class FeatureDecodeError(OGCLoaderError):
    """Response body could not be decoded into features."""


class InvalidConfigurationError(OGCLoaderError, ValueError):
    """Invalid loader configuration (raised at construction time)."""


class LoadCancelledError(OGCLoaderError):
    """The load session was cancelled before it could complete."""

    def __init__(self, reason: str = "Cancelled"):
        super().__init__(reason)
        self.reason = reason


class PageLimitExceededError(OGCLoaderError):
    """The next-link chain exceeded the configured page bound."""

    def __init__(self, max_pages: int):
        super().__init__(f"Next-link chain exceeded the configured limit of {max_pages} pages")
        self.max_pages = max_pages


class SearchError(OGCLoaderError):
    """Search on the OGC API Features service failed."""
