"""
=============================================================================
HANDLERS MODULE
=============================================================================

The request-resolution and response-construction pipeline.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   HTTPRequest ──► RequestHandler ──► HTTPResponse                   │
    │                        │                                             │
    │          ┌─────────────┼──────────────┬──────────────┐               │
    │          ▼             ▼              ▼              ▼               │
    │    PathResolver  DirectoryRenderer  CacheNegotiator  mime_types     │
    │    (resolver.py) (listing.py)       (caching.py)     (http/)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .caching import CacheMetadata, CacheNegotiator, make_etag
from .listing import Breadcrumb, DirectoryEntry, DirectoryRenderer, format_size
from .resolver import PathResolver, ResolvedTarget, TargetKind
from .static import RequestHandler


__all__ = [
    "RequestHandler",

    "PathResolver",
    "ResolvedTarget",
    "TargetKind",

    "DirectoryRenderer",
    "DirectoryEntry",
    "Breadcrumb",
    "format_size",

    "CacheNegotiator",
    "CacheMetadata",
    "make_etag",
]
