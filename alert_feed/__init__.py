"""
Alert Feed Package.

Filtered, paginated alert listing read through the caller's
access scope.
"""

from .schemas import AlertFeedQuery, AlertFeedResponse
from .service import AlertFeedService

__all__ = ["AlertFeedQuery", "AlertFeedResponse", "AlertFeedService"]
