"""Exception types raised inside the simulator.

None of these reach an API caller as a 500: decode failures become ``None``,
cache failures are logged and dropped, and unavailable environmental data is
replaced by latitude-based estimates.
"""

from __future__ import annotations


class ForestImpactError(Exception):
    """Base class for simulator errors."""


class ShareDecodeError(ForestImpactError, ValueError):
    """A share string is not valid base64url or not a valid state layout."""


class CacheError(ForestImpactError):
    """The backing key/value store failed to read or write."""


class QuotaExceededError(CacheError):
    """The backing store is full."""


class EnvironmentalDataUnavailable(ForestImpactError):
    """A soil or climate source returned no usable data for a location."""
