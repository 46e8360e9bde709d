"""
Listing System Enum

Closed set of listing systems (ATS) a career page can be served by.
This is in a separate file to avoid circular imports between the classifier,
the strategy registry and the catalog.
"""

from enum import Enum


class ListingSystem(str, Enum):
    """
    Listing systems known to the classifier

    CUSTOM means a page was fetched but no known system matched.
    UNKNOWN means the page has not been (or could not be) classified yet.
    """
    GREENHOUSE = "greenhouse"
    LEVER = "lever"
    ASHBY = "ashby"
    SMARTRECRUITERS = "smartrecruiters"
    WORKDAY = "workday"
    BAMBOOHR = "bamboohr"
    CUSTOM = "custom"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: "ListingSystem | str | None") -> "ListingSystem":
        """Lenient conversion used for catalog/queue rows. Unrecognised tags map to UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.UNKNOWN


# Listing systems with a public, unauthenticated read API we have a strategy for.
# Workday has an API but it requires per-tenant authentication.
API_AVAILABLE = frozenset({
    ListingSystem.GREENHOUSE,
    ListingSystem.LEVER,
    ListingSystem.ASHBY,
    ListingSystem.SMARTRECRUITERS,
})


def is_api_available(listing_system: ListingSystem | str) -> bool:
    return ListingSystem.parse(listing_system) in API_AVAILABLE
