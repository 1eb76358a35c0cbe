"""
Geo Resolution

Country and city for a visitor IP. No geo-IP database is wired in, so the
default resolver answers the "Unknown" placeholders. A real resolver can be
passed to ClickRecorder; if it fails the recorder falls back to the
placeholders instead of dropping the event.
"""

from abc import ABC, abstractmethod
from typing import NamedTuple

UNKNOWN_LOCATION = "Unknown"


class GeoLocation(NamedTuple):
    country: str
    city: str


UNKNOWN_GEO = GeoLocation(UNKNOWN_LOCATION, UNKNOWN_LOCATION)


class GeoResolver(ABC):
    """Resolves a client IP address to a location."""

    @abstractmethod
    async def resolve(self, ip: str) -> GeoLocation:
        pass


class UnknownGeoResolver(GeoResolver):
    """Resolver used when no geo-IP source is configured."""

    async def resolve(self, ip: str) -> GeoLocation:
        return UNKNOWN_GEO
