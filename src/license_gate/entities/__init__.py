"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for wire formats - use DTOs
from the dto package for that.
"""

from .access import AccessDecision, DenialReason, SessionContext
from .cache_entry import CacheEntryEntity
from .license_state import LicenseKind, LicenseState
from .route_classification import RouteClassification

__all__ = [
    "AccessDecision",
    "CacheEntryEntity",
    "DenialReason",
    "LicenseKind",
    "LicenseState",
    "RouteClassification",
    "SessionContext",
]
