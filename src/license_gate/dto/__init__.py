"""Data Transfer Objects for wire contracts.

These Pydantic models define the external contracts: the HTTP API,
the broadcast channel messages and the remote validator response.

Internal domain logic should use entities from the entities package.
"""

from .license import LicenseValidationResult
from .messages import CacheMessage, CachePayload
from .requests import AccessCheckRequest
from .responses import (
    AccessDecisionResponse,
    CacheStatsResponse,
    HealthCheckResponse,
    LicenseStateResponse,
    RouteClassificationResponse,
)

__all__ = [
    "AccessCheckRequest",
    "AccessDecisionResponse",
    "CacheMessage",
    "CachePayload",
    "CacheStatsResponse",
    "HealthCheckResponse",
    "LicenseStateResponse",
    "LicenseValidationResult",
    "RouteClassificationResponse",
]
