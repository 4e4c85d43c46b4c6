"""Service layer: caching, license resolution, access and navigation."""

from .access_evaluator import AccessEvaluator
from .license_service import LICENSE_KEY_PREFIX, LicenseService
from .multi_tab_cache import CacheListener, MultiTabCache
from .navigation import AUTH_STATE_KEY, NavigationInterceptor, NavigationResult

__all__ = [
    "AUTH_STATE_KEY",
    "LICENSE_KEY_PREFIX",
    "AccessEvaluator",
    "CacheListener",
    "LicenseService",
    "MultiTabCache",
    "NavigationInterceptor",
    "NavigationResult",
]
