"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (Redis pub/sub -> in-process hub, etc.)
- Unit testing with fake implementations
- Clear separation of concerns
"""

from .broadcast_channel import BroadcastChannel, MessageHandler
from .license_validator import LicenseValidator
from .navigation_history import NavigationHistory
from .version_store import VersionMarkerStore

__all__ = [
    "BroadcastChannel",
    "LicenseValidator",
    "MessageHandler",
    "NavigationHistory",
    "VersionMarkerStore",
]
