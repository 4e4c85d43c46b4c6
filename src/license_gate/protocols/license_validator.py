"""License validator protocol.

The validator is authoritative and remote; it is consumed, not implemented,
by the access layer.
"""

from typing import Protocol, runtime_checkable

from license_gate.dto import LicenseValidationResult


@runtime_checkable
class LicenseValidator(Protocol):
    """Protocol for the remote license validation procedure."""

    async def validate(self, user_id: str) -> LicenseValidationResult:
        """Validate the license of a user.

        Args:
            user_id: The user identifier

        Returns:
            The validator's structured result

        Raises:
            Exception: Any transport or server failure; callers must treat
                it as an ``error`` license state
        """
        ...

    async def is_available(self) -> bool:
        """Check if the validator is reachable."""
        ...
