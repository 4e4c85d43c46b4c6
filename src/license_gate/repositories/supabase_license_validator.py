"""Supabase RPC license validator.

Calls the hosted ``get_user_license_status`` stored procedure through the
PostgREST RPC endpoint:

    POST {SUPABASE_URL}/rest/v1/rpc/{function}
    {"p_user_id": "<user id>"}

The procedure returns a JSON object (or null when the user has no license
row). Some deployments wrap the object in a one-element array.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from license_gate.config import settings
from license_gate.dto import LicenseValidationResult

logger = logging.getLogger(__name__)


class LicenseValidationError(RuntimeError):
    """The remote validator could not produce a result."""


class SupabaseLicenseValidator:
    """httpx-based implementation of the LicenseValidator protocol.

    Example:
        ```python
        validator = SupabaseLicenseValidator.create()
        result = await validator.validate("5b0c...")
        print(result.has_license, result.is_valid)
        await validator.close()
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        function_name: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the validator.

        Args:
            base_url: Supabase project URL. Defaults to settings.supabase_url.
            api_key: Supabase anon or service key. Defaults to settings.
            function_name: Stored procedure name. Defaults to settings.
            timeout: Request timeout in seconds. Defaults to settings.
            client: Pre-built async client (tests inject a mock transport).
        """
        self._base_url = (base_url or settings.supabase_url).rstrip("/")
        self._api_key = api_key or settings.supabase_key
        self._function_name = function_name or settings.license_rpc_function
        self._timeout = timeout or settings.license_rpc_timeout
        self._client = client

    @classmethod
    def create(
        cls,
        base_url: str | None = None,
        api_key: str | None = None,
        function_name: str | None = None,
    ) -> "SupabaseLicenseValidator":
        """Factory method to create SupabaseLicenseValidator with defaults."""
        return cls(base_url=base_url, api_key=api_key, function_name=function_name)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    @property
    def rpc_url(self) -> str:
        return f"{self._base_url}/rest/v1/rpc/{self._function_name}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def validate(self, user_id: str) -> LicenseValidationResult:
        """Call the license procedure for a user.

        Args:
            user_id: The user identifier

        Returns:
            The parsed validation result

        Raises:
            LicenseValidationError: On transport, HTTP or format errors
        """
        try:
            response = await self.client.post(
                self.rpc_url,
                json={"p_user_id": user_id},
                headers=self._headers(),
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise LicenseValidationError(
                f"License RPC {self._function_name} failed: {e}"
            ) from e
        except ValueError as e:
            raise LicenseValidationError(
                f"License RPC {self._function_name} returned invalid JSON: {e}"
            ) from e

        result = self._parse(payload)
        logger.debug(
            "License RPC for %s: has_license=%s is_valid=%s requires_activation=%s "
            "requires_renewal=%s",
            user_id,
            result.has_license,
            result.is_valid,
            result.requires_activation,
            result.requires_renewal,
        )
        return result

    @staticmethod
    def _parse(payload: Any) -> LicenseValidationResult:
        if isinstance(payload, list):
            payload = payload[0] if payload else None

        if payload is None:
            return LicenseValidationResult(has_license=False, message="No license found")

        if not isinstance(payload, dict):
            raise LicenseValidationError(f"Unexpected response format: {payload!r}")

        try:
            return LicenseValidationResult.model_validate(payload)
        except ValidationError as e:
            raise LicenseValidationError(f"Invalid license payload: {e}") from e

    async def is_available(self) -> bool:
        """Check if the PostgREST endpoint answers."""
        try:
            response = await self.client.get(
                f"{self._base_url}/rest/v1/",
                headers=self._headers(),
            )
            return response.status_code < 500
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
