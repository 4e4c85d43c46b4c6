"""Tests for SupabaseLicenseValidator against a mocked transport."""

import json

import httpx
import pytest

from license_gate.repositories import LicenseValidationError, SupabaseLicenseValidator


def make_validator(handler) -> SupabaseLicenseValidator:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseLicenseValidator(
        base_url="https://project.supabase.co/",
        api_key="anon-key",
        function_name="get_user_license_status",
        client=client,
    )


class TestValidate:
    """Tests for SupabaseLicenseValidator.validate()."""

    @pytest.mark.asyncio
    async def test_posts_user_id_to_rpc(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["apikey"] = request.headers["apikey"]
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, json={"has_license": True, "is_valid": True})

        validator = make_validator(handler)
        result = await validator.validate("u1")
        await validator.close()

        assert seen["url"] == "https://project.supabase.co/rest/v1/rpc/get_user_license_status"
        assert seen["body"] == {"p_user_id": "u1"}
        assert seen["apikey"] == "anon-key"
        assert seen["auth"] == "Bearer anon-key"
        assert result.has_license and result.is_valid

    @pytest.mark.asyncio
    async def test_single_row_array_is_unwrapped(self) -> None:
        row = {"has_license": True, "requires_renewal": True}
        validator = make_validator(lambda request: httpx.Response(200, json=[row]))
        result = await validator.validate("u1")
        assert result.requires_renewal

    @pytest.mark.asyncio
    async def test_null_response_means_no_license(self) -> None:
        validator = make_validator(lambda request: httpx.Response(200, content=b"null"))
        result = await validator.validate("u1")
        assert not result.has_license
        assert result.message == "No license found"

    @pytest.mark.asyncio
    async def test_server_error_is_wrapped(self) -> None:
        validator = make_validator(lambda request: httpx.Response(500, json={"message": "boom"}))
        with pytest.raises(LicenseValidationError, match="failed"):
            await validator.validate("u1")

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        validator = make_validator(handler)
        with pytest.raises(LicenseValidationError) as exc_info:
            await validator.validate("u1")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_invalid_json_is_wrapped(self) -> None:
        validator = make_validator(lambda request: httpx.Response(200, content=b"not json"))
        with pytest.raises(LicenseValidationError, match="invalid JSON"):
            await validator.validate("u1")

    @pytest.mark.asyncio
    async def test_unexpected_shape_is_rejected(self) -> None:
        validator = make_validator(lambda request: httpx.Response(200, json="yes"))
        with pytest.raises(LicenseValidationError, match="Unexpected response format"):
            await validator.validate("u1")


class TestAvailability:
    """Tests for SupabaseLicenseValidator.is_available()."""

    @pytest.mark.asyncio
    async def test_available_when_endpoint_answers(self) -> None:
        validator = make_validator(lambda request: httpx.Response(200, json={}))
        assert await validator.is_available()

    @pytest.mark.asyncio
    async def test_unavailable_on_server_error(self) -> None:
        validator = make_validator(lambda request: httpx.Response(503))
        assert not await validator.is_available()

    @pytest.mark.asyncio
    async def test_unavailable_on_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        assert not await make_validator(handler).is_available()
