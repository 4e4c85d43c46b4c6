"""Tests for LicenseService."""

import asyncio
from datetime import datetime, timezone

import pytest
from conftest import ACTIVE, INACTIVE

from license_gate.dto import LicenseValidationResult
from license_gate.entities import LicenseKind
from license_gate.repositories import LicenseValidationError
from license_gate.services import LicenseService


class TestResolve:
    """Tests for LicenseService.resolve()."""

    @pytest.mark.asyncio
    async def test_active_state_is_cached(self, make_cache, validator) -> None:
        validator.results["u1"] = ACTIVE
        async with make_cache("tab-a") as cache:
            service = LicenseService(validator, cache, ttl_ms=60_000)

            first = await service.resolve("u1")
            second = await service.resolve("u1")

            assert first.kind is LicenseKind.ACTIVE
            assert second == first
            assert validator.calls == ["u1"]
            assert cache.get("license-state:u1")["kind"] == "active"

    @pytest.mark.asyncio
    async def test_state_is_shared_with_other_tabs(self, make_cache, validator) -> None:
        validator.results["u1"] = INACTIVE
        async with make_cache("tab-a") as tab_a, make_cache("tab-b") as tab_b:
            service_a = LicenseService(validator, tab_a)
            service_b = LicenseService(validator, tab_b)

            await service_a.resolve("u1")
            state = await service_b.resolve("u1")

            assert state.kind is LicenseKind.INACTIVE
            assert validator.calls == ["u1"]

    @pytest.mark.asyncio
    async def test_cached_state_expires_with_ttl(self, make_cache, validator, clock) -> None:
        validator.results["u1"] = ACTIVE
        async with make_cache("tab-a") as cache:
            service = LicenseService(validator, cache, ttl_ms=1000)
            await service.resolve("u1")

            clock.advance(1001)
            assert service.cached_state("u1") is None
            await service.resolve("u1")
            assert validator.calls == ["u1", "u1"]

    @pytest.mark.asyncio
    async def test_validator_failure_is_error_and_not_cached(self, make_cache, validator) -> None:
        validator.results["u1"] = LicenseValidationError("RPC down")
        async with make_cache("tab-a") as cache:
            service = LicenseService(validator, cache)

            state = await service.resolve("u1")
            assert state.kind is LicenseKind.ERROR
            assert state.detail == "RPC down"
            assert service.cached_state("u1") is None

            await service.resolve("u1")
            assert validator.calls == ["u1", "u1"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error(self, make_cache, validator) -> None:
        validator.results["u1"] = KeyError("has_license")
        async with make_cache("tab-a") as cache:
            service = LicenseService(validator, cache)
            state = await service.resolve("u1")
            assert state.kind is LicenseKind.ERROR

    @pytest.mark.asyncio
    async def test_force_refresh_skips_cache(self, make_cache, validator) -> None:
        validator.results["u1"] = ACTIVE
        async with make_cache("tab-a") as cache:
            service = LicenseService(validator, cache)
            await service.resolve("u1")

            validator.results["u1"] = INACTIVE
            state = await service.resolve("u1", force_refresh=True)

            assert state.kind is LicenseKind.INACTIVE
            assert service.cached_state("u1").kind is LicenseKind.INACTIVE

    @pytest.mark.asyncio
    async def test_past_expiry_resolves_expired(self, make_cache, validator) -> None:
        validator.results["u1"] = LicenseValidationResult(
            has_license=True,
            is_valid=True,
            expires_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
        )
        async with make_cache("tab-a") as cache:
            service = LicenseService(validator, cache)
            state = await service.resolve("u1")
            assert state.kind is LicenseKind.EXPIRED

    @pytest.mark.asyncio
    async def test_unreadable_cached_value_is_a_miss(self, make_cache, validator) -> None:
        validator.results["u1"] = ACTIVE
        async with make_cache("tab-a") as cache:
            service = LicenseService(validator, cache)
            cache.set("license-state:u1", {"kind": "bogus"})

            assert service.cached_state("u1") is None
            state = await service.resolve("u1")
            assert state.kind is LicenseKind.ACTIVE


class TestConcurrency:
    """Tests for in-flight sharing and stale results."""

    @pytest.mark.asyncio
    async def test_concurrent_resolves_share_one_call(self, make_cache, validator) -> None:
        validator.results["u1"] = ACTIVE
        validator.gate = asyncio.Event()
        async with make_cache("tab-a") as cache:
            service = LicenseService(validator, cache)

            first = asyncio.create_task(service.resolve("u1"))
            second = asyncio.create_task(service.resolve("u1"))
            await asyncio.sleep(0)
            validator.gate.set()

            results = await asyncio.gather(first, second)

            assert [state.kind for state in results] == [LicenseKind.ACTIVE] * 2
            assert validator.calls == ["u1"]

    @pytest.mark.asyncio
    async def test_invalidation_during_fetch_discards_result(self, make_cache, validator) -> None:
        validator.results["u1"] = ACTIVE
        validator.gate = asyncio.Event()
        async with make_cache("tab-a") as cache:
            service = LicenseService(validator, cache)

            pending = asyncio.create_task(service.resolve("u1"))
            await asyncio.sleep(0)
            service.invalidate("u1")
            validator.gate.set()

            state = await pending
            assert state.kind is LicenseKind.ACTIVE
            assert service.cached_state("u1") is None

    @pytest.mark.asyncio
    async def test_remote_invalidation_during_fetch_discards_result(
        self, make_cache, validator
    ) -> None:
        validator.results["u1"] = ACTIVE
        validator.gate = asyncio.Event()
        async with make_cache("tab-a") as tab_a, make_cache("tab-b") as tab_b:
            service = LicenseService(validator, tab_a)

            pending = asyncio.create_task(service.resolve("u1"))
            await asyncio.sleep(0)
            tab_b.invalidate(LicenseService.cache_key("u1"))
            validator.gate.set()

            await pending
            assert service.cached_state("u1") is None
            assert tab_b.get("license-state:u1") is None

    @pytest.mark.asyncio
    async def test_clear_during_fetch_discards_result(
        self, make_cache, validator, clock
    ) -> None:
        validator.results["u1"] = ACTIVE
        validator.gate = asyncio.Event()
        async with make_cache("tab-a") as tab_a, make_cache("tab-b") as tab_b:
            service = LicenseService(validator, tab_a)

            pending = asyncio.create_task(service.resolve("u1"))
            await asyncio.sleep(0)
            clock.advance(1)
            assert tab_b.clear() == 0
            validator.gate.set()

            state = await pending
            assert state.kind is LicenseKind.ACTIVE
            assert service.generation("u1") == 1
            assert service.cached_state("u1") is None
            assert tab_b.get("license-state:u1") is None

    @pytest.mark.asyncio
    async def test_invalidate_bumps_generation(self, make_cache, validator) -> None:
        async with make_cache("tab-a") as cache:
            service = LicenseService(validator, cache)
            assert service.generation("u1") == 0

            service.invalidate("u1")
            assert service.generation("u1") == 1

            service.close()
            service.invalidate("u1")
            assert service.generation("u1") == 1
