"""Shared fixtures: fake clock, fake validator and caches on an in-process hub."""

import asyncio

import pytest

from license_gate.dto import LicenseValidationResult
from license_gate.repositories import InMemoryVersionMarkerStore, LocalBroadcastHub
from license_gate.services import MultiTabCache

ACTIVE = LicenseValidationResult(has_license=True, is_valid=True, license_code="LIC-1")
INACTIVE = LicenseValidationResult(has_license=True, is_valid=False, requires_activation=True)
EXPIRED = LicenseValidationResult(has_license=True, is_valid=False, requires_renewal=True)
NOT_FOUND = LicenseValidationResult(has_license=False, message="No license found")


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, start: float = 1_700_000_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeValidator:
    """LicenseValidator returning canned results per user.

    Unknown users have no license. When ``gate`` is set, calls block until
    it is released so tests can interleave them.
    """

    def __init__(self) -> None:
        self.results: dict[str, LicenseValidationResult | Exception] = {}
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None
        self.available = True

    async def validate(self, user_id: str) -> LicenseValidationResult:
        self.calls.append(user_id)
        if self.gate is not None:
            await self.gate.wait()

        outcome = self.results.get(user_id, NOT_FOUND)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def is_available(self) -> bool:
        return self.available


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hub() -> LocalBroadcastHub:
    return LocalBroadcastHub()


@pytest.fixture
def markers() -> InMemoryVersionMarkerStore:
    return InMemoryVersionMarkerStore()


@pytest.fixture
def validator() -> FakeValidator:
    return FakeValidator()


@pytest.fixture
def make_cache(hub: LocalBroadcastHub, markers: InMemoryVersionMarkerStore, clock: FakeClock):
    """Build caches ("tabs") sharing the hub, the version marker and the clock."""

    def factory(instance_id: str, version: str = "2.0.0") -> MultiTabCache:
        return MultiTabCache(
            channel=hub.channel(),
            version_store=markers,
            version=version,
            default_ttl_ms=300_000,
            cleanup_interval_ms=600_000,
            instance_id=instance_id,
            clock=clock,
        )

    return factory
