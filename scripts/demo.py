#!/usr/bin/env python3
"""
Demo script for the license gate.

This script simulates two browser tabs sharing one cache over an in-process
hub: a license change in one tab redirects the other.
"""

import asyncio

from license_gate.dto import LicenseValidationResult
from license_gate.entities import SessionContext
from license_gate.repositories import (
    InMemoryHistory,
    InMemoryVersionMarkerStore,
    LocalBroadcastHub,
)
from license_gate.services import (
    AccessEvaluator,
    LicenseService,
    MultiTabCache,
    NavigationInterceptor,
)

USER_ID = "demo-user"


class DemoValidator:
    """Validator whose answer can be switched at runtime."""

    def __init__(self) -> None:
        self.result = LicenseValidationResult(has_license=True, is_valid=True, license_code="DEMO")
        self.calls = 0

    async def validate(self, user_id: str) -> LicenseValidationResult:
        self.calls += 1
        return self.result

    async def is_available(self) -> bool:
        return True


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def build_tab(cache: MultiTabCache, validator: DemoValidator) -> NavigationInterceptor:
    session = SessionContext(user_id=USER_ID, email_confirmed=True)
    interceptor = NavigationInterceptor(
        AccessEvaluator(LicenseService(validator, cache)),
        InMemoryHistory("/"),
        lambda: session,
        cache=cache,
    )
    interceptor.attach()
    return interceptor


async def demo_shared_cache(
    tab_a: NavigationInterceptor,
    tab_b: NavigationInterceptor,
    validator: DemoValidator,
) -> None:
    """Both tabs open a licensed page; only one validator call is made."""
    print_section("Shared License Cache")

    visits = (
        ("tab A", tab_a, "/dashboard"),
        ("tab B", tab_b, "/service-orders/17"),
    )
    for name, tab, path in visits:
        result = await tab.navigate(path)
        print(f"  {name}: {path} -> {result.committed}")

    print(f"  Validator calls so far: {validator.calls}")


async def demo_cross_tab_redirect(
    tab_a: NavigationInterceptor,
    tab_b: NavigationInterceptor,
    other_service: LicenseService,
    validator: DemoValidator,
) -> None:
    """Tab A learns the license expired; tab B is redirected."""
    print_section("Cross-Tab Revalidation")

    validator.result = LicenseValidationResult(has_license=True, requires_renewal=True)
    other_service.invalidate(USER_ID)
    print("  tab A: license invalidated, validator now reports renewal required")

    await tab_a.drain()
    await tab_b.drain()
    print(f"  tab A is now on {tab_a.history.current_path}")
    print(f"  tab B is now on {tab_b.history.current_path}")
    print(f"  Validator calls so far: {validator.calls}")


async def main() -> None:
    """Run all demos."""
    print("\n🚀 License Gate Demo")
    print("=" * 70)
    print("Two simulated tabs sharing a cache over an in-process broadcast hub")

    hub = LocalBroadcastHub()
    markers = InMemoryVersionMarkerStore()
    validator = DemoValidator()

    async with MultiTabCache(hub.channel(), markers) as cache_a, \
            MultiTabCache(hub.channel(), markers) as cache_b:
        tab_a = build_tab(cache_a, validator)
        tab_b = build_tab(cache_b, validator)

        await demo_shared_cache(tab_a, tab_b, validator)
        await demo_cross_tab_redirect(
            tab_a,
            tab_b,
            LicenseService(validator, cache_a),
            validator,
        )

    print("\n" + "=" * 70)
    print("✅ Demo completed successfully!")
    print("=" * 70)


if __name__ == "__main__":
    asyncio.run(main())
