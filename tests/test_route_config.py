"""Tests for route tables and path classification."""

import pytest

from license_gate.route_config import (
    DEFAULT_ROUTE_TABLE,
    RouteTable,
    match_route,
    normalize_path,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("/dashboard", "/dashboard"),
        ("/dashboard/", "/dashboard"),
        ("/dashboard?tab=1", "/dashboard"),
        ("/dashboard#top", "/dashboard"),
        ("dashboard", "/dashboard"),
        ("", "/"),
        ("/", "/"),
        ("/?next=/dashboard", "/"),
    ],
)
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected


def test_wildcard_matches_base_and_children():
    assert match_route("/service-orders", "/service-orders/*")
    assert match_route("/service-orders/12/edit", "/service-orders/*")
    assert not match_route("/service-orders-archive", "/service-orders/*")


def test_exact_pattern_matches_only_itself():
    assert match_route("/dashboard", "/dashboard")
    assert not match_route("/dashboard/reports", "/dashboard")


def test_public_routes():
    for path in ("/", "/auth", "/plans", "/verify-licenca", "/share/service-order/x1"):
        assert DEFAULT_ROUTE_TABLE.is_public(path), path
    assert not DEFAULT_ROUTE_TABLE.is_public("/dashboard")


def test_protected_route_requirements():
    route = DEFAULT_ROUTE_TABLE.classify("/orcamento/7/")
    assert route.path == "/orcamento/7"
    assert route.requires_auth
    assert route.requires_license
    assert route.requires_email_confirmation
    assert route.is_classified
    assert not route.is_public


def test_license_page_needs_auth_but_no_license():
    route = DEFAULT_ROUTE_TABLE.classify("/licenca")
    assert route.requires_auth
    assert route.requires_email_confirmation
    assert not route.requires_license


def test_public_wins_over_other_tables():
    table = RouteTable(
        public_routes=("/help",),
        auth_required_routes=("/help",),
        license_required_routes=("/help",),
    )
    route = table.classify("/help")
    assert route.is_public
    assert not route.requires_auth
    assert not route.requires_license


def test_longest_role_pattern_wins():
    table = RouteTable(
        role_required_routes=(
            ("/admin/*", ("admin",)),
            ("/admin/billing/*", ("billing",)),
        ),
    )
    assert table.allowed_roles("/admin/users") == ("admin",)
    assert table.allowed_roles("/admin/billing/invoices") == ("billing",)
    assert table.allowed_roles("/dashboard") == ()


def test_unknown_path_is_unclassified():
    route = DEFAULT_ROUTE_TABLE.classify("/somewhere-new")
    assert not route.is_classified
    assert not route.requires_auth
