"""Tests for deriving LicenseState from validator results."""

from datetime import datetime, timedelta, timezone

import pytest

from license_gate.dto import LicenseValidationResult
from license_gate.entities import LicenseKind, LicenseState


@pytest.mark.parametrize(
    ("flags", "expected"),
    [
        ({"has_license": False}, LicenseKind.NOT_FOUND),
        ({"has_license": False, "requires_renewal": True}, LicenseKind.NOT_FOUND),
        ({"has_license": True, "requires_renewal": True, "is_valid": True}, LicenseKind.EXPIRED),
        ({"has_license": True, "is_valid": False}, LicenseKind.INACTIVE),
        (
            {"has_license": True, "is_valid": True, "requires_activation": True},
            LicenseKind.INACTIVE,
        ),
        ({"has_license": True, "is_valid": True}, LicenseKind.ACTIVE),
    ],
)
def test_precedence(flags, expected):
    result = LicenseValidationResult(**flags)
    assert LicenseState.from_validation(result).kind is expected


def test_missing_and_null_flags_default_to_false():
    result = LicenseValidationResult.model_validate(
        {"has_license": True, "is_valid": None, "message": None, "unknown": 1}
    )
    assert result.is_valid is False
    assert result.message == ""
    assert LicenseState.from_validation(result).kind is LicenseKind.INACTIVE


def test_details_are_carried_over():
    expires = datetime(2030, 1, 1, tzinfo=timezone.utc)
    result = LicenseValidationResult(
        has_license=True,
        is_valid=True,
        license_code="LIC-9",
        expires_at=expires,
        message="ok",
    )
    state = LicenseState.from_validation(result)
    assert state.license_code == "LIC-9"
    assert state.expires_at == expires
    assert state.detail == "ok"


def test_dict_round_trip_preserves_state():
    state = LicenseState(
        kind=LicenseKind.ACTIVE,
        expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
        license_code="LIC-9",
    )
    assert LicenseState.from_dict(state.to_dict()) == state


def test_check_expiry_downgrades_active():
    now = datetime(2025, 6, 1, tzinfo=timezone.utc)
    state = LicenseState(kind=LicenseKind.ACTIVE, expires_at=now - timedelta(seconds=1))
    assert state.check_expiry(now).kind is LicenseKind.EXPIRED


def test_check_expiry_treats_naive_as_utc():
    now = datetime(2025, 6, 1, tzinfo=timezone.utc)
    state = LicenseState(kind=LicenseKind.ACTIVE, expires_at=datetime(2025, 7, 1))
    assert state.check_expiry(now) is state


def test_check_expiry_leaves_other_kinds():
    state = LicenseState(kind=LicenseKind.INACTIVE, expires_at=datetime(2000, 1, 1))
    assert state.check_expiry() is state


def test_error_state():
    state = LicenseState.error("timeout")
    assert state.kind is LicenseKind.ERROR
    assert not state.is_active
    assert state.detail == "timeout"
