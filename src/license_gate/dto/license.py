"""Remote license validator response."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LicenseValidationResult(BaseModel):
    """Result of the hosted ``get_user_license_status`` procedure.

    Missing booleans default to False, matching how the stored procedure
    omits flags that do not apply.
    """

    model_config = ConfigDict(extra="ignore")

    has_license: bool = Field(False, description="Whether the user has any license")
    is_valid: bool = Field(False, description="Whether the license is currently valid")
    requires_activation: bool = Field(False, description="License exists but is not activated")
    requires_renewal: bool = Field(False, description="License exists but has expired")
    expires_at: datetime | None = Field(None, description="Expiry timestamp")
    license_code: str | None = Field(None, description="License code")
    message: str = Field("", description="Human-readable status message")
    activated_at: datetime | None = Field(None, description="Activation timestamp")
    days_remaining: int | None = Field(None, description="Days until expiry")
    expired_at: datetime | None = Field(None, description="When the license expired")
    timestamp: datetime | None = Field(None, description="When the validation ran")

    @field_validator(
        "has_license", "is_valid", "requires_activation", "requires_renewal", mode="before"
    )
    @classmethod
    def _none_is_false(cls, value: object) -> object:
        return False if value is None else value

    @field_validator("message", mode="before")
    @classmethod
    def _none_is_empty(cls, value: object) -> object:
        return "" if value is None else value
