import json
from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional


# Record write schemas
#
# Every field is optional at the schema level: the record store checks
# presence itself so the error can name the missing field.
class RecordBase(BaseModel):
    """Fields shared by every record write."""
    name: Optional[str] = Field(None, max_length=50, description="Display name")
    preset_number: Optional[int] = Field(None, ge=0, description="User-local save slot")
    user_id: Optional[int] = Field(None, ge=0, description="Owner; defaults to the session user")

    @field_validator('name', mode='before')
    @classmethod
    def strip_name(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class FreqArrayCreate(RecordBase):
    """Schema for saving a frequency array into a preset slot."""
    base_freq: Optional[float] = Field(None, description="Base frequency in Hz")
    multiplier: Optional[float] = Field(None, description="Frequency multiplier")
    params_json: Optional[Any] = Field(None, description="Arbitrary synth parameters")


class IndexArrayCreate(RecordBase):
    """Schema for storing an index array."""
    index_array: Optional[str] = Field(None, max_length=25, description="Serialized index sequence")

    @field_validator('index_array', mode='before')
    @classmethod
    def serialize_sequence(cls, v):
        """Accept a list of indices and keep its compact JSON form."""
        if isinstance(v, (list, tuple)):
            return json.dumps(list(v), separators=(',', ':'))
        if isinstance(v, str):
            return v.strip()
        return v


class PresetCreate(RecordBase):
    """Schema for saving a preset into a slot."""
    name: Optional[str] = Field(None, max_length=25, description="Display name")
    params_json: Optional[Any] = Field(None, description="Arbitrary synth parameters")


# Login status
class Tier(str, Enum):
    """Access tier reported to the front end."""
    ALL_ACCESS = "all-access"
    TIER_3_OR_HIGHER = "tier-3-or-higher"
    TIER_BELOW_3 = "tier-below-3"
    NONE = "none"


class LoginStatus(BaseModel):
    """Schema for the login-status response."""
    logged_in: bool = Field(False, description="Whether a user session is active")
    is_admin: bool = Field(False, description="Whether the user is an administrator")
    patreon_logged_in: bool = Field(False, description="Whether a Patreon membership is linked")
    tier: Tier = Field(Tier.NONE, description="Resolved access tier")
    patreon_tier_cents: Optional[int] = Field(None, description="Pledge amount in cents")
    patreon_user_id: Optional[str] = Field(None, description="Patreon account identifier")
    patreon_email: Optional[str] = Field(None, description="Patreon contact address")
    user_id: int = Field(0, description="Internal user identifier, 0 when anonymous")


# Errors
class ErrorData(BaseModel):
    status: int
    errors: Optional[List[Dict[str, Any]]] = None


class ErrorResponse(BaseModel):
    """Schema for error responses."""
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    data: ErrorData
