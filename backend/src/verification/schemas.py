"""Club verification API request/response schemas"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.verification.verification_status import SafeguardingTier, VerificationStatus


class ClubVerificationResponse(BaseModel):
    """Verification state of a club"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    verification_status: VerificationStatus
    safeguarding_tier: SafeguardingTier
    tier_expiry_date: Optional[datetime] = None
    status_changed_at: Optional[datetime] = None
    admin_notes: Optional[str] = None


class SuspensionRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000, description="Reason recorded on the club")


class TierRequest(BaseModel):
    tier: SafeguardingTier
    tier_expiry_date: Optional[datetime] = Field(
        None, description="When the tier lapses (timezone-aware, in the future)"
    )
