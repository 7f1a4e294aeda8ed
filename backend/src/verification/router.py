"""Club Verification API Router - admin overrides of a club's verification."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from auth.dependencies import get_current_principal
from auth.principal import Principal
from .schemas import ClubVerificationResponse, SuspensionRequest, TierRequest
from .service import VerificationService

router = APIRouter(prefix="/clubs/{club_id}/verification", tags=["Verification"])


def get_verification_service(request: Request) -> VerificationService:
    """Dependency: the service built in the app lifespan."""
    return request.app.state.verification_service


@router.get("", response_model=ClubVerificationResponse, summary="Get verification state")
def get_verification(
    club_id: UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[VerificationService, Depends(get_verification_service)],
):
    return ClubVerificationResponse.model_validate(service.get_club(principal, club_id))


@router.post("/recompute", response_model=ClubVerificationResponse, summary="Recompute status")
def recompute(
    club_id: UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[VerificationService, Depends(get_verification_service)],
):
    """Admin only. Re-derives the status from the club's current documents."""
    return ClubVerificationResponse.model_validate(service.recompute(principal, club_id))


@router.post("/suspend", response_model=ClubVerificationResponse, summary="Suspend a club")
def suspend(
    club_id: UUID,
    body: SuspensionRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[VerificationService, Depends(get_verification_service)],
):
    return ClubVerificationResponse.model_validate(
        service.suspend(principal, club_id, notes=body.notes)
    )


@router.post(
    "/lift-suspension",
    response_model=ClubVerificationResponse,
    summary="Lift a club's suspension",
)
def lift_suspension(
    club_id: UUID,
    body: SuspensionRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[VerificationService, Depends(get_verification_service)],
):
    return ClubVerificationResponse.model_validate(
        service.lift_suspension(principal, club_id, notes=body.notes)
    )


@router.post("/tier", response_model=ClubVerificationResponse, summary="Set safeguarding tier")
def set_tier(
    club_id: UUID,
    body: TierRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[VerificationService, Depends(get_verification_service)],
):
    """Admin only. ENHANCED/PREMIUM require approval under that tier (409 otherwise)."""
    club = service.set_tier(principal, club_id, body.tier, body.tier_expiry_date)
    return ClubVerificationResponse.model_validate(club)
