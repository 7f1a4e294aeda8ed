"""Document API Router - upload, list, download, decide and withdraw evidence.

The router is a thin layer: every rule (access, validation, state machine)
lives in DocumentLifecycleService. Typed errors are mapped to HTTP status
codes by the exception handlers registered in main.py.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status

from auth.dependencies import get_current_principal
from auth.principal import Principal
from .schemas import (
    DecisionRequest,
    DocumentListResponse,
    DocumentResponse,
    DownloadUrlResponse,
)
from .service import DocumentLifecycleService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Documents"])


def get_document_service(request: Request) -> DocumentLifecycleService:
    """Dependency: the service built in the app lifespan."""
    return request.app.state.document_service


@router.post(
    "/clubs/{club_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a compliance document",
)
async def upload_document(
    club_id: UUID,
    file: Annotated[UploadFile, File(...)],
    document_type: Annotated[str, Form(...)],
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[DocumentLifecycleService, Depends(get_document_service)],
    expiry_date: Annotated[Optional[datetime], Form()] = None,
):
    """Upload one evidence file for a club (multipart/form-data).

    Validation:
    - Content type must be on the allow-list and match the file extension
    - Size up to MAX_FILE_SIZE_BYTES
    - expiry_date, if given, must be timezone-aware and in the future

    Returns 201 with the PENDING document.
    """
    # Read one byte past the limit so oversized files fail validation
    data = await file.read(service.config.max_file_size_bytes + 1)
    document = await service.ingest(
        principal,
        club_id,
        document_type,
        data,
        file.content_type or "",
        file.filename or "",
        expiry_date=expiry_date,
    )
    return DocumentResponse.model_validate(document)


@router.get(
    "/clubs/{club_id}/documents",
    response_model=DocumentListResponse,
    summary="List a club's documents",
)
def list_documents(
    club_id: UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[DocumentLifecycleService, Depends(get_document_service)],
):
    documents = service.list_documents(principal, club_id)
    return DocumentListResponse(
        items=[DocumentResponse.model_validate(document) for document in documents],
        total=len(documents),
    )


@router.get(
    "/documents/{document_id}/download-url",
    response_model=DownloadUrlResponse,
    summary="Get a download URL for a document",
)
async def get_download_url(
    document_id: UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[DocumentLifecycleService, Depends(get_document_service)],
    expires_in: Annotated[Optional[int], Query(ge=60, le=7 * 24 * 3600)] = None,
):
    """Signed URL valid for expires_in seconds (default 15 minutes)."""
    expires_in_seconds = expires_in or service.signed_url_expiry_seconds
    url = await service.get_download_url(principal, document_id, expires_in_seconds)
    return DownloadUrlResponse(url=url, expires_in_seconds=expires_in_seconds)


@router.post(
    "/documents/{document_id}/decision",
    response_model=DocumentResponse,
    summary="Approve or reject a pending document",
)
def decide_document(
    document_id: UUID,
    body: DecisionRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[DocumentLifecycleService, Depends(get_document_service)],
):
    """Admin only. Returns 409 if the document is no longer PENDING."""
    document = service.decide(principal, document_id, body.outcome, notes=body.notes)
    return DocumentResponse.model_validate(document)


@router.delete(
    "/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Withdraw a document",
)
async def withdraw_document(
    document_id: UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[DocumentLifecycleService, Depends(get_document_service)],
):
    """Delete the document record and its stored bytes (owner or admin)."""
    await service.withdraw(principal, document_id)
