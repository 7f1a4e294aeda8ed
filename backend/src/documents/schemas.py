"""Document API request/response schemas"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.documents.document_status import DocumentStatus
from domain.documents.document_type import DocumentType


class DocumentResponse(BaseModel):
    """A compliance document (storage handle is never exposed)"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Document UUID")
    club_id: UUID = Field(..., description="Owning club")
    document_type: DocumentType
    original_filename: str
    content_type: str
    size_bytes: int
    status: DocumentStatus
    uploaded_at: datetime
    expiry_date: Optional[datetime] = None
    admin_notes: Optional[str] = None
    reviewer_id: Optional[str] = None
    reviewed_at: Optional[datetime] = None


class DocumentListResponse(BaseModel):
    items: List[DocumentResponse]
    total: int


class DecisionRequest(BaseModel):
    """Admin decision on a PENDING document"""
    outcome: str = Field(..., description="APPROVED or REJECTED")
    notes: Optional[str] = Field(None, max_length=2000, description="Reviewer notes")


class DownloadUrlResponse(BaseModel):
    url: str = Field(..., description="Signed URL (remote storage) or stable path (local storage)")
    expires_in_seconds: int
