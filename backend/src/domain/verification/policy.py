"""Derivation of a club's verification status from its document set.

The functions here are pure: given the same document snapshot, tier and
configuration they always return the same result, regardless of the order
in which documents are supplied.

Rules:
- APPROVED iff every mandatory type has at least one APPROVED, non-expired document
- REJECTED iff some mandatory type has no currently approved document and its
  most recent document is REJECTED
- PENDING iff the club has no documents at all
- IN_REVIEW otherwise
- SUSPENDED is never derived; an existing suspension is preserved
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from domain.documents.document_status import DocumentStatus
from domain.documents.document_type import DocumentType
from .verification_status import SafeguardingTier, VerificationStatus


@dataclass(frozen=True)
class DocumentSnapshot:
    """Read-only view of one document used for recomputation."""
    id: str
    document_type: DocumentType
    status: DocumentStatus
    uploaded_at: datetime
    expiry_date: Optional[datetime] = None


@dataclass(frozen=True)
class VerificationOutcome:
    """Club state produced by recomputation."""
    status: VerificationStatus
    tier: SafeguardingTier
    tier_expiry_date: Optional[datetime]


def is_currently_approved(document: DocumentSnapshot, now: datetime) -> bool:
    """APPROVED and not past its expiry date."""
    if document.status != DocumentStatus.APPROVED:
        return False
    return document.expiry_date is None or document.expiry_date > now


def _most_recent(documents: Sequence[DocumentSnapshot]) -> DocumentSnapshot:
    # id breaks ties so the result never depends on input order
    return max(documents, key=lambda doc: (doc.uploaded_at, doc.id))


def derive_status(
    documents: Iterable[DocumentSnapshot],
    mandatory_types: Iterable[DocumentType],
    now: datetime,
) -> VerificationStatus:
    """Derive the verification status for a document set.

    Args:
        documents: All documents of the club (any status)
        mandatory_types: Types required for the club's tier
        now: Evaluation instant (timezone-aware)

    Returns:
        VerificationStatus: APPROVED, REJECTED, IN_REVIEW or PENDING
    """
    documents = list(documents)
    if not documents:
        return VerificationStatus.PENDING

    by_type: Dict[DocumentType, List[DocumentSnapshot]] = {}
    for document in documents:
        by_type.setdefault(document.document_type, []).append(document)

    required = set(mandatory_types)
    satisfied = {
        doc_type for doc_type in required
        if any(is_currently_approved(doc, now) for doc in by_type.get(doc_type, []))
    }
    if satisfied == required:
        return VerificationStatus.APPROVED

    for doc_type in required - satisfied:
        candidates = by_type.get(doc_type)
        if candidates and _most_recent(candidates).status == DocumentStatus.REJECTED:
            return VerificationStatus.REJECTED

    return VerificationStatus.IN_REVIEW


def evaluate_club(
    *,
    current_status: VerificationStatus,
    current_tier: SafeguardingTier,
    tier_expiry_date: Optional[datetime],
    documents: Iterable[DocumentSnapshot],
    mandatory_docs: Dict[SafeguardingTier, List[DocumentType]],
    now: datetime,
) -> VerificationOutcome:
    """Compute the club's next status and tier.

    A suspended club stays suspended. The tier is clamped to STANDARD whenever
    the club is not APPROVED, and the status is then derived again under the
    STANDARD document set so a repeated recomputation returns the same result.
    The tier expiry is cleared when the tier is clamped or the club is
    suspended or rejected.
    """
    documents = list(documents)
    suspended = current_status == VerificationStatus.SUSPENDED
    if suspended:
        status = VerificationStatus.SUSPENDED
    else:
        status = derive_status(documents, mandatory_docs.get(current_tier, []), now)

    tier = current_tier
    expiry = tier_expiry_date
    if status != VerificationStatus.APPROVED and tier != SafeguardingTier.STANDARD:
        tier = SafeguardingTier.STANDARD
        expiry = None
        if not suspended:
            status = derive_status(documents, mandatory_docs.get(tier, []), now)
    if status in (VerificationStatus.SUSPENDED, VerificationStatus.REJECTED):
        expiry = None

    return VerificationOutcome(status=status, tier=tier, tier_expiry_date=expiry)
