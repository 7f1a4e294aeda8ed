"""Verification State Machine - club status recomputation and admin overrides.

Every recomputation runs inside the caller's transaction while the club row is
locked (SELECT ... FOR UPDATE), and re-reads all of the club's documents in
that same transaction. A document decision and the club status it produces
therefore commit together, and two concurrent decisions for sibling documents
are serialized on the club row.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from audit.service import log_audit_event
from auth.policy import Action, Resource, ResourceKind, enforce
from auth.principal import Principal
from config import ComplianceConfig
from database import Database
from domain.errors import DocumentValidationError, InvalidTransitionError, NotFoundError
from domain.notifications import (
    NotificationKind,
    NotificationSenderPort,
    PendingNotification,
    dispatch_notifications,
)
from domain.verification.policy import VerificationOutcome, derive_status, evaluate_club
from domain.verification.verification_status import SafeguardingTier, VerificationStatus
from models.base import utcnow
from models.club_profile import ClubProfile
from models.document import ComplianceDocument

logger = logging.getLogger(__name__)


@dataclass
class StatusChange:
    """Club state before and after a recomputation."""
    club_id: UUID
    owner_user_id: str
    club_name: str
    contact_email: Optional[str]
    previous_status: VerificationStatus
    new_status: VerificationStatus
    previous_tier: SafeguardingTier
    new_tier: SafeguardingTier

    @property
    def status_changed(self) -> bool:
        return self.previous_status != self.new_status

    def notification(self) -> Optional[PendingNotification]:
        if not self.status_changed:
            return None
        return PendingNotification(
            recipient_id=self.owner_user_id,
            kind=NotificationKind.VERIFICATION_STATUS_CHANGED,
            payload={
                "club_id": str(self.club_id),
                "club_name": self.club_name,
                "contact_email": self.contact_email,
                "previous_status": self.previous_status.value,
                "new_status": self.new_status.value,
                "tier": self.new_tier.value,
            },
        )


def status_notifications(change: Optional[StatusChange]) -> List[PendingNotification]:
    """Notifications owed for a recomputation result (none if unchanged)."""
    notification = change.notification() if change else None
    return [notification] if notification else []


def lock_club(session: Session, club_id: UUID) -> Optional[ClubProfile]:
    """Load a club and take its row lock for the rest of the transaction.

    SQLite ignores FOR UPDATE and pysqlite only opens a transaction at the
    first write, so on SQLite a no-op UPDATE of the club row takes the
    database write lock before the row is read.
    """
    if session.get_bind().dialect.name == "sqlite":
        session.execute(
            update(ClubProfile)
            .where(ClubProfile.id == club_id)
            .values(updated_at=ClubProfile.updated_at)
            .execution_options(synchronize_session=False)
        )
    stmt = (
        select(ClubProfile)
        .where(ClubProfile.id == club_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return session.execute(stmt).scalar_one_or_none()


def load_club_documents(session: Session, club_id: UUID) -> List[ComplianceDocument]:
    stmt = (
        select(ComplianceDocument)
        .where(ComplianceDocument.club_id == club_id)
        .execution_options(populate_existing=True)
    )
    return list(session.execute(stmt).scalars().all())


def _apply_outcome(
    session: Session,
    club: ClubProfile,
    outcome: VerificationOutcome,
    now: datetime,
    actor_id: Optional[str],
) -> Optional[StatusChange]:
    if (
        club.verification_status == outcome.status
        and club.safeguarding_tier == outcome.tier
        and club.tier_expiry_date == outcome.tier_expiry_date
    ):
        return None

    change = StatusChange(
        club_id=club.id,
        owner_user_id=club.owner_user_id,
        club_name=club.name,
        contact_email=club.contact_email,
        previous_status=club.verification_status,
        new_status=outcome.status,
        previous_tier=club.safeguarding_tier,
        new_tier=outcome.tier,
    )

    club.verification_status = outcome.status
    club.safeguarding_tier = outcome.tier
    club.tier_expiry_date = outcome.tier_expiry_date
    club.updated_at = now
    if change.status_changed:
        club.status_changed_at = now
    session.flush()

    log_audit_event(
        db=session,
        action="VERIFICATION_STATUS_CHANGED",
        club_id=club.id,
        actor_id=actor_id,
        entity_type="club_profile",
        entity_id=club.id,
        metadata={
            "from": change.previous_status.value,
            "to": change.new_status.value,
            "tier_from": change.previous_tier.value,
            "tier_to": change.new_tier.value,
        },
    )

    logger.info(
        f"Club verification changed: club={club.id}, "
        f"{change.previous_status.value} -> {change.new_status.value}, "
        f"tier {change.previous_tier.value} -> {change.new_tier.value}",
        extra={"club_id": str(club.id)},
    )
    return change


def recompute_club_status(
    session: Session,
    club: ClubProfile,
    config: ComplianceConfig,
    now: datetime,
    actor_id: Optional[str] = None,
    current_status: Optional[VerificationStatus] = None,
) -> Optional[StatusChange]:
    """Derive and persist the club's status and tier from its documents.

    The caller must hold the club lock (see lock_club) and owns the
    transaction.

    Args:
        session: Session of the triggering transaction
        club: Locked club row
        config: Compliance rules (mandatory documents per tier)
        now: Evaluation instant
        actor_id: Principal identity for the audit row (None for the scheduler)
        current_status: Status to evaluate from instead of the stored one
            (SUSPENDED to suspend, any other value to lift a suspension)

    Returns:
        StatusChange if anything changed, otherwise None
    """
    documents = load_club_documents(session, club.id)
    outcome = evaluate_club(
        current_status=current_status or club.verification_status,
        current_tier=club.safeguarding_tier,
        tier_expiry_date=club.tier_expiry_date,
        documents=[document.snapshot() for document in documents],
        mandatory_docs=config.mandatory_docs,
        now=now,
    )
    return _apply_outcome(session, club, outcome, now, actor_id)


class VerificationService:
    """Club registration and admin verification management.

    Every admin operation checks `decide-verification` on the club profile and
    ends with a recomputation, so the stored status always matches the rules.
    """

    def __init__(
        self,
        database: Database,
        config: ComplianceConfig,
        notifier: Optional[NotificationSenderPort] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.database = database
        self.config = config
        self.notifier = notifier
        self.clock = clock

    def register_club(
        self,
        owner_user_id: str,
        name: str,
        contact_email: Optional[str] = None,
    ) -> ClubProfile:
        """Create a PENDING club on the STANDARD tier."""
        if not name or not name.strip():
            raise DocumentValidationError("Club name cannot be empty", field="name")

        now = self.clock()
        with self.database.session() as session:
            club = ClubProfile(
                owner_user_id=owner_user_id,
                name=name.strip(),
                contact_email=contact_email,
                verification_status=VerificationStatus.PENDING,
                safeguarding_tier=SafeguardingTier.STANDARD,
                created_at=now,
                updated_at=now,
            )
            session.add(club)
            session.flush()
            log_audit_event(
                db=session,
                action="CLUB_REGISTERED",
                club_id=club.id,
                actor_id=owner_user_id,
                entity_type="club_profile",
                entity_id=club.id,
            )

        logger.info(f"Club registered: club={club.id}", extra={"club_id": str(club.id)})
        return club

    def get_club(self, principal: Principal, club_id: UUID) -> ClubProfile:
        with self.database.session() as session:
            club = session.get(ClubProfile, club_id)
            self._check(principal, Action.VIEW, club, club_id)
            return club

    def _check(
        self,
        principal: Principal,
        action: Action,
        club: Optional[ClubProfile],
        club_id: UUID,
    ) -> None:
        if club is None:
            # Non-admins are denied before they can learn the club is missing
            enforce(principal, action, Resource.missing(ResourceKind.CLUB_PROFILE))
            raise NotFoundError("Club", club_id)
        enforce(principal, action, Resource.of(ResourceKind.CLUB_PROFILE, club))

    def _run_admin_override(
        self,
        principal: Principal,
        club_id: UUID,
        mutate: Callable[[Session, ClubProfile, datetime], Optional[StatusChange]],
    ) -> ClubProfile:
        now = self.clock()
        with self.database.session() as session:
            club = lock_club(session, club_id)
            self._check(principal, Action.DECIDE_VERIFICATION, club, club_id)
            change = mutate(session, club, now)

        dispatch_notifications(self.notifier, status_notifications(change))
        return club

    def recompute(self, principal: Principal, club_id: UUID) -> ClubProfile:
        """Recompute the club's status from its current documents."""
        def _mutate(session: Session, club: ClubProfile, now: datetime) -> Optional[StatusChange]:
            return recompute_club_status(session, club, self.config, now, principal.identity)

        return self._run_admin_override(principal, club_id, _mutate)

    def suspend(self, principal: Principal, club_id: UUID, notes: Optional[str] = None) -> ClubProfile:
        """Suspend a club. The suspension overrides every derived status."""
        def _mutate(session: Session, club: ClubProfile, now: datetime) -> Optional[StatusChange]:
            if club.verification_status == VerificationStatus.SUSPENDED:
                raise InvalidTransitionError(
                    "Club is already suspended",
                    current_status=club.verification_status.value,
                )
            if notes is not None:
                club.admin_notes = notes
            change = recompute_club_status(
                session, club, self.config, now, principal.identity,
                current_status=VerificationStatus.SUSPENDED,
            )
            log_audit_event(
                db=session,
                action="CLUB_SUSPENDED",
                club_id=club.id,
                actor_id=principal.identity,
                entity_type="club_profile",
                entity_id=club.id,
                metadata={"notes": notes},
            )
            return change

        return self._run_admin_override(principal, club_id, _mutate)

    def lift_suspension(
        self,
        principal: Principal,
        club_id: UUID,
        notes: Optional[str] = None,
    ) -> ClubProfile:
        """Lift a suspension; the club returns to its derived status."""
        def _mutate(session: Session, club: ClubProfile, now: datetime) -> Optional[StatusChange]:
            if club.verification_status != VerificationStatus.SUSPENDED:
                raise InvalidTransitionError(
                    "Club is not suspended",
                    current_status=club.verification_status.value,
                )
            if notes is not None:
                club.admin_notes = notes
            change = recompute_club_status(
                session, club, self.config, now, principal.identity,
                current_status=VerificationStatus.PENDING,
            )
            log_audit_event(
                db=session,
                action="CLUB_SUSPENSION_LIFTED",
                club_id=club.id,
                actor_id=principal.identity,
                entity_type="club_profile",
                entity_id=club.id,
                metadata={"notes": notes},
            )
            return change

        return self._run_admin_override(principal, club_id, _mutate)

    def set_tier(
        self,
        principal: Principal,
        club_id: UUID,
        tier: SafeguardingTier,
        tier_expiry_date: Optional[datetime] = None,
    ) -> ClubProfile:
        """Set the club's safeguarding tier.

        ENHANCED and PREMIUM require the club to be approved under that tier's
        mandatory documents; otherwise InvalidTransitionError is raised.
        """
        tier = SafeguardingTier(tier)

        def _mutate(session: Session, club: ClubProfile, now: datetime) -> Optional[StatusChange]:
            if tier_expiry_date is not None:
                if tier_expiry_date.tzinfo is None:
                    raise DocumentValidationError(
                        "Tier expiry date must include a timezone", field="tier_expiry_date"
                    )
                if tier_expiry_date <= now:
                    raise DocumentValidationError(
                        "Tier expiry date must be in the future", field="tier_expiry_date"
                    )

            if tier != SafeguardingTier.STANDARD:
                if club.verification_status == VerificationStatus.SUSPENDED:
                    raise InvalidTransitionError(
                        f"Cannot set tier {tier.value} on a suspended club",
                        current_status=club.verification_status.value,
                    )
                snapshots = [doc.snapshot() for doc in load_club_documents(session, club.id)]
                derived = derive_status(snapshots, self.config.mandatory_for(tier), now)
                if derived != VerificationStatus.APPROVED:
                    raise InvalidTransitionError(
                        f"Club does not meet the {tier.value} document requirements",
                        current_status=club.verification_status.value,
                    )

            previous_tier = club.safeguarding_tier
            club.safeguarding_tier = tier
            club.tier_expiry_date = tier_expiry_date
            club.updated_at = now
            session.flush()

            log_audit_event(
                db=session,
                action="CLUB_TIER_CHANGED",
                club_id=club.id,
                actor_id=principal.identity,
                entity_type="club_profile",
                entity_id=club.id,
                metadata={
                    "from": previous_tier.value,
                    "to": tier.value,
                    "tier_expiry_date": tier_expiry_date.isoformat() if tier_expiry_date else None,
                },
            )
            logger.info(
                f"Club tier changed: club={club.id}, {previous_tier.value} -> {tier.value}",
                extra={"club_id": str(club.id)},
            )
            return recompute_club_status(session, club, self.config, now, principal.identity)

        return self._run_admin_override(principal, club_id, _mutate)
