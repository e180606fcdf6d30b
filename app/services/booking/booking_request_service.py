# app/services/booking/booking_request_service.py
"""Queries and status actions on existing booking requests"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.config.settings import get_settings
from app.core.exceptions import (
    SchedulerError,
    BookingValidationError,
    InvalidTransitionError,
    NotFoundError,
    UpstreamUnavailableError,
)
from app.models.booking_request import (
    BookingRequest,
    BookingRequestAuditLog,
    BookingStatus,
    BookingAction,
)
from app.models.booking_settings import BookingSettings
from app.services.booking.booking_state_machine import next_status
from app.services.booking.notifications import BookingNotifier
from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class BookingRequestService:

    @staticmethod
    def list_requests(
            db: Session,
            business_id: UUID,
            status: Optional[str] = None,
            skip: int = 0,
            limit: int = 50,
    ) -> Dict[str, Any]:
        """Paginated requests, newest first"""
        try:
            query = (
                db.query(BookingRequest)
                .options(joinedload(BookingRequest.service))
                .filter(BookingRequest.business_id == business_id)
            )
            if status:
                query = query.filter(BookingRequest.status == status)

            total = query.count()
            requests = (
                query.order_by(BookingRequest.created_at.desc())
                .offset(skip)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to list booking requests for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

        return {"total": total, "skip": skip, "limit": limit, "requests": requests}

    @staticmethod
    def get_request(db: Session, business_id: UUID, request_id: UUID) -> BookingRequest:
        try:
            request = (
                db.query(BookingRequest)
                .options(joinedload(BookingRequest.service))
                .filter(
                    BookingRequest.id == request_id,
                    BookingRequest.business_id == business_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load booking request {request_id}: {e}")
            raise UpstreamUnavailableError() from e

        if not request:
            raise NotFoundError("Booking request not found")
        return request

    @staticmethod
    def _duration_minutes(db: Session, request: BookingRequest) -> int:
        if request.service and request.service.duration_minutes:
            return request.service.duration_minutes
        settings = db.get(BookingSettings, request.business_id)
        if settings:
            return settings.default_duration_minutes
        return get_settings().DEFAULT_SERVICE_DURATION_MINUTES

    @staticmethod
    def _transition(
            db: Session,
            request: BookingRequest,
            action: BookingAction,
            now: datetime,
            note: Optional[str] = None,
    ) -> None:
        """Move request to its next status and write the audit row (no commit)"""
        from_status = request.status
        to_status = next_status(from_status, action.value)

        request.status = to_status.value
        request.updated_at = now
        db.add(BookingRequestAuditLog(
            booking_request_id=request.id,
            business_id=request.business_id,
            action=action.value,
            from_status=from_status,
            to_status=to_status.value,
            note=note,
            created_at=now,
        ))

    @staticmethod
    def apply_action(
            db: Session,
            business_id: UUID,
            request_id: UUID,
            action: BookingAction,
            proposed_start: Optional[datetime] = None,
            proposed_end: Optional[datetime] = None,
            internal_notes: Optional[str] = None,
            now: Optional[datetime] = None,
            notify: bool = True,
    ) -> BookingRequest:
        now = now or utcnow()
        action = BookingAction(action)
        request = BookingRequestService.get_request(db, business_id, request_id)

        try:
            next_status(request.status, action.value)

            if action == BookingAction.APPROVE:
                start = proposed_start or request.proposed_start or request.preferred_start
                if start is None:
                    raise BookingValidationError(
                        "Approving requires a preferred time on the request or a proposed start"
                    )
                if proposed_start is not None:
                    end = proposed_end
                elif request.proposed_start is not None:
                    end = request.proposed_end
                else:
                    end = request.preferred_end
                end = end or start + timedelta(minutes=BookingRequestService._duration_minutes(db, request))
                if end <= start:
                    raise BookingValidationError("Proposed end time must be after proposed start time")

                BookingRequestService._transition(db, request, action, now)
                request.proposed_start = start
                request.proposed_end = end
                request.proposal_expires_at = None

            elif action == BookingAction.PROPOSE:
                if proposed_start is None:
                    raise BookingValidationError("Propose requires a proposed start time")
                end = proposed_end or proposed_start + timedelta(
                    minutes=BookingRequestService._duration_minutes(db, request)
                )
                if end <= proposed_start:
                    raise BookingValidationError("Proposed end time must be after proposed start time")

                BookingRequestService._transition(db, request, action, now)
                request.proposed_start = proposed_start
                request.proposed_end = end
                request.proposal_expires_at = now + timedelta(hours=get_settings().PROPOSAL_TTL_HOURS)

            elif action == BookingAction.ACCEPT:
                if request.proposal_expires_at and request.proposal_expires_at <= now:
                    raise InvalidTransitionError("The proposed time has expired")
                BookingRequestService._transition(db, request, action, now)
                request.proposal_expires_at = None

            elif action == BookingAction.EXPIRE:
                if not request.proposal_expires_at or request.proposal_expires_at > now:
                    raise InvalidTransitionError("Proposal has not lapsed")
                BookingRequestService._transition(db, request, action, now)

            elif action == BookingAction.REACTIVATE:
                BookingRequestService._transition(db, request, action, now)
                request.proposed_start = None
                request.proposed_end = None
                request.proposal_expires_at = None

            else:
                # decline, cancel, complete
                BookingRequestService._transition(db, request, action, now)

            if internal_notes is not None:
                request.internal_notes = internal_notes.strip() or None

            db.commit()
            db.refresh(request)
        except SchedulerError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to {action.value} booking request {request_id}: {e}")
            raise UpstreamUnavailableError() from e

        logger.info(f"Booking request {request_id}: {action.value} -> {request.status}")

        if notify:
            BookingNotifier.status_changed(request, action.value)

        return request

    @staticmethod
    def expire_lapsed_proposals(db: Session, now: Optional[datetime] = None) -> int:
        """Move every lapsed PROPOSED request to EXPIRED. Returns the count."""
        now = now or utcnow()
        try:
            lapsed = (
                db.query(BookingRequest)
                .filter(
                    BookingRequest.status == BookingStatus.PROPOSED.value,
                    BookingRequest.proposal_expires_at.isnot(None),
                    BookingRequest.proposal_expires_at <= now,
                )
                .all()
            )
            for request in lapsed:
                BookingRequestService._transition(db, request, BookingAction.EXPIRE, now)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to expire lapsed proposals: {e}")
            raise UpstreamUnavailableError() from e

        if lapsed:
            logger.info(f"Expired {len(lapsed)} lapsed proposals")
        return len(lapsed)
