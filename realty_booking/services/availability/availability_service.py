# ===== realty_booking/services/availability/availability_service.py =====
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from realty_booking.config.settings import get_settings
from realty_booking.core.exceptions import NotFoundException, ValidationException
from realty_booking.models.availability import AvailabilityRule, BlackoutDate
from realty_booking.models.booking import ACTIVE_STATUSES, Booking
from realty_booking.models.booking_settings import BookingSettings
from realty_booking.schemas.availability import BlackoutCreate, BlackoutUpdate, RuleCreate, RuleUpdate
from realty_booking.services.availability.intervals import Interval
from realty_booking.services.availability.settings_service import BookingSettingsService
from realty_booking.services.availability import slot_engine
from realty_booking.services.catalog.catalog_service import CatalogService
from realty_booking.utils.validators import ensure_aware_utc

logger = logging.getLogger(__name__)

# Local days can start up to ~14h either side of UTC midnight
_LOAD_PADDING = timedelta(days=2)


class AvailabilityService:
    """Availability rules, blackout windows and slot queries for one admin"""

    # ========== RULES ==========

    @staticmethod
    def list_rules(db: Session, admin_id: UUID) -> List[AvailabilityRule]:
        return db.query(AvailabilityRule).filter(
            AvailabilityRule.admin_id == admin_id
        ).order_by(AvailabilityRule.day_of_week, AvailabilityRule.start_minutes).all()

    @staticmethod
    def _get_rule(db: Session, admin_id: UUID, rule_id: UUID) -> AvailabilityRule:
        rule = db.query(AvailabilityRule).filter(
            AvailabilityRule.id == rule_id,
            AvailabilityRule.admin_id == admin_id
        ).first()
        if not rule:
            raise NotFoundException("Availability rule not found")
        return rule

    @staticmethod
    def create_rule(db: Session, admin_id: UUID, data: RuleCreate) -> AvailabilityRule:
        time_zone = data.time_zone or BookingSettingsService.get(db, admin_id).time_zone

        rule = AvailabilityRule(
            admin_id=admin_id,
            day_of_week=data.day_of_week,
            start_minutes=data.start_minutes,
            end_minutes=data.end_minutes,
            time_zone=time_zone,
            active=data.active,
        )
        db.add(rule)
        db.commit()
        db.refresh(rule)

        logger.info(f"Created availability rule {rule.id} for admin {admin_id}: {rule!r}")
        return rule

    @staticmethod
    def update_rule(db: Session, admin_id: UUID, rule_id: UUID, data: RuleUpdate) -> AvailabilityRule:
        rule = AvailabilityService._get_rule(db, admin_id, rule_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        start = changes.get("start_minutes", rule.start_minutes)
        end = changes.get("end_minutes", rule.end_minutes)
        if start >= end:
            raise ValidationException(
                "startMinutes must be before endMinutes",
                details={"startMinutes": start, "endMinutes": end}
            )

        for field, value in changes.items():
            setattr(rule, field, value)

        db.commit()
        db.refresh(rule)
        logger.info(f"Updated availability rule {rule.id}: {sorted(changes)}")
        return rule

    @staticmethod
    def delete_rule(db: Session, admin_id: UUID, rule_id: UUID) -> None:
        rule = AvailabilityService._get_rule(db, admin_id, rule_id)
        db.delete(rule)
        db.commit()
        logger.info(f"Deleted availability rule {rule_id} for admin {admin_id}")

    # ========== BLACKOUTS ==========

    @staticmethod
    def list_blackouts(db: Session, admin_id: UUID) -> List[BlackoutDate]:
        return db.query(BlackoutDate).filter(
            BlackoutDate.admin_id == admin_id
        ).order_by(BlackoutDate.start).all()

    @staticmethod
    def _get_blackout(db: Session, admin_id: UUID, blackout_id: UUID) -> BlackoutDate:
        blackout = db.query(BlackoutDate).filter(
            BlackoutDate.id == blackout_id,
            BlackoutDate.admin_id == admin_id
        ).first()
        if not blackout:
            raise NotFoundException("Blackout not found")
        return blackout

    @staticmethod
    def create_blackout(db: Session, admin_id: UUID, data: BlackoutCreate) -> BlackoutDate:
        blackout = BlackoutDate(
            admin_id=admin_id,
            start=ensure_aware_utc(data.start),
            end=ensure_aware_utc(data.end),
            reason=data.reason,
        )
        db.add(blackout)
        db.commit()
        db.refresh(blackout)

        logger.info(f"Created blackout {blackout.id} for admin {admin_id}: {blackout.start} - {blackout.end}")
        return blackout

    @staticmethod
    def update_blackout(db: Session, admin_id: UUID, blackout_id: UUID, data: BlackoutUpdate) -> BlackoutDate:
        blackout = AvailabilityService._get_blackout(db, admin_id, blackout_id)
        changes = data.model_dump(exclude_unset=True)

        start = ensure_aware_utc(changes["start"]) if changes.get("start") else blackout.start
        end = ensure_aware_utc(changes["end"]) if changes.get("end") else blackout.end
        if start >= end:
            raise ValidationException("Blackout start must be before end")

        blackout.start = start
        blackout.end = end
        if "reason" in changes:
            blackout.reason = changes["reason"]

        db.commit()
        db.refresh(blackout)
        logger.info(f"Updated blackout {blackout.id}")
        return blackout

    @staticmethod
    def delete_blackout(db: Session, admin_id: UUID, blackout_id: UUID) -> None:
        blackout = AvailabilityService._get_blackout(db, admin_id, blackout_id)
        db.delete(blackout)
        db.commit()
        logger.info(f"Deleted blackout {blackout_id} for admin {admin_id}")

    # ========== SLOTS ==========

    @staticmethod
    def load_engine_inputs(
            db: Session,
            admin_id: UUID,
            window_start: datetime,
            window_end: datetime,
            exclude_booking_id: Optional[UUID] = None,
    ) -> Tuple[List[AvailabilityRule], List[BlackoutDate], List[Booking]]:
        """Active rules plus the blackouts and active bookings near the window"""
        lower = ensure_aware_utc(window_start) - _LOAD_PADDING
        upper = ensure_aware_utc(window_end) + _LOAD_PADDING

        rules = db.query(AvailabilityRule).filter(
            AvailabilityRule.admin_id == admin_id,
            AvailabilityRule.active == True
        ).all()

        blackouts = db.query(BlackoutDate).filter(
            BlackoutDate.admin_id == admin_id,
            BlackoutDate.start < upper,
            BlackoutDate.end > lower
        ).all()

        query = db.query(Booking).filter(
            Booking.admin_id == admin_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start < upper,
            Booking.end > lower
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)

        return rules, blackouts, query.all()

    @staticmethod
    def get_available_slots(
            db: Session,
            admin_id: UUID,
            service_ids: Sequence[UUID],
            range_start: datetime,
            range_end: datetime,
            now: datetime,
            busy: Sequence[Interval] = (),
            settings: Optional[BookingSettings] = None,
    ) -> Tuple[List[datetime], int]:
        """
        Bookable start instants for the selected services.

        Returns:
            (slots, occupancy_minutes)

        Raises:
            ValidationException: If a service id is unknown or inactive
        """
        settings = settings or BookingSettingsService.get(db, admin_id)
        services = CatalogService.load_services_for_booking(db, admin_id, service_ids) if service_ids else []
        occupancy = slot_engine.compute_occupancy_minutes(services, settings.default_buffer_min)

        rules, blackouts, bookings = AvailabilityService.load_engine_inputs(db, admin_id, range_start, range_end)

        slots = slot_engine.compute_available_slots(
            settings,
            rules,
            blackouts,
            bookings,
            occupancy_minutes=occupancy,
            range_start=range_start,
            range_end=range_end,
            now=now,
            step_minutes=get_settings().SLOT_STEP_MINUTES,
            busy=busy,
        )

        logger.info(
            f"Computed {len(slots)} slots for admin {admin_id} "
            f"({range_start.isoformat()} - {range_end.isoformat()}, occupancy={occupancy}m)"
        )
        return slots, occupancy
