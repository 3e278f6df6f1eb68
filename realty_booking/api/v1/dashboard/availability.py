# ============================================================================
# FILE: realty_booking/api/v1/dashboard/availability.py
# Weekly availability rules and blackout windows - thin HTTP layer
# ============================================================================
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from realty_booking.api.dependencies import get_current_principal
from realty_booking.config.database import get_db
from realty_booking.core.principal import Principal
from realty_booking.schemas.availability import (
    BlackoutCreate,
    BlackoutResponse,
    BlackoutUpdate,
    RuleCreate,
    RuleResponse,
    RuleUpdate,
)
from realty_booking.services.availability.availability_service import AvailabilityService

router = APIRouter(tags=["dashboard-availability"])


# ========== RULES ==========

@router.get("/rules", response_model=List[RuleResponse])
def list_rules(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return AvailabilityService.list_rules(db, principal.admin_id)


@router.post("/rules", response_model=RuleResponse, status_code=status.HTTP_201_CREATED)
def create_rule(
        data: RuleCreate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return AvailabilityService.create_rule(db, principal.admin_id, data)


@router.patch("/rules/{rule_id}", response_model=RuleResponse)
def update_rule(
        rule_id: UUID,
        data: RuleUpdate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return AvailabilityService.update_rule(db, principal.admin_id, rule_id, data)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(
        rule_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    AvailabilityService.delete_rule(db, principal.admin_id, rule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== BLACKOUTS ==========

@router.get("/blackouts", response_model=List[BlackoutResponse])
def list_blackouts(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return AvailabilityService.list_blackouts(db, principal.admin_id)


@router.post("/blackouts", response_model=BlackoutResponse, status_code=status.HTTP_201_CREATED)
def create_blackout(
        data: BlackoutCreate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return AvailabilityService.create_blackout(db, principal.admin_id, data)


@router.patch("/blackouts/{blackout_id}", response_model=BlackoutResponse)
def update_blackout(
        blackout_id: UUID,
        data: BlackoutUpdate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return AvailabilityService.update_blackout(db, principal.admin_id, blackout_id, data)


@router.delete("/blackouts/{blackout_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_blackout(
        blackout_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    AvailabilityService.delete_blackout(db, principal.admin_id, blackout_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
