from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.catalog import TIME_SLOTS, URGENCY_LEVELS, VISIT_TYPES
from ...core.database import get_db
from ...api.deps import get_current_patient, get_current_user
from ...models.patient import Patient
from ...models.user import User
from ...schemas.visit import VisitCreate, VisitResponse, VisitStatusUpdate
from ...services.visit_service import VisitService

router = APIRouter(prefix="/visits", tags=["Visits"])

@router.get("/options")
async def get_booking_options():
    """Choices offered by the booking form."""
    return {
        "visit_types": VISIT_TYPES,
        "time_slots": TIME_SLOTS,
        "urgency_levels": URGENCY_LEVELS,
        "consultation_types": ["online", "home_visit"],
        "payment_methods": ["online", "cash"],
    }

@router.post("", response_model=VisitResponse, status_code=status.HTTP_201_CREATED)
async def book_visit(
    visit_data: VisitCreate,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    """Book a home visit or online consultation."""
    visit = VisitService(db).book(patient, visit_data)
    return VisitService.to_response(visit)

@router.get("", response_model=List[VisitResponse])
async def list_visits(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Visits the signed-in patient booked, or the signed-in doctor received."""
    visits = VisitService(db).list_for(current_user)
    return [VisitService.to_response(v) for v in visits]

@router.get("/{visit_id}", response_model=VisitResponse)
async def get_visit(
    visit_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return VisitService.to_response(VisitService(db).get_for(current_user, visit_id))

@router.patch("/{visit_id}/status", response_model=VisitResponse)
async def update_visit_status(
    visit_id: int,
    update: VisitStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    visit = VisitService(db).update_status(
        current_user, visit_id, update.status, update.reason
    )
    return VisitService.to_response(visit)
