from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.catalog import SPECIALIZATIONS
from ...core.database import get_db
from ...api.deps import get_current_doctor, get_doctor_user
from ...models.doctor import Doctor
from ...models.user import User
from ...schemas.doctor import (
    DoctorCreate, DoctorDashboard, DoctorResponse, DoctorStatusUpdate,
    DoctorSummary, DoctorUpdate
)
from ...services.doctor_service import DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=List[DoctorSummary])
async def list_doctors(
    q: Optional[str] = Query(None, description="Match on name or specialization"),
    online_only: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Doctor directory shown on the patient home screen."""
    doctors = DoctorService(db).search(q, online_only=online_only, skip=skip, limit=limit)
    return [DoctorSummary.model_validate(d) for d in doctors]

@router.get("/specializations", response_model=List[str])
async def list_specializations():
    return SPECIALIZATIONS

@router.post("", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
async def register_doctor(
    doctor_data: DoctorCreate,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    """Complete doctor registration by creating the professional profile."""
    doctor = DoctorService(db).register_profile(current_user, doctor_data)
    return DoctorResponse.model_validate(doctor)

@router.get("/me", response_model=DoctorResponse)
async def get_my_profile(doctor: Doctor = Depends(get_current_doctor)):
    return DoctorResponse.model_validate(doctor)

@router.patch("/me", response_model=DoctorResponse)
async def update_my_profile(
    update: DoctorUpdate,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db)
):
    doctor = DoctorService(db).update_profile(doctor, update)
    return DoctorResponse.model_validate(doctor)

@router.patch("/me/status", response_model=DoctorResponse)
async def update_my_status(
    update: DoctorStatusUpdate,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db)
):
    """Go online or offline for consultations."""
    doctor = DoctorService(db).set_online(doctor, update.is_online)
    return DoctorResponse.model_validate(doctor)

@router.get("/me/dashboard", response_model=DoctorDashboard)
async def get_dashboard(
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db)
):
    """Today's numbers and schedule for the signed-in doctor."""
    return DoctorService(db).dashboard(doctor)

@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    return DoctorResponse.model_validate(DoctorService(db).get(doctor_id))
