from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_current_patient
from ...models.patient import Patient
from ...schemas.patient import PatientResponse, PatientUpdate
from ...services.patient_service import PatientService

router = APIRouter(prefix="/patients", tags=["Patients"])

@router.get("/me", response_model=PatientResponse)
async def get_my_profile(patient: Patient = Depends(get_current_patient)):
    return PatientService.to_response(patient)

@router.patch("/me", response_model=PatientResponse)
async def update_my_profile(
    update: PatientUpdate,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    """Edit contact, personal, medical and emergency details."""
    patient = PatientService(db).update_profile(patient, update)
    return PatientService.to_response(patient)
