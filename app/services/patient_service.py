from sqlalchemy.orm import Session

from ..models.patient import Patient
from ..schemas.patient import PatientResponse, PatientUpdate

class PatientService:
    def __init__(self, db: Session):
        self.db = db

    def update_profile(self, patient: Patient, update: PatientUpdate) -> Patient:
        changes = update.model_dump(exclude_unset=True)
        # Name is required on the row; an explicit null leaves it untouched
        if changes.get("name") is None:
            changes.pop("name", None)

        for field, value in changes.items():
            setattr(patient, field, value)

        self.db.commit()
        self.db.refresh(patient)
        return patient

    @staticmethod
    def to_response(patient: Patient) -> PatientResponse:
        response = PatientResponse.model_validate(patient)
        return response.model_copy(update={"email": patient.user.email})
