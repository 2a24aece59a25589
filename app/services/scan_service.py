from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import Any, Dict, List, Optional
import logging

from ..models.notification import NotificationType, RecipientType
from ..models.patient import Patient
from ..models.scan import Scan, ScanType
from ..models.user import User
from ..schemas.scan import ScanDetail, ScanResponse
from .notification_service import NotificationService
from .scan_analyzers import ScanOutcome, analyzer_for
from .scan_sessions import ScanPersistenceError, ScanSession

logger = logging.getLogger(__name__)

ANOMALY_NOTICE = (
    "This scan has detected potential health concerns. We recommend consulting "
    "with a healthcare professional for further evaluation."
)

class ScanService:
    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def record(self, session: ScanSession, outcome: ScanOutcome) -> int:
        """Store a finished scan and its notifications in one transaction.

        Used as the persist callback of a scan session; any failure rolls back
        and surfaces as ``ScanPersistenceError`` so the session can revert.
        """
        staged = []
        try:
            patient = self.db.query(Patient).filter(
                Patient.user_id == session.owner_id
            ).first()
            if not patient:
                raise ScanPersistenceError("Patient not found")

            scan = Scan(
                patient_id=patient.id,
                scan_type=session.scan_type,
                scan_data=session.scan_data(),
                results=outcome.results,
                recommendations=outcome.recommendations,
                anomalies_detected=outcome.anomalies_detected,
                risk_level=outcome.risk_level,
            )
            self.db.add(scan)
            self.db.flush()

            title = session.analyzer.title
            staged.append(self.notifications.stage(
                RecipientType.PATIENT,
                patient.id,
                f"{title} complete",
                f"Your {title} results are ready to view.",
                NotificationType.SCAN_COMPLETE,
                scan_id=scan.id,
            ))
            if outcome.anomalies_detected:
                staged.append(self.notifications.stage(
                    RecipientType.PATIENT,
                    patient.id,
                    "Anomalies detected",
                    f"Your {title} shows potential health concerns. "
                    "Consider booking a consultation with a specialist.",
                    NotificationType.ANOMALY_DETECTED,
                    scan_id=scan.id,
                ))

            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise ScanPersistenceError(str(exc)) from exc

        self.notifications.publish(staged)
        logger.info(
            f"Stored {scan.scan_type.value} scan {scan.id} for patient {scan.patient_id} "
            f"(risk={scan.risk_level.value})"
        )
        return scan.id

    def list_for(self, user: User, scan_type: Optional[ScanType] = None) -> List[Scan]:
        patient = self._patient_for(user)
        query = self.db.query(Scan).filter(Scan.patient_id == patient.id)
        if scan_type is not None:
            query = query.filter(Scan.scan_type == scan_type)
        return query.order_by(Scan.created_at.desc(), Scan.id.desc()).all()

    def get_for(self, user: User, scan_id: int) -> Scan:
        patient = self._patient_for(user)
        scan = self.db.query(Scan).filter(
            Scan.id == scan_id, Scan.patient_id == patient.id
        ).first()
        if not scan:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Scan not found"
            )
        return scan

    def detail(self, scan: Scan) -> ScanDetail:
        base = ScanResponse.model_validate(scan)
        return ScanDetail(
            **base.model_dump(),
            title=analyzer_for(scan.scan_type).title,
            highlights=highlights(scan.scan_type, scan.results or {}),
            notice=ANOMALY_NOTICE if scan.anomalies_detected else None,
        )

    def _patient_for(self, user: User) -> Patient:
        patient = self.db.query(Patient).filter(Patient.user_id == user.id).first()
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient not found"
            )
        return patient

def highlights(scan_type: ScanType, results: Dict[str, Any]) -> Dict[str, Any]:
    """The subset of results a results screen leads with."""
    if scan_type == ScanType.RETINAL:
        return {key.replace("_", " "): value for key, value in results.items()}

    if scan_type == ScanType.RPPG:
        summary = {
            "heart_rate": round(results.get("heart_rate", 0)),
            "blood_pressure": (
                f"{round(results.get('blood_pressure_systolic', 0))}/"
                f"{round(results.get('blood_pressure_diastolic', 0))}"
            ),
            "spo2": round(results.get("spo2_estimate", 0)),
            "respiratory_rate": round(results.get("respiratory_rate", 0)),
            "heart_rate_variability": round(results.get("heart_rate_variability", 0)),
        }
        for key in ("arrhythmia_risk", "stress_level", "fatigue_indicator"):
            if key in results:
                summary[key] = results[key]
        return summary

    keys = ("emotion_classification", "stress_indicators", "depression_risk", "anxiety_markers")
    return {key: results[key] for key in keys if key in results}
