from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ...core.catalog import DIAGNOSTIC_OPTIONS, SCAN_DISCLAIMER, VOICE_PROMPTS
from ...core.database import get_db
from ...api.deps import get_current_patient
from ...models.patient import Patient
from ...models.scan import ScanType
from ...schemas.scan import (
    CaptureChunk, DeviceAccess, DiagnosticHub, DiagnosticOption, ScanDetail,
    ScanResponse, ScanSessionCreate, ScanSessionState
)
from ...services.scan_service import ScanService
from ...services.scan_sessions import (
    ScanSession, ScanSessionRegistry, ScanStateError, get_scan_sessions, scan_timing
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Diagnostics"])

def _session_or_404(registry: ScanSessionRegistry, session_id: str, patient: Patient) -> ScanSession:
    try:
        return registry.get(session_id, patient.user_id)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Scan session not found"
        )

def _conflict(exc: ScanStateError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

@router.get("/diagnostics", response_model=DiagnosticHub)
async def get_diagnostic_hub():
    """The three scans on offer with their tests, instructions and timing."""
    options = [
        DiagnosticOption(**option, duration_seconds=scan_timing(ScanType(option["id"]))[0])
        for option in DIAGNOSTIC_OPTIONS
    ]
    return DiagnosticHub(options=options, voice_prompts=VOICE_PROMPTS, disclaimer=SCAN_DISCLAIMER)

@router.post("/scans/sessions", response_model=ScanSessionState, status_code=status.HTTP_201_CREATED)
async def open_session(
    session_data: ScanSessionCreate,
    patient: Patient = Depends(get_current_patient),
    registry: ScanSessionRegistry = Depends(get_scan_sessions)
):
    """Open a scan in the setup phase."""
    session = registry.create(patient.user_id, session_data.scan_type, session_data.prompt_index)
    return session.snapshot(registry.now())

@router.get("/scans/sessions/{session_id}", response_model=ScanSessionState)
async def poll_session(
    session_id: str,
    patient: Patient = Depends(get_current_patient),
    registry: ScanSessionRegistry = Depends(get_scan_sessions),
    db: Session = Depends(get_db)
):
    """Current phase and progress; moves the scan along as time passes."""
    session = _session_or_404(registry, session_id, patient)
    now = registry.now()
    session.advance(now, ScanService(db).record)
    return session.snapshot(now)

@router.post("/scans/sessions/{session_id}/stream", response_model=ScanSessionState)
async def attach_device(
    session_id: str,
    access: DeviceAccess,
    patient: Patient = Depends(get_current_patient),
    registry: ScanSessionRegistry = Depends(get_scan_sessions)
):
    """Report whether camera or microphone access was granted."""
    session = _session_or_404(registry, session_id, patient)
    try:
        session.attach_stream(access.granted, access.label, access.constraints)
    except ScanStateError as exc:
        raise _conflict(exc)
    return session.snapshot(registry.now())

@router.post("/scans/sessions/{session_id}/start", response_model=ScanSessionState)
async def start_scan(
    session_id: str,
    patient: Patient = Depends(get_current_patient),
    registry: ScanSessionRegistry = Depends(get_scan_sessions)
):
    session = _session_or_404(registry, session_id, patient)
    now = registry.now()
    try:
        session.start(now)
    except ScanStateError as exc:
        raise _conflict(exc)
    return session.snapshot(now)

@router.post("/scans/sessions/{session_id}/capture", response_model=ScanSessionState)
async def push_capture(
    session_id: str,
    chunk: CaptureChunk,
    patient: Patient = Depends(get_current_patient),
    registry: ScanSessionRegistry = Depends(get_scan_sessions),
    db: Session = Depends(get_db)
):
    """Append a captured frame or audio chunk to the running scan."""
    session = _session_or_404(registry, session_id, patient)
    now = registry.now()
    session.advance(now, ScanService(db).record)
    try:
        session.push(chunk.data)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except ScanStateError as exc:
        raise _conflict(exc)
    return session.snapshot(now)

@router.post("/scans/sessions/{session_id}/stop", response_model=ScanSessionState)
async def stop_scan(
    session_id: str,
    patient: Patient = Depends(get_current_patient),
    registry: ScanSessionRegistry = Depends(get_scan_sessions)
):
    """Abandon the scan. Nothing is stored and the device is released."""
    session = _session_or_404(registry, session_id, patient)
    if session.finished:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Scan already complete"
        )
    session.stop()
    logger.info(f"Scan session {session.id} stopped by user {patient.user_id}")
    return session.snapshot(registry.now())

@router.delete("/scans/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: str,
    patient: Patient = Depends(get_current_patient),
    registry: ScanSessionRegistry = Depends(get_scan_sessions)
):
    """Leave the scan screen."""
    session = _session_or_404(registry, session_id, patient)
    registry.discard(session.id)

@router.get("/scans", response_model=List[ScanResponse])
async def list_scans(
    scan_type: Optional[ScanType] = Query(None),
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    """Stored scan history, newest first."""
    scans = ScanService(db).list_for(patient.user, scan_type)
    return [ScanResponse.model_validate(s) for s in scans]

@router.get("/scans/{scan_id}", response_model=ScanDetail)
async def get_scan(
    scan_id: int,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    service = ScanService(db)
    return service.detail(service.get_for(patient.user, scan_id))
