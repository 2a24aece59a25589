from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from ..models.scan import RiskLevel, ScanType

class DiagnosticOption(BaseModel):
    id: ScanType
    title: str
    description: str
    device: str
    tests: List[str]
    instructions: List[str]
    duration_seconds: float

class DiagnosticHub(BaseModel):
    options: List[DiagnosticOption]
    voice_prompts: List[str]
    disclaimer: str

class ScanSessionCreate(BaseModel):
    scan_type: ScanType
    prompt_index: int = Field(0, ge=0)

class DeviceAccess(BaseModel):
    """Outcome of the client's camera/microphone permission request."""
    granted: bool
    label: Optional[str] = Field(None, max_length=255)
    constraints: Dict[str, Any] = Field(default_factory=dict)

class CaptureChunk(BaseModel):
    """A captured frame or audio chunk, base64 or data-URL encoded."""
    data: str = Field(..., min_length=1)

class ScanSessionState(BaseModel):
    session_id: str
    scan_type: ScanType
    phase: str
    progress: float
    elapsed_seconds: float
    duration_seconds: float
    stream_active: bool
    notice: Optional[str] = None
    real_time_data: Optional[Dict[str, float]] = None
    prompt: Optional[str] = None
    scan_id: Optional[int] = None
    finished: bool = False

class ScanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    scan_type: ScanType
    results: Dict[str, Any]
    recommendations: List[str] = Field(default_factory=list)
    anomalies_detected: bool
    risk_level: Optional[RiskLevel] = None
    created_at: datetime

class ScanDetail(ScanResponse):
    title: str
    highlights: Dict[str, Any]
    notice: Optional[str] = None
