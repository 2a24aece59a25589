"""
Synthetic analysis for the three diagnostic scans.

None of this inspects the captured media. Each analyzer draws plausible
values from a ``random.Random`` and classifies them with fixed rules, which is
enough to exercise the capture flow, storage and notifications end to end.
Seed the generator (``SCAN_RANDOM_SEED``) to make results reproducible.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from enum import Enum
import base64
import random

from ..core.catalog import DIAGNOSTIC_OPTIONS
from ..models.scan import RiskLevel, ScanType

class ScanPhase(str, Enum):
    SETUP = "setup"
    SCANNING = "scanning"
    RECORDING = "recording"
    ANALYZING = "analyzing"
    COMPLETE = "complete"

class ScanOutcome(BaseModel):
    results: Dict[str, Any]
    anomalies_detected: bool
    risk_level: RiskLevel
    recommendations: List[str] = Field(default_factory=list)

def _data_url(mime: str, payload: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode()}"

def _risk(anomalies: bool) -> RiskLevel:
    # high and critical are reserved for a real model; the mock never escalates
    return RiskLevel.MEDIUM if anomalies else RiskLevel.LOW

class ScanAnalyzer:
    scan_type: ScanType
    label: str
    device: str = "camera"
    capture_phase = ScanPhase.SCANNING
    progress_cap: float = 90.0
    analysis_progress: float = 90.0
    # Microphone capture ends with the recording; the camera stays on until teardown
    release_after_capture = False
    anomaly_recommendations: List[str] = []
    normal_recommendations: List[str] = []

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    @property
    def title(self) -> str:
        for option in DIAGNOSTIC_OPTIONS:
            if option["id"] == self.scan_type.value:
                return option["title"]
        return self.label

    def analyze(self, chunks: List[bytes]) -> ScanOutcome:
        results = self.draw_results()
        anomalies = self.has_anomalies(results)
        return ScanOutcome(
            results=results,
            anomalies_detected=anomalies,
            risk_level=_risk(anomalies),
            recommendations=list(
                self.anomaly_recommendations if anomalies else self.normal_recommendations
            ),
        )

    def live_sample(self) -> Optional[Dict[str, float]]:
        """Vitals shown while capturing, if the scan has any."""
        return None

    def scan_data(self, chunks: List[bytes], duration: float, live: Optional[Dict[str, float]],
                  prompt: Optional[str]) -> Dict[str, Any]:
        raise NotImplementedError

    def draw_results(self) -> Dict[str, Any]:
        raise NotImplementedError

    def has_anomalies(self, results: Dict[str, Any]) -> bool:
        raise NotImplementedError

    def _flag(self, threshold: float, flagged: str, normal: str = "normal") -> str:
        return flagged if self.rng.random() > threshold else normal

    def _between(self, low: float, high: float, digits: int = 1) -> float:
        return round(low + self.rng.random() * (high - low), digits)

class RetinalAnalyzer(ScanAnalyzer):
    scan_type = ScanType.RETINAL
    label = "retinal"
    progress_cap = 45.0
    analysis_progress = 50.0
    anomaly_recommendations = [
        "Consult with an ophthalmologist",
        "Regular eye examinations recommended",
        "Monitor blood pressure and diabetes if applicable",
    ]
    normal_recommendations = ["Continue regular eye health monitoring"]

    HEALTHY_VALUES = ("normal", "clear")

    def draw_results(self):
        return {
            "diabetic_retinopathy": self._flag(0.8, "detected"),
            "glaucoma": self._flag(0.9, "risk_detected"),
            "hypertensive_retinopathy": self._flag(0.85, "mild_changes"),
            "amd": self._flag(0.95, "early_signs"),
            "cataract": self._flag(0.7, "mild_opacity", "clear"),
            "blood_vessel_health": self._flag(0.8, "irregular"),
            "retinal_thickness": f"{0.25 + self.rng.random() * 0.1:.3f}mm",
            "cardiovascular_risk": self._flag(0.85, "elevated"),
        }

    def has_anomalies(self, results):
        return any(
            value not in self.HEALTHY_VALUES
            for key, value in results.items()
            if "thickness" not in key
        )

    def scan_data(self, chunks, duration, live, prompt):
        # The last frame is the one that gets analysed
        return {"image_data": _data_url("image/jpeg", chunks[-1]) if chunks else None}

class RPPGAnalyzer(ScanAnalyzer):
    scan_type = ScanType.RPPG
    label = "rPPG"
    progress_cap = 90.0
    analysis_progress = 90.0
    anomaly_recommendations = [
        "Monitor cardiovascular health regularly",
        "Consider consultation with cardiologist",
        "Maintain healthy lifestyle habits",
    ]
    normal_recommendations = ["Continue regular health monitoring"]

    def live_sample(self):
        return {
            "heart_rate": self._between(60, 100),
            "spo2": self._between(95, 100),
            "respiratory_rate": self._between(12, 20),
        }

    def draw_results(self):
        return {
            "heart_rate": self._between(72, 88),
            "heart_rate_variability": self._between(25, 40),
            "respiratory_rate": self._between(14, 18),
            "spo2_estimate": self._between(96, 99),
            "blood_pressure_systolic": self._between(110, 130),
            "blood_pressure_diastolic": self._between(70, 80),
            "arrhythmia_risk": self._flag(0.85, "detected"),
            "stress_level": self._flag(0.7, "elevated"),
            "fatigue_indicator": self._flag(0.8, "high"),
        }

    def has_anomalies(self, results):
        return (
            results["heart_rate"] < 60
            or results["heart_rate"] > 100
            or results["blood_pressure_systolic"] > 140
            or results["arrhythmia_risk"] == "detected"
            or results["stress_level"] == "elevated"
        )

    def scan_data(self, chunks, duration, live, prompt):
        return {"scan_duration": duration, "real_time_data": live or {}}

class VoiceAnalyzer(ScanAnalyzer):
    scan_type = ScanType.VOICE
    label = "voice"
    device = "microphone"
    capture_phase = ScanPhase.RECORDING
    progress_cap = 95.0
    analysis_progress = 95.0
    release_after_capture = True
    anomaly_recommendations = [
        "Consider stress management techniques",
        "Consult with mental health professional",
        "Practice relaxation and breathing exercises",
    ]
    normal_recommendations = ["Continue monitoring mental wellness"]

    def draw_results(self):
        if self.rng.random() > 0.7:
            emotion = "stressed"
        elif self.rng.random() > 0.5:
            emotion = "neutral"
        else:
            emotion = "calm"

        return {
            "pitch_variation": self._between(0, 100),
            "speech_rate": self._between(150, 200),
            "pause_frequency": self._between(0, 0.3, 3),
            "jitter": self._between(0, 2, 2),
            "shimmer": self._between(0, 5, 2),
            "energy_level": self._between(60, 90),
            "emotion_classification": emotion,
            "stress_indicators": self._flag(0.6, "elevated"),
            "depression_risk": self._flag(0.8, "moderate", "low"),
            "anxiety_markers": self._flag(0.7, "present", "minimal"),
            "vocal_fatigue": self._flag(0.75, "detected"),
        }

    def has_anomalies(self, results):
        return (
            results["emotion_classification"] == "stressed"
            or results["stress_indicators"] == "elevated"
            or results["depression_risk"] == "moderate"
            or results["anxiety_markers"] == "present"
        )

    def scan_data(self, chunks, duration, live, prompt):
        return {
            "audio_data": _data_url("audio/webm", b"".join(chunks)) if chunks else None,
            "recording_duration": duration,
            "prompt_used": prompt,
        }

ANALYZERS = {
    ScanType.RETINAL: RetinalAnalyzer,
    ScanType.RPPG: RPPGAnalyzer,
    ScanType.VOICE: VoiceAnalyzer,
}

def analyzer_for(scan_type: ScanType, rng: Optional[random.Random] = None) -> ScanAnalyzer:
    return ANALYZERS[scan_type](rng)
