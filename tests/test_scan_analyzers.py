import random

import pytest

from app.models.scan import RiskLevel, ScanType
from app.services.scan_analyzers import (
    RPPGAnalyzer, RetinalAnalyzer, ScanPhase, VoiceAnalyzer, analyzer_for
)

@pytest.mark.parametrize("scan_type", list(ScanType))
def test_risk_follows_anomalies(scan_type):
    analyzer = analyzer_for(scan_type, random.Random(42))

    for _ in range(50):
        outcome = analyzer.analyze([])
        assert outcome.risk_level in (RiskLevel.LOW, RiskLevel.MEDIUM)
        expected = RiskLevel.MEDIUM if outcome.anomalies_detected else RiskLevel.LOW
        assert outcome.risk_level == expected
        assert outcome.recommendations

def test_seeded_results_repeat():
    first = RetinalAnalyzer(random.Random(5)).analyze([])
    second = RetinalAnalyzer(random.Random(5)).analyze([])
    assert first.results == second.results

def test_retinal_rules():
    analyzer = RetinalAnalyzer()
    healthy = {
        "diabetic_retinopathy": "normal",
        "glaucoma": "normal",
        "cataract": "clear",
        "retinal_thickness": "0.300mm",
    }
    assert not analyzer.has_anomalies(healthy)
    assert analyzer.has_anomalies({**healthy, "glaucoma": "risk_detected"})

def test_rppg_rules():
    analyzer = RPPGAnalyzer()
    calm = {
        "heart_rate": 75,
        "blood_pressure_systolic": 120,
        "arrhythmia_risk": "normal",
        "stress_level": "normal",
    }
    assert not analyzer.has_anomalies(calm)
    assert analyzer.has_anomalies({**calm, "heart_rate": 110})
    assert analyzer.has_anomalies({**calm, "blood_pressure_systolic": 150})
    assert analyzer.has_anomalies({**calm, "stress_level": "elevated"})

def test_voice_rules():
    analyzer = VoiceAnalyzer()
    calm = {
        "emotion_classification": "calm",
        "stress_indicators": "normal",
        "depression_risk": "low",
        "anxiety_markers": "minimal",
    }
    assert not analyzer.has_anomalies(calm)
    assert analyzer.has_anomalies({**calm, "anxiety_markers": "present"})

def test_capture_devices():
    assert RetinalAnalyzer().device == "camera"
    assert VoiceAnalyzer().device == "microphone"
    assert VoiceAnalyzer().capture_phase == ScanPhase.RECORDING
    assert RPPGAnalyzer().live_sample().keys() == {"heart_rate", "spo2", "respiratory_rate"}
    assert RetinalAnalyzer().live_sample() is None

def test_retinal_scan_data_keeps_last_frame():
    data = RetinalAnalyzer().scan_data([b"one", b"two"], 20, None, None)
    assert data["image_data"] == "data:image/jpeg;base64,dHdv"
