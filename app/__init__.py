"""
Telehealth Diagnostics API

FastAPI backend for a telehealth app: doctor and patient onboarding, home
visit booking, simulated consultations, camera and microphone screening
scans, and realtime notifications.
"""

__version__ = "1.0.0"
