"""
Fixed option lists offered by the registration, booking and diagnostic screens.
"""

SPECIALIZATIONS = [
    "General Physician",
    "Cardiologist",
    "Dermatologist",
    "Pediatrician",
    "Orthopedic",
    "Neurologist",
    "Gynecologist",
    "Psychiatrist",
    "General Nurse",
    "ICU Specialist",
]

VISIT_TYPES = [
    "General Checkup",
    "Follow-up Visit",
    "Emergency Visit",
    "Prescription Renewal",
    "Health Assessment",
    "Vaccination",
    "Wound Care",
    "Blood Pressure Check",
]

# Ordered as shown to the patient; the dashboard sorts the schedule by this order
TIME_SLOTS = [
    "9:00 AM", "10:00 AM", "11:00 AM", "12:00 PM",
    "2:00 PM", "3:00 PM", "4:00 PM", "5:00 PM", "6:00 PM",
]

URGENCY_LEVELS = {
    "low": "Non-urgent (2-3 days)",
    "medium": "Moderate (Within 24 hours)",
    "high": "Urgent (Within 6 hours)",
    "emergency": "Emergency (Immediate)",
}

ROLES = {
    "patient": {
        "title": "Patient",
        "description": "Find and connect with healthcare providers",
        "next": "/patient/auth",
    },
    "doctor": {
        "title": "Doctor / Nurse",
        "description": "Register as a doctor or nurse",
        "next": "/doctor/register",
    },
}

DIAGNOSTIC_OPTIONS = [
    {
        "id": "retinal",
        "title": "Retinal Scan",
        "description": "Comprehensive eye health assessment",
        "device": "camera",
        "tests": [
            "Diabetic Retinopathy check",
            "Glaucoma screening",
            "Hypertensive Retinopathy detection",
            "Age-related Macular Degeneration (AMD)",
            "Cataract indication",
            "General eye health assessment",
        ],
        "instructions": [
            "Position your eye 6-8 inches from the camera",
            "Ensure good lighting on your face",
            "Keep your eye wide open and steady",
            "Look directly at the camera lens",
            "Avoid blinking during the scan",
        ],
    },
    {
        "id": "rppg",
        "title": "rPPG Analysis",
        "description": "Remote cardiovascular monitoring",
        "device": "camera",
        "tests": [
            "Heart Rate (HR)",
            "Heart Rate Variability (HRV)",
            "Respiratory Rate",
            "Blood Oxygen Level (SpO2)",
            "Arrhythmia detection",
            "Blood Pressure estimation",
            "Stress/Fatigue detection",
        ],
        "instructions": [
            "Sit comfortably and face the camera directly",
            "Ensure good, even lighting on your face",
            "Remain still during the 30-second scan",
            "Breathe normally and stay relaxed",
            "Avoid talking or sudden movements",
        ],
    },
    {
        "id": "voice",
        "title": "Voice Stress Analysis",
        "description": "Mental health and stress assessment",
        "device": "microphone",
        "tests": [
            "Pitch and tone variation",
            "Speech rate and pauses",
            "Formant shifts analysis",
            "Jitter and shimmer detection",
            "Energy/amplitude levels",
            "Emotion classification",
            "Depression/Anxiety risk analysis",
        ],
        "instructions": [
            "Speak clearly and naturally",
            "Find a quiet environment",
            "Maintain normal speaking pace",
            "Complete the full 20-second recording",
        ],
    },
]

VOICE_PROMPTS = [
    "Please read this passage clearly: 'The quick brown fox jumps over the lazy dog. "
    "This pangram contains every letter of the alphabet.'",
    "Describe your current mood and how you're feeling today in a few sentences.",
    "Count slowly from 1 to 10, then say the days of the week.",
    "Tell me about your favorite hobby or activity that makes you happy.",
]

SCAN_DISCLAIMER = (
    "This is a screening tool and not a replacement for professional medical examination."
)
