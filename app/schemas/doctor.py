from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Union
from datetime import datetime
import re

from ..core.catalog import SPECIALIZATIONS

def parse_experience(value: Union[int, float, str, None]) -> int:
    """Turn an experience choice such as "5-10" or "8 years" into whole years.

    Ranges count from their lower bound; anything unreadable counts as one year.
    """
    if isinstance(value, (int, float)):
        try:
            return max(int(value), 1)
        except (OverflowError, ValueError):
            raise ValueError("Experience must be a finite number of years")
    if value is not None and not isinstance(value, str):
        raise ValueError("Experience must be a number of years or a range such as \"5-10\"")
    match = re.match(r"\s*(\d+)", value or "")
    if not match:
        return 1
    return int(match.group(1)) or 1

def _check_specialization(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in SPECIALIZATIONS:
        raise ValueError(f"Unknown specialization: {value}")
    return value

class DoctorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    specialization: str
    experience: Union[int, str] = 1
    availability: str = Field(..., min_length=1, max_length=100)
    consultation_fee: float = Field(..., ge=0)
    visit_fee: float = Field(..., ge=0)
    address: str = Field(..., min_length=1, max_length=255)
    about_text: Optional[str] = None
    mbbs_certificate_url: Optional[str] = Field(None, max_length=255)
    condition_types: List[str] = Field(default_factory=list)

    @field_validator("specialization")
    @classmethod
    def check_specialization(cls, value):
        return _check_specialization(value)

    @field_validator("experience", mode="before")
    @classmethod
    def normalize_experience(cls, value):
        return parse_experience(value)

class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    specialization: Optional[str] = None
    experience: Optional[Union[int, str]] = None
    availability: Optional[str] = Field(None, max_length=100)
    consultation_fee: Optional[float] = Field(None, ge=0)
    visit_fee: Optional[float] = Field(None, ge=0)
    address: Optional[str] = Field(None, max_length=255)
    about_text: Optional[str] = None
    mbbs_certificate_url: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    qualifications: Optional[str] = None
    languages: Optional[str] = Field(None, max_length=255)
    services: Optional[str] = None

    @field_validator("specialization")
    @classmethod
    def check_specialization(cls, value):
        return _check_specialization(value)

    @field_validator("experience", mode="before")
    @classmethod
    def normalize_experience(cls, value):
        if value is None:
            return None
        return parse_experience(value)

class DoctorStatusUpdate(BaseModel):
    is_online: bool

class DoctorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    specialization: str
    experience: int
    consultation_fee: float
    visit_fee: float
    availability: str
    is_online: bool

class DoctorResponse(DoctorSummary):
    user_id: int
    address: str
    about_text: Optional[str] = None
    mbbs_certificate_url: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    qualifications: Optional[str] = None
    languages: Optional[str] = None
    services: Optional[str] = None
    condition_types: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class DashboardStats(BaseModel):
    todays_appointments: int
    total_patients: int
    monthly_earnings: float
    is_online: bool

class ScheduleEntry(BaseModel):
    visit_id: int
    patient: str
    time: str
    type: str
    status: str

class DoctorDashboard(BaseModel):
    doctor: DoctorSummary
    stats: DashboardStats
    todays_schedule: List[ScheduleEntry]
