"""
Veterinarian Pydantic schemas for validation and serialization.

This module contains the veterinarian profile document and its parts:
specializations, weekly availability keyed by ``Weekday``, matching
preferences and rolling performance metrics.
"""

import re
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from ..models.veterinarian import (
    CaseComplexity,
    ClinicType,
    ExperienceLevel,
    NotificationMethod,
    StudentLevel,
    VerificationStatus,
    VeterinarianStatus,
    Weekday,
)
from ..utils.datetime_utils import date_in_range, get_current_utc, time_to_minutes

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


def generate_id() -> str:
    """Generate an opaque identifier for profiles and workflow records."""
    return uuid.uuid4().hex


class TimeSlot(BaseModel):
    """Schema for a time slot within a day."""

    model_config = ConfigDict(from_attributes=True)

    start_time: str = Field(..., description="Start time in HH:MM format")
    end_time: str = Field(..., description="End time in HH:MM format")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, v: str) -> str:
        """Validate time format."""
        if not TIME_PATTERN.match(v):
            raise ValueError("Time must be in HH:MM format (24-hour)")
        return v

    @model_validator(mode="after")
    def validate_time_order(self) -> "TimeSlot":
        """Validate end time is after start time."""
        if time_to_minutes(self.end_time) <= time_to_minutes(self.start_time):
            raise ValueError("End time must be after start time")
        return self


class DailySchedule(BaseModel):
    """Schema for one day of a weekly schedule."""

    model_config = ConfigDict(from_attributes=True)

    available: bool = Field(..., description="Whether available on this day")
    shifts: List[TimeSlot] = Field(default_factory=list)
    breaks: List[TimeSlot] = Field(default_factory=list)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_breaks_within_shifts(self) -> "DailySchedule":
        """Validate breaks fall inside some shift."""
        for break_slot in self.breaks:
            start = time_to_minutes(break_slot.start_time)
            end = time_to_minutes(break_slot.end_time)
            if not any(
                time_to_minutes(shift.start_time) <= start
                and end <= time_to_minutes(shift.end_time)
                for shift in self.shifts
            ):
                raise ValueError("Break times must be within working hours")
        return self

    @property
    def has_open_slot(self) -> bool:
        """Check if the day is available and has at least one shift."""
        return self.available and len(self.shifts) > 0


def default_weekly_schedule() -> Dict[Weekday, DailySchedule]:
    """Monday to Friday 08:00-17:00, weekends off."""
    schedule = {}
    for day in Weekday:
        if day in (Weekday.SATURDAY, Weekday.SUNDAY):
            schedule[day] = DailySchedule(available=False)
        else:
            schedule[day] = DailySchedule(
                available=True,
                shifts=[TimeSlot(start_time="08:00", end_time="17:00")],
            )
    return schedule


class BlackoutPeriod(BaseModel):
    """Schema for a period during which the veterinarian takes no cases."""

    model_config = ConfigDict(from_attributes=True)

    start_date: date
    end_date: date
    reason: str = ""
    recurring: bool = False

    @model_validator(mode="after")
    def validate_date_order(self) -> "BlackoutPeriod":
        """Validate end date is not before start date."""
        if self.end_date < self.start_date:
            raise ValueError("Blackout end date must not be before start date")
        return self

    def covers(self, day: date) -> bool:
        """
        Check if the blackout period covers a day.

        Recurring periods repeat every year on the same calendar dates.
        """
        if not self.recurring:
            return date_in_range(day, self.start_date, self.end_date)

        start = (self.start_date.month, self.start_date.day)
        end = (self.end_date.month, self.end_date.day)
        current = (day.month, day.day)
        if start <= end:
            return start <= current <= end
        # Period wraps over the new year
        return current >= start or current <= end


class EmergencyAvailability(BaseModel):
    """Schema for emergency availability."""

    model_config = ConfigDict(from_attributes=True)

    available: bool = False
    response_time: int = Field(60, ge=0, description="Response time in minutes")
    contact_method: str = "platform"
    additional_fee: float = Field(50.0, ge=0)


class Availability(BaseModel):
    """Schema for a veterinarian's availability."""

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    weekly_schedule: Dict[Weekday, DailySchedule] = Field(
        default_factory=default_weekly_schedule
    )
    blackout_periods: List[BlackoutPeriod] = Field(default_factory=list)
    emergency_availability: EmergencyAvailability = Field(
        default_factory=EmergencyAvailability
    )
    max_cases_per_day: int = Field(8, ge=1, le=100)
    max_cases_per_week: int = Field(30, ge=1, le=500)
    response_time_commitment: int = Field(
        30, ge=1, description="Committed response time in minutes"
    )

    @field_validator("weekly_schedule")
    @classmethod
    def fill_missing_days(
        cls, v: Dict[Weekday, DailySchedule]
    ) -> Dict[Weekday, DailySchedule]:
        """Days missing from the schedule are unavailable."""
        return {day: v.get(day, DailySchedule(available=False)) for day in Weekday}

    def schedule_for(self, day: date) -> DailySchedule:
        """Return the daily schedule for the weekday of ``day``."""
        return self.weekly_schedule[Weekday.from_date(day)]

    def is_blacked_out(self, day: date) -> bool:
        """Check if any blackout period covers ``day``."""
        return any(period.covers(day) for period in self.blackout_periods)

    def is_available_on(self, day: date) -> bool:
        """Check if the schedule has an open slot on ``day``."""
        return self.schedule_for(day).has_open_slot and not self.is_blacked_out(day)


class Specialization(BaseModel):
    """Schema for a veterinarian specialization."""

    model_config = ConfigDict(from_attributes=True)

    topic: str = Field(..., description="Specialty tag, e.g. cattle_medicine")
    experience_level: ExperienceLevel = ExperienceLevel.COMPETENT
    years_experience: int = Field(0, ge=0, le=70)
    case_volume: int = Field(0, ge=0)
    certifications: List[str] = Field(default_factory=list)
    educational_focus: List[str] = Field(default_factory=list)

    @field_validator("topic")
    @classmethod
    def validate_topic(cls, v: str) -> str:
        """Validate and normalize the specialty tag."""
        if not v or not v.strip():
            raise ValueError("Specialization topic is required")
        return v.strip().lower()


class Preferences(BaseModel):
    """Schema for matching-relevant preferences."""

    model_config = ConfigDict(from_attributes=True)

    student_level_preferences: List[StudentLevel] = Field(
        default_factory=lambda: list(StudentLevel)
    )
    educational_focus_areas: List[str] = Field(
        default_factory=list,
        description="Preferred educational-standard tags (opaque codes)",
    )
    preferred_complexity: List[CaseComplexity] = Field(
        default_factory=lambda: [
            CaseComplexity.ROUTINE,
            CaseComplexity.MODERATE,
            CaseComplexity.COMPLEX,
        ]
    )
    max_students_per_consultation: int = Field(3, ge=1)
    mentorship_available: bool = True
    notification_methods: List[NotificationMethod] = Field(
        default_factory=lambda: [NotificationMethod.PUSH, NotificationMethod.EMAIL]
    )


class PerformanceMetrics(BaseModel):
    """Schema for rolling performance metrics."""

    model_config = ConfigDict(from_attributes=True)

    total_consultations: int = Field(0, ge=0)
    emergency_consultations: int = Field(0, ge=0)
    routine_consultations: int = Field(0, ge=0)
    consultations_by_type: Dict[str, int] = Field(default_factory=dict)
    completion_rate: float = Field(0.0, ge=0.0, le=1.0)
    average_response_time: float = Field(0.0, ge=0.0)
    response_time_samples: int = Field(0, ge=0)
    overall_rating: float = Field(0.0, ge=0.0, le=5.0)
    rating_count: int = Field(0, ge=0)
    learning_objectives_achieved: int = Field(0, ge=0)
    students_supported: int = Field(0, ge=0)
    assessment_participation: int = Field(0, ge=0)
    educational_outcome_success: float = Field(0.0, ge=0.0)


class PersonalInfo(BaseModel):
    """Schema for personal information."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr = Field(..., max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    biography: str = ""
    languages: List[str] = Field(default_factory=lambda: ["English"])
    time_zone: str = "America/New_York"

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Store emails in lowercase."""
        return v.lower()

    @property
    def full_name(self) -> str:
        """Get the veterinarian's display name."""
        return f"Dr. {self.first_name} {self.last_name}"


class VeterinaryLicense(BaseModel):
    """Schema for a veterinary license."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    license_number: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    expiration_date: Optional[date] = None
    verification_status: VerificationStatus = VerificationStatus.PENDING
    verified_at: Optional[datetime] = None


class EducationRecord(BaseModel):
    """Schema for a veterinary degree."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    institution: str = Field(..., min_length=1, max_length=200)
    degree: str = Field(..., min_length=1, max_length=100)
    graduation_year: Optional[int] = Field(None, ge=1900, le=2100)
    verification_status: VerificationStatus = VerificationStatus.PENDING


class InsuranceInfo(BaseModel):
    """Schema for malpractice insurance."""

    model_config = ConfigDict(from_attributes=True)

    provider: str
    policy_number: str
    expiration_date: Optional[date] = None
    telemedicine_included: bool = False


class ProfessionalInfo(BaseModel):
    """Schema for professional information."""

    model_config = ConfigDict(from_attributes=True)

    clinic_name: str = Field(..., min_length=1, max_length=200)
    clinic_type: ClinicType = ClinicType.LARGE_ANIMAL
    primary_license: VeterinaryLicense
    education: List[EducationRecord] = Field(default_factory=list)
    malpractice_insurance: Optional[InsuranceInfo] = None


class VeterinarianProfile(BaseModel):
    """Complete veterinarian profile document."""

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    id: str = Field(default_factory=generate_id)
    personal_info: PersonalInfo
    professional_info: ProfessionalInfo
    specializations: List[Specialization] = Field(default_factory=list)
    availability: Availability = Field(default_factory=Availability)
    preferences: Preferences = Field(default_factory=Preferences)
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    status: VeterinarianStatus = VeterinarianStatus.PENDING_VERIFICATION
    created_at: datetime = Field(default_factory=get_current_utc)
    updated_at: datetime = Field(default_factory=get_current_utc)

    @property
    def is_active(self) -> bool:
        """Check if the veterinarian can receive cases."""
        return self.status == VeterinarianStatus.ACTIVE

    def has_specialty(self, topic: str) -> bool:
        """Check for an exact specialization topic match."""
        wanted = topic.strip().lower()
        return any(spec.topic == wanted for spec in self.specializations)


class VeterinarianCreate(BaseModel):
    """Schema for registering a veterinarian."""

    model_config = ConfigDict(from_attributes=True)

    personal_info: PersonalInfo
    professional_info: ProfessionalInfo
    specializations: List[Specialization] = Field(default_factory=list)
    availability: Optional[Availability] = None
    preferences: Optional[Preferences] = None


class VeterinarianUpdate(BaseModel):
    """Schema for explicit profile updates; only provided fields change."""

    model_config = ConfigDict(from_attributes=True)

    personal_info: Optional[PersonalInfo] = None
    professional_info: Optional[ProfessionalInfo] = None
    specializations: Optional[List[Specialization]] = None
    availability: Optional[Availability] = None
    preferences: Optional[Preferences] = None

    def changes(self) -> Dict[str, Any]:
        """Return the fields that were explicitly provided."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }
