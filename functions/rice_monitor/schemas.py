"""
Pydantic schemas for the monitoring API.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from rice_monitor.errors import ValidationError, describe_validation_errors
from shared.types import Field as FieldRecord
from shared.types import Submission, User, coerce_datetime


def _parse_date(value):
    # Accept bare YYYY-MM-DD dates alongside full timestamps.
    if isinstance(value, str):
        return coerce_datetime(value)
    return value


class LocationModel(BaseModel):
    latitude: float = 0.0
    longitude: float = 0.0


class PlantConditionsModel(BaseModel):
    """Wire keys match what the web client and stored documents use."""

    model_config = ConfigDict(populate_by_name=True)

    healthy: bool = Field(default=False, alias="Healthy")
    unhealthy: bool = Field(default=False, alias="Unhealthy")
    signs_of_pest_infestation: bool = Field(default=False, alias="Signs of pest infestation")
    pest_details: Dict[str, bool] = Field(default_factory=dict, alias="pestDetails")
    other_pest: str = Field(default="", alias="otherPest")
    signs_of_nutrient_deficiency: bool = Field(
        default=False, alias="Signs of nutrient deficiency"
    )
    nutrient_deficiency_details: Dict[str, bool] = Field(
        default_factory=dict, alias="nutrientDeficiencyDetails"
    )
    other_nutrient: str = Field(default="", alias="otherNutrient")
    water_stress: bool = Field(default=False, alias="Water stress (drought or flood)")
    water_stress_level: str = Field(default="", alias="waterStressLevel")
    lodging: bool = Field(default=False, alias="Lodging (bent/broken stems)")
    lodging_level: str = Field(default="", alias="lodgingLevel")
    weed_infestation: bool = Field(default=False, alias="Weed infestation")
    weed_infestation_level: str = Field(default="", alias="weedInfestationLevel")
    disease_symptoms: bool = Field(default=False, alias="Disease symptoms")
    disease_details: Dict[str, bool] = Field(default_factory=dict, alias="diseaseDetails")
    other_disease: str = Field(default="", alias="otherDisease")
    other: bool = Field(default=False, alias="Other")
    other_condition_text: str = Field(default="", alias="otherConditionText")


class TraitMeasurementsModel(BaseModel):
    culm_length: float = 0.0
    panicle_length: float = 0.0
    panicles_per_hill: int = 0
    hills_observed: int = 0


class CreateSubmissionRequest(BaseModel):
    field_id: str = ""
    other_field_name: str = ""
    date: datetime
    growth_stage: str
    observer_name: str
    plant_conditions: PlantConditionsModel = Field(default_factory=PlantConditionsModel)
    trait_measurements: TraitMeasurementsModel = Field(default_factory=TraitMeasurementsModel)
    coordinates: LocationModel = Field(default_factory=LocationModel)
    notes: str = ""
    images: list[str] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)
    audio: list[str] = Field(default_factory=list)

    @field_validator("date", mode="before")
    @classmethod
    def accept_bare_date(cls, value):
        return _parse_date(value)


class UpdateSubmissionRequest(BaseModel):
    """Partial update: only fields present in the payload are applied."""

    field_id: Optional[str] = None
    other_field_name: Optional[str] = None
    date: Optional[datetime] = None
    growth_stage: Optional[str] = None
    observer_name: Optional[str] = None
    plant_conditions: Optional[PlantConditionsModel] = None
    trait_measurements: Optional[TraitMeasurementsModel] = None
    coordinates: Optional[LocationModel] = None
    notes: Optional[str] = None
    images: Optional[list[str]] = None
    videos: Optional[list[str]] = None
    audio: Optional[list[str]] = None
    status: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def accept_bare_date(cls, value):
        return _parse_date(value)


def parse_update_request(raw: bytes) -> UpdateSubmissionRequest:
    """Validate a raw JSON update body, raising the API's 400 error on failure."""
    try:
        return UpdateSubmissionRequest.model_validate_json(raw)
    except PydanticValidationError as exc:
        raise ValidationError(describe_validation_errors(exc.errors())) from exc


class FieldResponse(BaseModel):
    id: str
    name: str
    location: str = ""
    coordinates: LocationModel = Field(default_factory=LocationModel)
    area: float = 0.0
    rice_variety: str = ""
    tentative_date: str = ""
    owner_id: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_field(cls, field: FieldRecord) -> "FieldResponse":
        return cls.model_validate(asdict(field))


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str
    field_id: str
    field: Optional[FieldResponse] = None
    other_field_name: str = ""
    date: datetime
    growth_stage: str
    plant_conditions: PlantConditionsModel
    trait_measurements: TraitMeasurementsModel
    coordinates: LocationModel
    notes: str = ""
    observer_name: str
    images: list[str]
    videos: list[str]
    audio: list[str]
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_submission(
        cls, submission: Submission, field: Optional[FieldRecord] = None
    ) -> "SubmissionResponse":
        data = asdict(submission)
        data["field"] = asdict(field) if field else None
        return cls.model_validate(data)


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse]
    page: int
    limit: int
    count: int


class CreateFieldRequest(BaseModel):
    name: str
    location: str
    rice_variety: str = ""
    tentative_date: str = ""
    coordinates: LocationModel = Field(default_factory=LocationModel)
    area: float = 0.0


class UpdateFieldRequest(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    rice_variety: Optional[str] = None
    tentative_date: Optional[str] = None
    coordinates: Optional[LocationModel] = None
    area: Optional[float] = None


class UserResponse(BaseModel):
    id: str
    email: str
    name: str = ""
    picture: str = ""
    role: str
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls.model_validate(asdict(user))


class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    picture: Optional[str] = None
    role: Optional[str] = None


class GoogleTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    user: UserResponse
    access_token: str
    refresh_token: str
    expires_in: int


class MessageResponse(BaseModel):
    success: Literal[True] = True
    message: str


class MediaUploadResponse(BaseModel):
    filename: str
    url: str
    file_type: str


class ErrorResponse(BaseModel):
    error: str
    message: str


class DashboardResponse(BaseModel):
    total_submissions: int
    submissions_by_status: Dict[str, int]
    submissions_by_stage: Dict[str, int]
    recent_submissions: list[SubmissionResponse]
    last_updated: datetime


class TrendsResponse(BaseModel):
    daily_submissions: Dict[str, int]
    stage_progression: Dict[str, list[str]]
    period: dict
