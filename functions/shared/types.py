# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any, Dict, List, Optional

from dacite import Config, from_dict

# Submissions that are not linked to a registered field carry this id.
OTHERS_FIELD_ID = "others"


class Role(StrEnum):
    ADMIN = "admin"
    RESEARCHER = "researcher"
    OBSERVER = "observer"


class SubmissionStatus(StrEnum):
    """Known status labels. Stored values are free strings."""

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class MediaKind(StrEnum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_datetime(value: Any) -> datetime:
    """Accepts datetimes, ISO-8601 strings and bare YYYY-MM-DD dates."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        if len(raw) == 10:
            return coerce_datetime(date.fromisoformat(raw))
        return coerce_datetime(datetime.fromisoformat(raw))
    raise TypeError(f"Cannot convert {type(value).__name__} to datetime")


DACITE_CONFIG = Config(
    type_hooks={datetime: coerce_datetime, float: float, int: int}
)


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass
class Location:
    latitude: float = 0.0
    longitude: float = 0.0


# Python attribute -> stored/wire key. The stored keys predate this service
# and are shared with the web client, so they are kept verbatim.
PLANT_CONDITION_KEYS = {
    "healthy": "Healthy",
    "unhealthy": "Unhealthy",
    "signs_of_pest_infestation": "Signs of pest infestation",
    "pest_details": "pestDetails",
    "other_pest": "otherPest",
    "signs_of_nutrient_deficiency": "Signs of nutrient deficiency",
    "nutrient_deficiency_details": "nutrientDeficiencyDetails",
    "other_nutrient": "otherNutrient",
    "water_stress": "Water stress (drought or flood)",
    "water_stress_level": "waterStressLevel",
    "lodging": "Lodging (bent/broken stems)",
    "lodging_level": "lodgingLevel",
    "weed_infestation": "Weed infestation",
    "weed_infestation_level": "weedInfestationLevel",
    "disease_symptoms": "Disease symptoms",
    "disease_details": "diseaseDetails",
    "other_disease": "otherDisease",
    "other": "Other",
    "other_condition_text": "otherConditionText",
}
_PLANT_CONDITION_ATTRS = {key: attr for attr, key in PLANT_CONDITION_KEYS.items()}


@dataclass
class PlantConditions:
    """Checklist of observed plant conditions.

    Healthy and unhealthy are not mutually exclusive here; the web form is
    the only place that keeps them apart.
    """

    healthy: bool = False
    unhealthy: bool = False
    signs_of_pest_infestation: bool = False
    pest_details: Dict[str, bool] = field(default_factory=dict)
    other_pest: str = ""
    signs_of_nutrient_deficiency: bool = False
    nutrient_deficiency_details: Dict[str, bool] = field(default_factory=dict)
    other_nutrient: str = ""
    water_stress: bool = False
    water_stress_level: str = ""
    lodging: bool = False
    lodging_level: str = ""
    weed_infestation: bool = False
    weed_infestation_level: str = ""
    disease_symptoms: bool = False
    disease_details: Dict[str, bool] = field(default_factory=dict)
    other_disease: str = ""
    other: bool = False
    other_condition_text: str = ""

    @classmethod
    def from_document(cls, data: Optional[Dict[str, Any]]) -> "PlantConditions":
        renamed = {}
        for key, value in (data or {}).items():
            attr = _PLANT_CONDITION_ATTRS.get(key, key)
            if attr in PLANT_CONDITION_KEYS and value is not None:
                renamed[attr] = value
        return from_dict(cls, renamed, config=DACITE_CONFIG)

    def to_document(self) -> Dict[str, Any]:
        return {
            PLANT_CONDITION_KEYS[attr]: value
            for attr, value in asdict(self).items()
        }


@dataclass
class TraitMeasurements:
    culm_length: float = 0.0
    panicle_length: float = 0.0
    panicles_per_hill: int = 0
    hills_observed: int = 0


@dataclass
class Submission:
    id: str
    user_id: str
    date: datetime
    growth_stage: str
    observer_name: str
    field_id: str = ""
    other_field_name: str = ""
    coordinates: Location = field(default_factory=Location)
    plant_conditions: PlantConditions = field(default_factory=PlantConditions)
    trait_measurements: TraitMeasurements = field(default_factory=TraitMeasurements)
    notes: str = ""
    images: List[str] = field(default_factory=list)
    videos: List[str] = field(default_factory=list)
    audio: List[str] = field(default_factory=list)
    status: str = SubmissionStatus.SUBMITTED.value
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_linked_to_field(self) -> bool:
        return bool(self.field_id) and self.field_id != OTHERS_FIELD_ID

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "Submission":
        payload = _drop_none(dict(data))
        conditions = PlantConditions.from_document(payload.pop("plant_conditions", None))
        payload["plant_conditions"] = asdict(conditions)
        for key in ("coordinates", "trait_measurements"):
            if key in payload:
                payload[key] = _drop_none(payload[key])
        return from_dict(cls, payload, config=DACITE_CONFIG)

    def to_document(self) -> Dict[str, Any]:
        doc = asdict(self)
        doc["plant_conditions"] = self.plant_conditions.to_document()
        return doc


@dataclass
class Field:
    id: str
    name: str
    location: str = ""
    coordinates: Location = field(default_factory=Location)
    area: float = 0.0
    rice_variety: str = ""
    tentative_date: str = ""
    owner_id: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "Field":
        payload = _drop_none(dict(data))
        if "coordinates" in payload:
            payload["coordinates"] = _drop_none(payload["coordinates"])
        return from_dict(cls, payload, config=DACITE_CONFIG)

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class User:
    id: str
    email: str
    name: str = ""
    picture: str = ""
    role: str = Role.OBSERVER.value
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_login_at: datetime = field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "User":
        return from_dict(cls, _drop_none(dict(data)), config=DACITE_CONFIG)

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SheetRegistration:
    """A spreadsheet tab that receives a copy of every submission."""

    spreadsheet_id: str
    spreadsheet_name: str

    @property
    def document_id(self) -> str:
        # Firestore document ids cannot contain "/".
        return f"{self.spreadsheet_id}:{self.spreadsheet_name}".replace("/", "_")

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "SheetRegistration":
        return from_dict(cls, _drop_none(dict(data)), config=DACITE_CONFIG)

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)
