"""
Flat row encoding of a submission, shared by the spreadsheet mirror and the
CSV export.

`submission_to_row` is pure: every cell is a string and the cell order
always matches `HEADERS`.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Iterator, Mapping, Optional

from shared.types import Field, Submission

HEADERS = [
    "ID", "UserID", "FieldID", "FieldName", "Date", "GrowthStage",
    "Notes", "ObserverName", "Status", "CreatedAt", "UpdatedAt",
    "Latitude", "Longitude",
    "CulmLength", "PanicleLength", "PaniclesPerHill", "HillsObserved",
    "Healthy", "Unhealthy", "SignsOfPestInfestation", "PestDetails", "OtherPest",
    "SignsOfNutrientDeficiency", "NutrientDeficiencyDetails", "OtherNutrient",
    "WaterStress", "WaterStressLevel", "Lodging", "LodgingLevel",
    "WeedInfestation", "WeedInfestationLevel", "DiseaseSymptoms", "DiseaseDetails", "OtherDisease",
    "Other", "OtherConditionText",
    "Images", "Videos", "Audio",
]


def format_timestamp(value: datetime) -> str:
    """RFC 3339 in UTC with second precision, e.g. 2024-03-01T00:00:00Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc_value = value.astimezone(timezone.utc).replace(microsecond=0)
    return utc_value.isoformat().replace("+00:00", "Z")


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def format_number(value: float) -> str:
    # repr() is the shortest round-tripping form; Decimal avoids exponents.
    return format(Decimal(repr(float(value))), "f")


def format_selection(selection: Optional[Mapping[str, bool]]) -> str:
    """Selected keys of a multi-select map, sorted for reproducible rows."""
    return ", ".join(sorted(key for key, selected in (selection or {}).items() if selected))


def format_media(urls: Iterable[str]) -> str:
    # URLs are joined verbatim; a comma inside a URL is not escaped.
    return ",".join(urls)


def field_name_for(submission: Submission, field: Optional[Field]) -> str:
    """Display name for the FieldName column."""
    if not submission.is_linked_to_field:
        return submission.other_field_name
    return field.name if field else ""


def submission_to_row(submission: Submission, field_name: str) -> list[str]:
    conditions = submission.plant_conditions
    traits = submission.trait_measurements
    return [
        submission.id,
        submission.user_id,
        submission.field_id,
        field_name,
        format_timestamp(submission.date),
        submission.growth_stage,
        submission.notes,
        submission.observer_name,
        submission.status,
        format_timestamp(submission.created_at),
        format_timestamp(submission.updated_at),
        format_number(submission.coordinates.latitude),
        format_number(submission.coordinates.longitude),
        format_number(traits.culm_length),
        format_number(traits.panicle_length),
        str(int(traits.panicles_per_hill)),
        str(int(traits.hills_observed)),
        format_bool(conditions.healthy),
        format_bool(conditions.unhealthy),
        format_bool(conditions.signs_of_pest_infestation),
        format_selection(conditions.pest_details),
        conditions.other_pest,
        format_bool(conditions.signs_of_nutrient_deficiency),
        format_selection(conditions.nutrient_deficiency_details),
        conditions.other_nutrient,
        format_bool(conditions.water_stress),
        conditions.water_stress_level,
        format_bool(conditions.lodging),
        conditions.lodging_level,
        format_bool(conditions.weed_infestation),
        conditions.weed_infestation_level,
        format_bool(conditions.disease_symptoms),
        format_selection(conditions.disease_details),
        conditions.other_disease,
        format_bool(conditions.other),
        conditions.other_condition_text,
        format_media(submission.images),
        format_media(submission.videos),
        format_media(submission.audio),
    ]


def iter_csv(rows: Iterable[list[str]]) -> Iterator[str]:
    """Yield CSV text line by line: the header first, then each row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in _with_header(rows):
        writer.writerow(row)
        yield buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)


def _with_header(rows: Iterable[list[str]]) -> Iterator[list[str]]:
    yield HEADERS
    yield from rows
