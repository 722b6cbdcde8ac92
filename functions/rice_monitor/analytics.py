"""
Aggregate views over submissions: dashboard counters, creation trends and
condition reports. Non-admin callers only ever see their own submissions.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from rice_monitor.db import DbClient
from rice_monitor.schemas import SubmissionResponse
from shared.types import PlantConditions, Submission, User, coerce_datetime, utcnow

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


def _selected(prefix: str, details: dict[str, bool]) -> list[str]:
    return [f"{prefix}: {name}" for name in sorted(details) if details[name]]


def condition_labels(conditions: PlantConditions) -> list[str]:
    """Labels counted for one submission, including sub-conditions and levels."""
    labels = []
    if conditions.healthy:
        labels.append("Healthy")
    if conditions.unhealthy:
        labels.append("Unhealthy")
    if conditions.signs_of_pest_infestation:
        labels.append("Signs of pest infestation")
        labels.extend(_selected("Pest", conditions.pest_details))
        if conditions.other_pest:
            labels.append(f"Pest: Other ({conditions.other_pest})")
    if conditions.signs_of_nutrient_deficiency:
        labels.append("Signs of nutrient deficiency")
        labels.extend(_selected("Nutrient", conditions.nutrient_deficiency_details))
        if conditions.other_nutrient:
            labels.append(f"Nutrient: Other ({conditions.other_nutrient})")
    if conditions.water_stress:
        labels.append("Water stress (drought or flood)")
        if conditions.water_stress_level:
            labels.append(f"Water Stress Level: {conditions.water_stress_level}")
    if conditions.lodging:
        labels.append("Lodging (bent/broken stems)")
        if conditions.lodging_level:
            labels.append(f"Lodging Level: {conditions.lodging_level}")
    if conditions.weed_infestation:
        labels.append("Weed infestation")
        if conditions.weed_infestation_level:
            labels.append(f"Weed Infestation Level: {conditions.weed_infestation_level}")
    if conditions.disease_symptoms:
        labels.append("Disease symptoms")
        labels.extend(_selected("Disease", conditions.disease_details))
        if conditions.other_disease:
            labels.append(f"Disease: Other ({conditions.other_disease})")
    if conditions.other:
        labels.append("Other")
        if conditions.other_condition_text:
            labels.append(f"Other Condition: {conditions.other_condition_text}")
    return labels


def _parse_day(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return coerce_datetime(datetime.strptime(value, "%Y-%m-%d"))
    except ValueError:
        logger.info("Ignoring malformed report date %r", value)
        return None


class AnalyticsService:
    def __init__(self, db: DbClient):
        self.db = db

    def _visible(self, actor: User) -> Iterable[Submission]:
        return self.db.iter_submissions(user_id=None if actor.is_admin else actor.id)

    def dashboard(self, actor: User) -> dict:
        by_status: Counter = Counter()
        by_stage: Counter = Counter()
        total = 0
        for submission in self._visible(actor):
            total += 1
            by_status[submission.status] += 1
            by_stage[submission.growth_stage] += 1

        recent = self.db.list_submissions(
            user_id=None if actor.is_admin else actor.id, limit=RECENT_LIMIT
        )
        return {
            "total_submissions": total,
            "submissions_by_status": dict(by_status),
            "submissions_by_stage": dict(by_stage),
            "recent_submissions": [SubmissionResponse.from_submission(s) for s in recent],
            "last_updated": utcnow(),
        }

    def trends(self, actor: User, days: int = 30, now: Optional[datetime] = None) -> dict:
        end = now or utcnow()
        start = end - timedelta(days=days)
        in_window = sorted(
            (s for s in self._visible(actor) if start <= s.created_at <= end),
            key=lambda s: s.created_at,
        )

        daily: Counter = Counter()
        progression: dict[str, list[str]] = defaultdict(list)
        for submission in in_window:
            daily[submission.created_at.astimezone(timezone.utc).strftime("%Y-%m-%d")] += 1
            if submission.field_id:
                progression[submission.field_id].append(submission.growth_stage)

        return {
            "daily_submissions": dict(daily),
            "stage_progression": dict(progression),
            "period": {
                "start_date": start.strftime("%Y-%m-%d"),
                "end_date": end.strftime("%Y-%m-%d"),
                "days": days,
            },
        }

    def report(
        self,
        actor: User,
        report_type: str = "summary",
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict:
        """
        Build a report over submissions created in the optional date window.
        `end_date` includes the whole day. Unknown types fall back to summary.
        """
        start = _parse_day(start_date)
        end = _parse_day(end_date)
        if end is not None:
            end = end + timedelta(days=1)

        submissions = [
            s
            for s in self._visible(actor)
            if (start is None or s.created_at >= start) and (end is None or s.created_at < end)
        ]
        if report_type == "detailed":
            return self._detailed(submissions)
        if report_type == "field_analysis":
            return self._field_analysis(submissions)
        return self._summary(submissions)

    def _summary(self, submissions: list[Submission]) -> dict:
        statuses: Counter = Counter()
        stages: Counter = Counter()
        conditions: Counter = Counter()
        for submission in submissions:
            statuses[submission.status] += 1
            stages[submission.growth_stage] += 1
            conditions.update(condition_labels(submission.plant_conditions))
        return {
            "total_submissions": len(submissions),
            "status_distribution": dict(statuses),
            "stage_distribution": dict(stages),
            "condition_frequency": dict(conditions),
            "generated_at": utcnow(),
        }

    def _detailed(self, submissions: list[Submission]) -> dict:
        return {
            "submissions": [SubmissionResponse.from_submission(s) for s in submissions],
            "total_count": len(submissions),
            "generated_at": utcnow(),
        }

    def _field_analysis(self, submissions: list[Submission]) -> dict:
        fields: dict[str, dict] = {}
        for submission in submissions:
            data = fields.setdefault(
                submission.field_id,
                {
                    "submission_count": 0,
                    "stages": Counter(),
                    "conditions": Counter(),
                    "latest_date": submission.date,
                },
            )
            data["submission_count"] += 1
            data["stages"][submission.growth_stage] += 1
            data["conditions"].update(condition_labels(submission.plant_conditions))
            if submission.date > data["latest_date"]:
                data["latest_date"] = submission.date

        for data in fields.values():
            data["stages"] = dict(data["stages"])
            data["conditions"] = dict(data["conditions"])
        return {
            "field_analysis": fields,
            "total_fields": len(fields),
            "generated_at": utcnow(),
        }
