import unittest
from datetime import datetime, timedelta, timezone

from rice_monitor.analytics import AnalyticsService, condition_labels
from rice_monitor.db import InMemoryDbClient
from shared.types import PlantConditions, Role, Submission, User

NOW = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)


class ConditionLabelTests(unittest.TestCase):
    def test_labels_include_details_and_levels(self):
        labels = condition_labels(
            PlantConditions(
                unhealthy=True,
                signs_of_pest_infestation=True,
                pest_details={"Stem borer": True, "Brown planthopper": True, "Rats": False},
                other_pest="snails",
                lodging=True,
                lodging_level="Moderate",
            )
        )
        self.assertEqual(
            labels,
            [
                "Unhealthy",
                "Signs of pest infestation",
                "Pest: Brown planthopper",
                "Pest: Stem borer",
                "Pest: Other (snails)",
                "Lodging (bent/broken stems)",
                "Lodging Level: Moderate",
            ],
        )

    def test_details_without_parent_flag_are_ignored(self):
        self.assertEqual(
            condition_labels(PlantConditions(disease_details={"Blast": True})), []
        )


class AnalyticsServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.service = AnalyticsService(self.db)
        self.alice = User(id="alice", email="alice@example.com")
        self.admin = User(id="root", email="root@example.com", role=Role.ADMIN.value)

    def _save(self, submission_id, user_id="alice", days_ago=0, **overrides):
        created = NOW - timedelta(days=days_ago)
        values = dict(
            id=submission_id,
            user_id=user_id,
            date=created,
            growth_stage="Tillering",
            observer_name="Alice",
            created_at=created,
            updated_at=created,
        )
        values.update(overrides)
        self.db.save_submission(Submission(**values))

    def test_dashboard_is_scoped_to_caller(self):
        self._save("a1", days_ago=2)
        self._save("a2", days_ago=1, growth_stage="Booting", status="approved")
        self._save("b1", user_id="bob")

        mine = self.service.dashboard(self.alice)
        self.assertEqual(mine["total_submissions"], 2)
        self.assertEqual(mine["submissions_by_status"], {"submitted": 1, "approved": 1})
        self.assertEqual(mine["submissions_by_stage"], {"Tillering": 1, "Booting": 1})
        self.assertEqual([s.id for s in mine["recent_submissions"]], ["a2", "a1"])

        everything = self.service.dashboard(self.admin)
        self.assertEqual(everything["total_submissions"], 3)

    def test_dashboard_recent_is_capped(self):
        for index in range(7):
            self._save(f"s{index}", days_ago=index)
        recent = self.service.dashboard(self.alice)["recent_submissions"]
        self.assertEqual([s.id for s in recent], ["s0", "s1", "s2", "s3", "s4"])

    def test_trends_window_and_progression(self):
        self._save("old", days_ago=40, field_id="f1")
        self._save("first", days_ago=10, field_id="f1", growth_stage="Seedling")
        self._save("second", days_ago=3, field_id="f1", growth_stage="Tillering")
        self._save("loose", days_ago=3)

        trends = self.service.trends(self.alice, days=30, now=NOW)
        self.assertEqual(trends["daily_submissions"], {"2024-03-21": 1, "2024-03-28": 2})
        self.assertEqual(trends["stage_progression"], {"f1": ["Seedling", "Tillering"]})
        self.assertEqual(
            trends["period"],
            {"start_date": "2024-03-01", "end_date": "2024-03-31", "days": 30},
        )

    def test_summary_report(self):
        self._save(
            "a1",
            plant_conditions=PlantConditions(healthy=True),
        )
        self._save(
            "a2",
            plant_conditions=PlantConditions(
                healthy=True, water_stress=True, water_stress_level="Mild"
            ),
        )
        report = self.service.report(self.alice, "summary")
        self.assertEqual(report["total_submissions"], 2)
        self.assertEqual(
            report["condition_frequency"],
            {
                "Healthy": 2,
                "Water stress (drought or flood)": 1,
                "Water Stress Level: Mild": 1,
            },
        )
        self.assertIn("generated_at", report)

    def test_report_date_window_includes_end_day(self):
        self._save("before", days_ago=5)
        self._save("inside", days_ago=2)
        self._save("end_day", days_ago=0)

        report = self.service.report(
            self.alice, "detailed", start_date="2024-03-27", end_date="2024-03-31"
        )
        self.assertEqual(report["total_count"], 2)
        self.assertEqual(
            sorted(s.id for s in report["submissions"]), ["end_day", "inside"]
        )

    def test_field_analysis_report(self):
        self._save("a1", days_ago=4, field_id="f1")
        self._save("a2", days_ago=1, field_id="f1", growth_stage="Booting")
        self._save("a3", days_ago=1, field_id="f2")

        report = self.service.report(self.alice, "field_analysis")
        self.assertEqual(report["total_fields"], 2)
        f1 = report["field_analysis"]["f1"]
        self.assertEqual(f1["submission_count"], 2)
        self.assertEqual(f1["stages"], {"Tillering": 1, "Booting": 1})
        self.assertEqual(f1["latest_date"], NOW - timedelta(days=1))

    def test_unknown_report_type_falls_back_to_summary(self):
        self._save("a1")
        report = self.service.report(self.alice, "weekly")
        self.assertEqual(report["total_submissions"], 1)
        self.assertIn("status_distribution", report)


if __name__ == "__main__":
    unittest.main()
