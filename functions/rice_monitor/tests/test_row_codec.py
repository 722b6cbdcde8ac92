import unittest
from datetime import datetime, timedelta, timezone

from rice_monitor.row_codec import (
    HEADERS,
    field_name_for,
    format_number,
    format_selection,
    format_timestamp,
    iter_csv,
    submission_to_row,
)
from shared.types import (
    Field,
    Location,
    PlantConditions,
    Submission,
    TraitMeasurements,
)


def _submission(**overrides):
    values = dict(
        id="sub-1",
        user_id="user-1",
        date=datetime(2024, 3, 1, tzinfo=timezone.utc),
        growth_stage="Tillering",
        observer_name="Alice",
        created_at=datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc),
        updated_at=datetime(2024, 3, 2, 9, 0, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return Submission(**values)


class RowCodecTests(unittest.TestCase):
    def test_header_order(self):
        self.assertEqual(len(HEADERS), 39)
        self.assertEqual(HEADERS[:4], ["ID", "UserID", "FieldID", "FieldName"])
        self.assertEqual(HEADERS[-3:], ["Images", "Videos", "Audio"])

    def test_row_width_matches_headers(self):
        self.assertEqual(len(submission_to_row(_submission(), "")), len(HEADERS))

        populated = _submission(
            field_id="f1",
            notes="wet season",
            coordinates=Location(latitude=14.5995, longitude=120.9842),
            trait_measurements=TraitMeasurements(
                culm_length=85.5, panicle_length=22.25, panicles_per_hill=12, hills_observed=10
            ),
            plant_conditions=PlantConditions(
                signs_of_pest_infestation=True,
                pest_details={"Stem borer": True, "Leaf folder": True, "Rats": False},
                water_stress=True,
                water_stress_level="Severe",
                other=True,
                other_condition_text="hail",
            ),
            images=["https://x/a.jpg", "https://x/b.jpg"],
            audio=["https://x/c.mp3"],
        )
        row = submission_to_row(populated, "North paddy")
        self.assertEqual(len(row), len(HEADERS))
        cells = dict(zip(HEADERS, row))
        self.assertEqual(cells["FieldName"], "North paddy")
        self.assertEqual(cells["Latitude"], "14.5995")
        self.assertEqual(cells["CulmLength"], "85.5")
        self.assertEqual(cells["PaniclesPerHill"], "12")
        self.assertEqual(cells["SignsOfPestInfestation"], "true")
        self.assertEqual(cells["Healthy"], "false")
        self.assertEqual(cells["PestDetails"], "Leaf folder, Stem borer")
        self.assertEqual(cells["WaterStressLevel"], "Severe")
        self.assertEqual(cells["OtherConditionText"], "hail")
        self.assertEqual(cells["Images"], "https://x/a.jpg,https://x/b.jpg")
        self.assertEqual(cells["Videos"], "")
        self.assertEqual(cells["CreatedAt"], "2024-03-01T08:30:00Z")

    def test_selection_is_sorted(self):
        self.assertEqual(format_selection({"b": True, "a": True, "c": False}), "a, b")
        self.assertEqual(format_selection({}), "")
        self.assertEqual(format_selection(None), "")

    def test_numbers_keep_full_precision(self):
        self.assertEqual(format_number(12.5), "12.5")
        self.assertEqual(format_number(0.1), "0.1")
        self.assertEqual(format_number(1e-7), "0.0000001")
        self.assertEqual(format_number(123456789.123), "123456789.123")

    def test_timestamps_render_in_utc(self):
        self.assertEqual(
            format_timestamp(datetime(2024, 3, 1, 7, 0, tzinfo=timezone(timedelta(hours=7)))),
            "2024-03-01T00:00:00Z",
        )
        self.assertEqual(format_timestamp(datetime(2024, 3, 1, 12, 0, 0, 999)), "2024-03-01T12:00:00Z")

    def test_field_name_falls_back_to_other_field_name(self):
        field = Field(id="f1", name="North paddy")
        self.assertEqual(field_name_for(_submission(field_id="f1"), field), "North paddy")
        self.assertEqual(field_name_for(_submission(field_id="f1"), None), "")
        self.assertEqual(
            field_name_for(_submission(field_id="others", other_field_name="Plot 9"), field),
            "Plot 9",
        )
        self.assertEqual(
            field_name_for(_submission(field_id="", other_field_name="Plot 9"), None), "Plot 9"
        )

    def test_iter_csv_starts_with_header(self):
        chunks = list(iter_csv([submission_to_row(_submission(notes='says "hi"'), "")]))
        self.assertEqual(len(chunks), 2)
        self.assertEqual(chunks[0], ",".join(HEADERS) + "\n")
        self.assertIn('"says ""hi"""', chunks[1])


if __name__ == "__main__":
    unittest.main()
