import unittest
from datetime import datetime, timedelta, timezone

from rice_monitor.db import SqlDbClient
from shared.types import (
    Field,
    MediaKind,
    PlantConditions,
    SheetRegistration,
    Submission,
    User,
)


class SqlDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL record store.
    """

    def setUp(self):
        self.db = SqlDbClient("sqlite+pysqlite:///:memory:")
        self.base = datetime(2024, 3, 1, tzinfo=timezone.utc)

    def _submission(self, submission_id, user_id="alice", minutes=0, **overrides):
        return Submission(
            id=submission_id,
            user_id=user_id,
            date=self.base,
            growth_stage="Tillering",
            observer_name="Alice",
            created_at=self.base + timedelta(minutes=minutes),
            updated_at=self.base + timedelta(minutes=minutes),
            **overrides,
        )

    def test_submission_roundtrip(self):
        submission = self._submission(
            "sub-1",
            plant_conditions=PlantConditions(
                healthy=True, disease_details={"Blast": True}, other_disease="rot"
            ),
        )
        self.db.save_submission(submission)

        loaded = self.db.get_submission("sub-1")
        self.assertEqual(loaded, submission)
        self.assertIsNone(self.db.get_submission("missing"))

    def test_partial_update(self):
        self.db.save_submission(self._submission("sub-1", notes="before"))
        updated = self.db.update_submission(
            "sub-1", {"notes": "after", "updated_at": self.base + timedelta(days=1)}
        )
        self.assertEqual(updated.notes, "after")
        self.assertEqual(updated.growth_stage, "Tillering")
        self.assertEqual(updated.updated_at, self.base + timedelta(days=1))
        self.assertIsNone(self.db.update_submission("missing", {"notes": "x"}))

    def test_append_media(self):
        self.db.save_submission(self._submission("sub-1"))
        self.db.append_submission_media("sub-1", MediaKind.IMAGE, "https://x/1.jpg")
        updated = self.db.append_submission_media("sub-1", MediaKind.AUDIO, "https://x/2.mp3")
        self.assertEqual(updated.images, ["https://x/1.jpg"])
        self.assertEqual(updated.audio, ["https://x/2.mp3"])
        self.assertGreater(updated.updated_at, self.base)
        self.assertIsNone(
            self.db.append_submission_media("missing", MediaKind.VIDEO, "https://x/3.mp4")
        )

    def test_list_filters_and_orders_newest_first(self):
        self.db.save_submission(self._submission("old", minutes=1))
        self.db.save_submission(self._submission("new", minutes=5, field_id="f1"))
        self.db.save_submission(self._submission("other", user_id="bob", minutes=3))

        everything = self.db.list_submissions()
        self.assertEqual([s.id for s in everything], ["new", "other", "old"])

        mine = self.db.list_submissions(user_id="alice")
        self.assertEqual([s.id for s in mine], ["new", "old"])

        by_field = self.db.list_submissions(field_id="f1")
        self.assertEqual([s.id for s in by_field], ["new"])

        page = self.db.list_submissions(offset=1, limit=1)
        self.assertEqual([s.id for s in page], ["other"])

    def test_delete_submission(self):
        self.db.save_submission(self._submission("sub-1"))
        self.assertTrue(self.db.delete_submission("sub-1"))
        self.assertFalse(self.db.delete_submission("sub-1"))

    def test_fields_users_and_sheets(self):
        self.db.save_field(Field(id="f1", name="North paddy", area=1.5))
        self.assertEqual(self.db.get_field("f1").area, 1.5)
        self.assertEqual([f.id for f in self.db.list_fields()], ["f1"])

        self.db.save_user(User(id="u1", email="alice@example.com"))
        self.assertEqual(self.db.find_user_by_email("alice@example.com").id, "u1")
        self.assertIsNone(self.db.find_user_by_email("nobody@example.com"))

        self.db.add_sheet(SheetRegistration(spreadsheet_id="s1", spreadsheet_name="Obs"))
        self.assertEqual(
            self.db.list_sheets(),
            [SheetRegistration(spreadsheet_id="s1", spreadsheet_name="Obs")],
        )

    def test_tabs_of_one_spreadsheet_are_separate_registrations(self):
        self.db.add_sheet(SheetRegistration(spreadsheet_id="s1", spreadsheet_name="Tab A"))
        self.db.add_sheet(SheetRegistration(spreadsheet_id="s1", spreadsheet_name="Tab B"))
        self.db.add_sheet(SheetRegistration(spreadsheet_id="s1", spreadsheet_name="Tab B"))

        self.assertEqual(
            sorted(sheet.spreadsheet_name for sheet in self.db.list_sheets()),
            ["Tab A", "Tab B"],
        )


if __name__ == "__main__":
    unittest.main()
