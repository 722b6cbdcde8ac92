import unittest

from fastapi.testclient import TestClient

from rice_monitor.app import create_app
from rice_monitor.auth import AuthConfig, TokenService
from rice_monitor.config import get_settings
from rice_monitor.db import InMemoryDbClient
from rice_monitor.dependencies import get_db_client, get_token_service
from shared.types import Role, User


class FieldAndUserApiTests(unittest.TestCase):
    def setUp(self):
        self.prefix = get_settings().api_prefix
        self.db = InMemoryDbClient()
        self.tokens = TokenService(AuthConfig(jwt_secret="test-secret"))

        app = create_app()
        app.dependency_overrides[get_db_client] = lambda: self.db
        app.dependency_overrides[get_token_service] = lambda: self.tokens
        self.client = TestClient(app)

        self.alice = self._user("alice", Role.OBSERVER)
        self.bob = self._user("bob", Role.RESEARCHER)
        self.admin = self._user("root", Role.ADMIN)

    def _user(self, user_id, role):
        user = User(id=user_id, email=f"{user_id}@example.com", name=user_id, role=role.value)
        self.db.save_user(user)
        return user

    def _headers(self, user):
        return {"Authorization": f"Bearer {self.tokens.issue_pair(user).access_token}"}

    def _create_field(self, user, **overrides):
        payload = {"name": "North paddy", "location": "Laguna", "area": 1.5}
        payload.update(overrides)
        return self.client.post(
            f"{self.prefix}/fields", json=payload, headers=self._headers(user)
        )

    def test_create_and_list_fields(self):
        response = self._create_field(self.alice, coordinates={"latitude": 14.2, "longitude": 121.1})
        self.assertEqual(response.status_code, 201)
        field = response.json()
        self.assertEqual(field["owner_id"], "alice")
        self.assertEqual(field["coordinates"]["latitude"], 14.2)

        listed = self.client.get(f"{self.prefix}/fields", headers=self._headers(self.bob))
        self.assertEqual([f["id"] for f in listed.json()], [field["id"]])

        fetched = self.client.get(
            f"{self.prefix}/fields/{field['id']}", headers=self._headers(self.bob)
        )
        self.assertEqual(fetched.json()["name"], "North paddy")

    def test_field_requires_name_and_location(self):
        self.assertEqual(self._create_field(self.alice, name="  ").status_code, 400)
        response = self.client.post(
            f"{self.prefix}/fields", json={"name": "x"}, headers=self._headers(self.alice)
        )
        self.assertEqual(response.status_code, 400)

    def test_field_update_and_delete_need_owner_or_admin(self):
        field_id = self._create_field(self.alice).json()["id"]
        url = f"{self.prefix}/fields/{field_id}"

        response = self.client.put(url, json={"name": "Renamed"}, headers=self._headers(self.bob))
        self.assertEqual(response.status_code, 403)

        response = self.client.put(
            url, json={"rice_variety": "NSIC Rc222"}, headers=self._headers(self.alice)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["rice_variety"], "NSIC Rc222")
        self.assertEqual(response.json()["name"], "North paddy")

        self.assertEqual(self.client.delete(url, headers=self._headers(self.bob)).status_code, 403)
        self.assertEqual(self.client.delete(url, headers=self._headers(self.admin)).status_code, 200)
        self.assertEqual(self.client.get(url, headers=self._headers(self.alice)).status_code, 404)

    def test_user_can_read_and_update_self_only(self):
        own = self.client.get(f"{self.prefix}/users/alice", headers=self._headers(self.alice))
        self.assertEqual(own.status_code, 200)
        self.assertEqual(own.json()["email"], "alice@example.com")

        other = self.client.get(f"{self.prefix}/users/bob", headers=self._headers(self.alice))
        self.assertEqual(other.status_code, 403)

        renamed = self.client.put(
            f"{self.prefix}/users/alice", json={"name": "Alice R."}, headers=self._headers(self.alice)
        )
        self.assertEqual(renamed.json()["name"], "Alice R.")

    def test_role_changes_are_admin_only(self):
        response = self.client.put(
            f"{self.prefix}/users/alice", json={"role": "admin"}, headers=self._headers(self.alice)
        )
        self.assertEqual(response.status_code, 403)

        response = self.client.put(
            f"{self.prefix}/users/alice", json={"role": "wizard"}, headers=self._headers(self.admin)
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.put(
            f"{self.prefix}/users/alice", json={"role": "researcher"}, headers=self._headers(self.admin)
        )
        self.assertEqual(response.json()["role"], "researcher")

    def test_delete_user(self):
        response = self.client.delete(f"{self.prefix}/users/bob", headers=self._headers(self.alice))
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f"{self.prefix}/users/bob", headers=self._headers(self.admin))
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.db.get_user("bob"))

        response = self.client.delete(f"{self.prefix}/users/bob", headers=self._headers(self.admin))
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
