import unittest
from unittest.mock import Mock

from fastapi.testclient import TestClient

from rice_monitor.app import create_app
from rice_monitor.auth import (
    REFRESH_TOKEN,
    AuthConfig,
    GoogleTokenInfo,
    GoogleTokenVerifier,
    TokenService,
)
from rice_monitor.config import get_settings
from rice_monitor.db import InMemoryDbClient
from rice_monitor.dependencies import get_db_client, get_google_verifier, get_token_service
from rice_monitor.errors import InvalidTokenError
from shared.types import Role, User


class FakeVerifier:
    def __init__(self):
        self.tokens = {"good-token": GoogleTokenInfo(email="carol@example.com")}

    def verify(self, access_token):
        if access_token not in self.tokens:
            raise InvalidTokenError("Invalid Google token")
        return self.tokens[access_token]


class TokenServiceTests(unittest.TestCase):
    def setUp(self):
        self.user = User(id="u1", email="alice@example.com", role=Role.RESEARCHER.value)
        self.tokens = TokenService(AuthConfig(jwt_secret="secret"))

    def test_access_token_claims(self):
        pair = self.tokens.issue_pair(self.user)
        self.assertEqual(pair.expires_in, 3600)
        claims = self.tokens.decode(pair.access_token)
        self.assertEqual(claims.user_id, "u1")
        self.assertEqual(claims.email, "alice@example.com")
        self.assertEqual(claims.role, "researcher")

    def test_token_types_are_not_interchangeable(self):
        pair = self.tokens.issue_pair(self.user)
        with self.assertRaises(InvalidTokenError):
            self.tokens.decode(pair.refresh_token)
        with self.assertRaises(InvalidTokenError):
            self.tokens.decode(pair.access_token, expected_type=REFRESH_TOKEN)
        self.assertEqual(
            self.tokens.decode(pair.refresh_token, expected_type=REFRESH_TOKEN).user_id, "u1"
        )

    def test_expired_and_foreign_tokens_are_rejected(self):
        expired = TokenService(AuthConfig(jwt_secret="secret", access_token_ttl_seconds=-10))
        with self.assertRaises(InvalidTokenError):
            self.tokens.decode(expired.issue_pair(self.user).access_token)

        foreign = TokenService(AuthConfig(jwt_secret="other"))
        with self.assertRaises(InvalidTokenError):
            self.tokens.decode(foreign.issue_pair(self.user).access_token)


class GoogleTokenVerifierTests(unittest.TestCase):
    def test_verify_reads_email(self):
        session = Mock()
        session.get.return_value = Mock(
            status_code=200, json=Mock(return_value={"email": "a@example.com", "sub": "42"})
        )
        info = GoogleTokenVerifier(session=session).verify("tok")
        self.assertEqual(info.email, "a@example.com")
        self.assertEqual(info.google_user_id, "42")
        self.assertEqual(session.get.call_args.kwargs["params"], {"access_token": "tok"})

    def test_rejected_token(self):
        session = Mock()
        session.get.return_value = Mock(status_code=400)
        with self.assertRaises(InvalidTokenError):
            GoogleTokenVerifier(session=session).verify("tok")


class AuthApiTests(unittest.TestCase):
    def setUp(self):
        self.prefix = get_settings().api_prefix
        self.db = InMemoryDbClient()
        self.tokens = TokenService(AuthConfig(jwt_secret="test-secret"))
        app = create_app()
        app.dependency_overrides[get_db_client] = lambda: self.db
        app.dependency_overrides[get_token_service] = lambda: self.tokens
        app.dependency_overrides[get_google_verifier] = FakeVerifier
        self.client = TestClient(app)

    def _login(self):
        return self.client.post(f"{self.prefix}/auth/google", json={"token": "good-token"})

    def test_google_login_creates_observer_once(self):
        first = self._login()
        self.assertEqual(first.status_code, 200)
        payload = first.json()
        self.assertEqual(payload["user"]["email"], "carol@example.com")
        self.assertEqual(payload["user"]["role"], "observer")
        self.assertEqual(payload["expires_in"], 3600)

        second = self._login().json()
        self.assertEqual(second["user"]["id"], payload["user"]["id"])
        self.assertIsNotNone(self.db.find_user_by_email("carol@example.com"))

    def test_invalid_google_token(self):
        response = self.client.post(f"{self.prefix}/auth/google", json={"token": "bad"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "invalid_token")

    def test_missing_token_is_400(self):
        response = self.client.post(f"{self.prefix}/auth/google", json={})
        self.assertEqual(response.status_code, 400)

    def test_me_and_refresh(self):
        tokens = self._login().json()
        me = self.client.get(
            f"{self.prefix}/auth/me",
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["email"], "carol@example.com")

        refreshed = self.client.post(
            f"{self.prefix}/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        self.assertEqual(refreshed.status_code, 200)
        self.assertEqual(refreshed.json()["user"]["id"], tokens["user"]["id"])

        wrong_type = self.client.post(
            f"{self.prefix}/auth/refresh", json={"refresh_token": tokens["access_token"]}
        )
        self.assertEqual(wrong_type.status_code, 401)

    def test_refresh_for_deleted_user_is_404(self):
        tokens = self._login().json()
        self.db.delete_user(tokens["user"]["id"])
        response = self.client.post(
            f"{self.prefix}/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        self.assertEqual(response.status_code, 404)

    def test_logout(self):
        tokens = self._login().json()
        response = self.client.post(
            f"{self.prefix}/auth/logout",
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])


if __name__ == "__main__":
    unittest.main()
