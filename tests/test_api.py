"""End-to-end tests for the accounts HTTP API."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from typing import List

from fastapi.testclient import TestClient

from accounts import create_application
from accounts.config import Settings
from accounts.models import UserAccount


class FailingNotifier:
    async def send_verification(self, account: UserAccount) -> None:
        raise RuntimeError("mail relay down")


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: List[UserAccount] = []

    async def send_verification(self, account: UserAccount) -> None:
        self.sent.append(account)


class AccountsAPITests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.settings = Settings(database_path=Path(self._tempdir.name) / "accounts.sqlite3")
        self.notifier = RecordingNotifier()
        app = create_application(self.settings, notifier=self.notifier)
        self.client = TestClient(app)

    def tearDown(self) -> None:
        self.client.close()
        self._tempdir.cleanup()

    def _create(self, email: str = "alice@example.com", username: str = "alice"):
        return self.client.post(
            "/v1/users",
            json={"email": email, "username": username, "password": "SuperSecret123!"},
        )

    def test_healthcheck(self) -> None:
        response = self.client.get("/healthz")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_account_lifecycle(self) -> None:
        created = self._create()
        self.assertEqual(created.status_code, 201, created.text)
        payload = created.json()
        self.assertIn("message", payload)
        user = payload["user"]
        self.assertEqual(user["email"], "alice@example.com")
        self.assertNotIn("password", user)
        self.assertNotIn("password_hash", user)
        self.assertEqual(len(self.notifier.sent), 1)

        by_id = self.client.get(f"/v1/users/{user['id']}")
        self.assertEqual(by_id.status_code, 200, by_id.text)
        self.assertEqual(by_id.json()["username"], "alice")

        by_name = self.client.get("/v1/users/alice")
        self.assertEqual(by_name.status_code, 200, by_name.text)
        self.assertEqual(by_name.json()["id"], user["id"])

        edited = self.client.patch(f"/v1/users/{user['id']}", json={"username": "newname"})
        self.assertEqual(edited.status_code, 200, edited.text)
        self.assertEqual(edited.json()["user"]["username"], "newname")
        self.assertEqual(edited.json()["user"]["email"], "alice@example.com")

        deleted = self.client.delete(f"/v1/users/{user['id']}")
        self.assertEqual(deleted.status_code, 200, deleted.text)

        missing = self.client.get(f"/v1/users/{user['id']}")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["error"], "not_found")

        again = self.client.delete(f"/v1/users/{user['id']}")
        self.assertEqual(again.status_code, 404)

    def test_list_users(self) -> None:
        for index in range(3):
            self.assertEqual(self._create(f"user{index}@example.com", f"user{index}").status_code, 201)

        response = self.client.get("/v1/users")
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(len(response.json()["users"]), 3)

    def test_invalid_email_returns_400(self) -> None:
        response = self._create(email="not-an-email")
        self.assertEqual(response.status_code, 400, response.text)
        body = response.json()
        self.assertEqual(body["error"], "validation_error")
        self.assertIn("email", [error["field"] for error in body["errors"]])

    def test_non_object_body_returns_400(self) -> None:
        response = self.client.post("/v1/users", json=["alice@example.com"])
        self.assertEqual(response.status_code, 400, response.text)

    def test_duplicate_email_returns_409(self) -> None:
        self.assertEqual(self._create(email="a@b.com", username="first").status_code, 201)

        response = self._create(email="a@b.com", username="second")
        self.assertEqual(response.status_code, 409, response.text)
        self.assertEqual(response.json()["error"], "conflict")

    def test_unknown_identifier_returns_404_with_identifier(self) -> None:
        response = self.client.get("/v1/users/999999")
        self.assertEqual(response.status_code, 404)
        self.assertIn("999999", response.json()["detail"])

    def test_ids_beyond_storage_range_return_404(self) -> None:
        huge = "99999999999999999999"

        found = self.client.get(f"/v1/users/{huge}")
        self.assertEqual(found.status_code, 404, found.text)
        self.assertIn(huge, found.json()["detail"])

        edited = self.client.patch(f"/v1/users/{huge}", json={"username": "ghost"})
        self.assertEqual(edited.status_code, 404, edited.text)

        deleted = self.client.delete(f"/v1/users/{huge}")
        self.assertEqual(deleted.status_code, 404, deleted.text)

    def test_non_ascii_digit_identifier_is_a_username(self) -> None:
        created = self._create(email="squared@example.com", username="\u00b2")
        self.assertEqual(created.status_code, 201, created.text)

        response = self.client.get("/v1/users/\u00b2")
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["id"], created.json()["user"]["id"])

        missing = self.client.get("/v1/users/\u00b3")
        self.assertEqual(missing.status_code, 404, missing.text)

    def test_edit_missing_user_returns_404(self) -> None:
        response = self.client.patch("/v1/users/999999", json={"username": "ghost"})
        self.assertEqual(response.status_code, 404)

    def test_edit_with_blank_username_returns_400(self) -> None:
        user = self._create().json()["user"]
        response = self.client.patch(f"/v1/users/{user['id']}", json={"username": "  "})
        self.assertEqual(response.status_code, 400)

    def test_non_numeric_user_id_returns_400(self) -> None:
        response = self.client.delete("/v1/users/alice")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "validation_error")


class StrictNotificationAPITests(unittest.TestCase):
    def test_notification_failure_returns_502_when_strict(self) -> None:
        with tempfile.TemporaryDirectory() as tempdir:
            settings = Settings(
                database_path=Path(tempdir) / "accounts.sqlite3",
                strict_notifications=True,
            )
            app = create_application(settings, notifier=FailingNotifier())
            with TestClient(app) as client:
                response = client.post(
                    "/v1/users",
                    json={"email": "dave@example.com", "username": "dave", "password": "pw"},
                )
                self.assertEqual(response.status_code, 502, response.text)
                self.assertEqual(response.json()["error"], "notification_error")

                listing = client.get("/v1/users")
                self.assertEqual(len(listing.json()["users"]), 1)

    def test_notification_failure_is_ignored_by_default(self) -> None:
        with tempfile.TemporaryDirectory() as tempdir:
            settings = Settings(database_path=Path(tempdir) / "accounts.sqlite3")
            app = create_application(settings, notifier=FailingNotifier())
            with TestClient(app) as client:
                response = client.post(
                    "/v1/users",
                    json={"email": "erin@example.com", "username": "erin", "password": "pw"},
                )
                self.assertEqual(response.status_code, 201, response.text)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
