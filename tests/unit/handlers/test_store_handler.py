"""
Unit Tests for the App Store API
================================

Tests for the FastAPI store endpoints using TestClient, plus the Mangum
entry point with an API Gateway event.

For Developers:
    - moto mocks DynamoDB and S3 through the store_table / apk_bucket fixtures
    - Bearer tokens come from tests.fixtures.lambda_events.make_token
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest
from boto3.dynamodb.conditions import Key
from fastapi.testclient import TestClient

from src.lambdas.shared.auth.enums import Role
from src.lambdas.shared.auth.profiles import put_profile
from src.lambdas.shared.auth.roles import grant_role
from src.lambdas.shared.models.application import ApplicationCreate
from src.lambdas.store.applications import apply_review_decision, create_application
from src.lambdas.store.handler import app, lambda_handler
from tests.fixtures.lambda_events import FakeContext, make_event, make_token, response_json

client = TestClient(app)

SUBMISSION = {
    "appName": "Pocket Notes",
    "packageName": "com.example.notes",
    "shortDescription": "Quick notes",
    "longDescription": "Take notes quickly.",
    "category": "productivity",
    "versionName": "1.0.0",
    "apkFileName": "notes.apk",
}


@pytest.fixture
def email_service():
    service = MagicMock()
    service.send_submission_confirmation.return_value = True
    with patch("src.lambdas.store.router.get_email_service", return_value=service):
        yield service


def _create(table, developer_id="dev-1", **overrides):
    request = ApplicationCreate.model_validate({**SUBMISSION, **overrides})
    application, _ = create_application(table, developer_id, request)
    return application


def _publish(table, application):
    return apply_review_decision(table, application.application_id, "published", "admin-1")


def _auth(user_id=None, token=None, **headers):
    if user_id:
        token = make_token(user_id)
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class TestRouting:
    def test_unknown_route(self, store_table):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json()["error"] == "Route not found"
        assert response.json()["code"] == "NOT_FOUND"

    def test_wrong_method(self, store_table):
        response = client.delete("/apps")

        assert response.status_code == 405
        assert response.json()["code"] == "METHOD_NOT_ALLOWED"

    def test_cors_preflight(self, store_table):
        response = client.options(
            "/apps",
            headers={
                "Origin": "https://store.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    def test_security_headers(self, store_table):
        response = client.get("/apps")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert "no-store" in response.headers["cache-control"]

    def test_unhandled_error_is_generic_500(self, store_table):
        with patch(
            "src.lambdas.store.router.list_applications",
            side_effect=RuntimeError("table exploded"),
        ):
            response = client.get("/apps")

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
        assert "exploded" not in response.text

    def test_lambda_entry_point(self, store_table):
        application = _publish(store_table, _create(store_table))

        response = lambda_handler(make_event(method="GET", path="/apps"), FakeContext())

        assert response["statusCode"] == 200
        apps = response_json(response)["apps"]
        assert [a["id"] for a in apps] == [application.application_id]

    def test_lambda_entry_point_gate_error_carries_request_id(self, store_table):
        response = lambda_handler(make_event(method="GET", path="/admin/apps/pending"), FakeContext())

        assert response["statusCode"] == 401
        assert response_json(response)["request_id"] == "test-request-id"


class TestListPublished:
    def test_only_published_listed(self, store_table):
        visible = _publish(store_table, _create(store_table))
        _create(store_table, appName="Hidden App")

        response = client.get("/apps")

        assert response.status_code == 200
        apps = response.json()["apps"]
        assert [app["id"] for app in apps] == [visible.application_id]
        assert "developerId" not in apps[0]
        assert "apkFilePath" not in apps[0]


class TestGetApp:
    def test_published_is_public(self, store_table):
        application = _publish(store_table, _create(store_table))

        response = client.get(f"/apps/{application.application_id}")

        assert response.status_code == 200
        assert response.json()["appName"] == "Pocket Notes"

    def test_pending_hidden_from_anonymous(self, store_table):
        application = _create(store_table)

        response = client.get(f"/apps/{application.application_id}")

        assert response.status_code == 404

    def test_pending_hidden_from_other_developer(self, store_table):
        application = _create(store_table)

        response = client.get(f"/apps/{application.application_id}", headers=_auth("dev-2"))

        assert response.status_code == 404

    def test_invalid_token_looks_like_missing_app(self, store_table):
        application = _create(store_table)
        expired = make_token("dev-1", expires_in=-3600)

        hidden = client.get(f"/apps/{application.application_id}", headers=_auth(token=expired))
        missing = client.get("/apps/does-not-exist", headers=_auth(token=expired))

        assert hidden.status_code == missing.status_code == 404
        assert hidden.json()["error"] == missing.json()["error"]

    def test_invalid_token_still_sees_published(self, store_table):
        application = _publish(store_table, _create(store_table))

        response = client.get(
            f"/apps/{application.application_id}", headers=_auth(token="not-a-jwt")
        )

        assert response.status_code == 200

    def test_pending_visible_to_owner(self, store_table):
        application = _create(store_table)

        response = client.get(f"/apps/{application.application_id}", headers=_auth("dev-1"))

        assert response.status_code == 200
        assert response.json()["status"] == "pending"

    def test_pending_visible_to_admin(self, store_table):
        grant_role(store_table, "admin-1", Role.ADMIN)
        application = _create(store_table)

        response = client.get(f"/apps/{application.application_id}", headers=_auth("admin-1"))

        assert response.status_code == 200

    def test_missing(self, store_table):
        response = client.get("/apps/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"] == "App not found"


class TestSubmitApp:
    def test_developer_submits(self, store_table, apk_bucket, email_service):
        grant_role(store_table, "dev-1", Role.DEVELOPER)

        response = client.post("/apps", json=SUBMISSION, headers=_auth("dev-1"))

        assert response.status_code == 201
        body = response.json()
        assert body["app"]["status"] == "pending"
        assert body["expiresIn"] == 3600
        assert body["confirmationSent"] is True
        assert apk_bucket in body["uploadUrl"]
        assert f"dev-1/{body['app']['id']}/notes.apk" in body["uploadUrl"]

        submissions = store_table.query(
            KeyConditionExpression=Key("PK").eq(f"APP#{body['app']['id']}")
            & Key("SK").begins_with("SUBMISSION#")
        )["Items"]
        assert len(submissions) == 1
        assert submissions[0]["status"] == "pending"

    def test_confirmation_failure_does_not_block(self, store_table, apk_bucket, email_service):
        grant_role(store_table, "dev-1", Role.DEVELOPER)
        email_service.send_submission_confirmation.side_effect = RuntimeError("down")

        response = client.post("/apps", json=SUBMISSION, headers=_auth("dev-1"))

        assert response.status_code == 201
        assert response.json()["confirmationSent"] is False

    def test_requires_developer_role(self, store_table, apk_bucket, email_service):
        response = client.post("/apps", json=SUBMISSION, headers=_auth("dev-1"))

        assert response.status_code == 403
        assert response.json()["error"] == "Access denied"

    def test_requires_identity(self, store_table, apk_bucket, email_service):
        response = client.post("/apps", json=SUBMISSION)

        assert response.status_code == 401

    def test_role_checked_before_body(self, store_table, apk_bucket, email_service):
        response = client.post("/apps", json={"appName": ""}, headers=_auth("dev-1"))

        assert response.status_code == 403

    def test_invalid_category(self, store_table, apk_bucket, email_service):
        grant_role(store_table, "dev-1", Role.DEVELOPER)

        response = client.post(
            "/apps", json={**SUBMISSION, "category": "weapons"}, headers=_auth("dev-1")
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid category")
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_missing_field(self, store_table, apk_bucket, email_service):
        grant_role(store_table, "dev-1", Role.DEVELOPER)
        body = {k: v for k, v in SUBMISSION.items() if k != "packageName"}

        response = client.post("/apps", json=body, headers=_auth("dev-1"))

        assert response.status_code == 400
        assert response.json()["error"] == "packageName is required"
        assert response.json()["details"] == {"field": "packageName"}

    def test_blank_description_rejected(self, store_table, apk_bucket, email_service):
        grant_role(store_table, "dev-1", Role.DEVELOPER)

        response = client.post(
            "/apps", json={**SUBMISSION, "shortDescription": "   "}, headers=_auth("dev-1")
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Short description is required"


class TestListPending:
    def test_admin_sees_queue_with_developer(self, store_table):
        grant_role(store_table, "admin-1", Role.ADMIN)
        pending = _create(store_table)
        _publish(store_table, _create(store_table, appName="Live"))

        response = client.get("/admin/apps/pending", headers=_auth("admin-1"))

        assert response.status_code == 200
        apps = response.json()["apps"]
        assert [app["id"] for app in apps] == [pending.application_id]
        assert apps[0]["developerId"] == "dev-1"

    def test_developer_forbidden(self, store_table):
        grant_role(store_table, "dev-1", Role.DEVELOPER)

        response = client.get("/admin/apps/pending", headers=_auth("dev-1"))

        assert response.status_code == 403


class TestListDevelopers:
    def test_admin_lists_newest_first_without_email(self, store_table):
        grant_role(store_table, "admin-1", Role.ADMIN)
        put_profile(
            store_table, "dev-old", "old@example.com", now=datetime(2025, 1, 1, tzinfo=UTC)
        )
        put_profile(
            store_table,
            "dev-new",
            "new@example.com",
            display_name="New Dev",
            now=datetime(2025, 6, 1, tzinfo=UTC),
        )

        response = client.get("/admin/developers", headers=_auth("admin-1"))

        assert response.status_code == 200
        developers = response.json()["developers"]
        assert [d["userId"] for d in developers] == ["dev-new", "dev-old"]
        assert developers[0]["displayName"] == "New Dev"
        assert developers[0]["createdAt"] == "2025-06-01T00:00:00.000000Z"
        assert all("email" not in d for d in developers)

    def test_developer_forbidden(self, store_table):
        grant_role(store_table, "dev-1", Role.DEVELOPER)

        response = client.get("/admin/developers", headers=_auth("dev-1"))

        assert response.status_code == 403

    def test_requires_identity(self, store_table):
        response = client.get("/admin/developers")

        assert response.status_code == 401


class TestDownloadApp:
    def test_published_download_logged(self, store_table, apk_bucket):
        application = _publish(store_table, _create(store_table))

        response = client.post(
            f"/apps/{application.application_id}/download",
            headers=_auth("user-9", **{"User-Agent": "StoreClient/1.0"}),
        )

        assert response.status_code == 200
        body = response.json()
        assert application.apk_file_path in body["downloadUrl"]
        assert body["expiresIn"] == 3600

        logs = store_table.query(
            KeyConditionExpression=Key("PK").eq(f"DOWNLOAD#{application.application_id}")
        )["Items"]
        assert len(logs) == 1
        assert logs[0]["user_id"] == "user-9"
        assert logs[0]["user_agent"] == "StoreClient/1.0"

        stored = store_table.get_item(Key={"PK": application.pk, "SK": application.sk})["Item"]
        assert stored["downloads"] == 1

    def test_requires_identity(self, store_table, apk_bucket):
        application = _publish(store_table, _create(store_table))

        response = client.post(f"/apps/{application.application_id}/download")

        assert response.status_code == 401

    def test_pending_hidden_from_others(self, store_table, apk_bucket):
        application = _create(store_table)

        response = client.post(
            f"/apps/{application.application_id}/download", headers=_auth("user-9")
        )

        assert response.status_code == 404

    def test_owner_can_download_pending(self, store_table, apk_bucket):
        application = _create(store_table)

        response = client.post(
            f"/apps/{application.application_id}/download", headers=_auth("dev-1")
        )

        assert response.status_code == 200
