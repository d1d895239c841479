"""Unit tests for the post-signup auth hook Lambda."""

import os

import pytest
from boto3.dynamodb.conditions import Key

from src.lambdas.auth_hooks.handler import HOOK_SECRET_HEADER, lambda_handler
from src.lambdas.shared.auth.enums import Role
from src.lambdas.shared.auth.profiles import get_profile
from src.lambdas.shared.auth.roles import get_roles
from tests.fixtures.lambda_events import FakeContext, make_event, response_json

HOOK_SECRET = "hook-secret-for-tests"

PAYLOAD = {
    "user": {
        "id": "new-user-1",
        "email": "new@example.com",
        "user_metadata": {"display_name": "  New Dev\n  "},
    }
}


@pytest.fixture
def hook_secret():
    os.environ["AUTH_HOOK_SECRET"] = HOOK_SECRET
    return HOOK_SECRET


def _call(body=PAYLOAD, secret=HOOK_SECRET):
    headers = {HOOK_SECRET_HEADER: secret} if secret is not None else None
    return lambda_handler(make_event(body=body, headers=headers), FakeContext())


class TestAuthHooks:
    def test_creates_profile_and_developer_role(self, store_table, hook_secret):
        response = _call()

        assert response["statusCode"] == 200
        assert response_json(response) == {"userId": "new-user-1", "roleGranted": True}

        profile = get_profile(store_table, "new-user-1")
        assert profile.email == "new@example.com"
        assert profile.display_name == "New Dev"
        assert get_roles(store_table, "new-user-1") == [Role.DEVELOPER.value]

        role_row = store_table.query(
            KeyConditionExpression=Key("PK").eq("USER#new-user-1") & Key("SK").eq("ROLE#developer")
        )["Items"][0]
        assert role_row["assigned_by"] == "signup:auth_hooks"

    def test_redelivery_is_idempotent(self, store_table, hook_secret):
        _call()

        response = _call()

        assert response["statusCode"] == 200
        assert response_json(response)["roleGranted"] is False
        assert get_roles(store_table, "new-user-1") == [Role.DEVELOPER.value]

    def test_wrong_secret(self, store_table, hook_secret):
        response = _call(secret="guess")

        assert response["statusCode"] == 401
        assert get_profile(store_table, "new-user-1") is None

    def test_missing_secret_header(self, store_table, hook_secret):
        response = _call(secret=None)

        assert response["statusCode"] == 401

    def test_unconfigured_secret_rejects_everything(self, store_table):
        os.environ.pop("AUTH_HOOK_SECRET", None)
        os.environ.pop("AUTH_HOOK_SECRET_ARN", None)

        response = _call()

        assert response["statusCode"] == 401
        assert get_profile(store_table, "new-user-1") is None

    def test_missing_user(self, store_table, hook_secret):
        response = _call(body={"user": None})

        assert response["statusCode"] == 400
        assert response_json(response)["error"] == "Missing user"

    def test_invalid_email(self, store_table, hook_secret):
        response = _call(body={"user": {"id": "u-1", "email": "not-an-email"}})

        assert response["statusCode"] == 400
