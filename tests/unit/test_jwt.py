"""Unit tests for bearer token verification."""

import uuid
from datetime import timedelta

from jose import jwt

from src.kernel.identity.jwt import JWTManager


class TestJWTManager:
    def setup_method(self):
        self.manager = JWTManager(secret_key="unit-test-secret", algorithm="HS256")
        self.user_id = uuid.uuid4()

    def test_round_trip(self):
        token, _, jti = self.manager.create_access_token(self.user_id, "a@example.com", "designer")
        payload = self.manager.verify_access_token(token)

        assert payload is not None
        assert payload.user_id == self.user_id
        assert payload.role == "designer"
        assert payload.email == "a@example.com"
        assert payload.jti == jti

    def test_email_is_optional(self):
        token, _, _ = self.manager.create_access_token(self.user_id, None, "administrator")
        assert self.manager.verify_access_token(token).email is None

    def test_expired_token_is_rejected(self):
        token, _, _ = self.manager.create_access_token(
            self.user_id, None, "administrator", expires_delta=timedelta(seconds=-5),
        )
        assert self.manager.verify_access_token(token) is None

    def test_other_secret_is_rejected(self):
        token, _, _ = JWTManager(secret_key="someone-else").create_access_token(self.user_id, None, "administrator")
        assert self.manager.verify_access_token(token) is None

    def test_non_access_token_is_rejected(self):
        token = jwt.encode(
            {"sub": str(self.user_id), "role": "administrator", "type": "refresh", "exp": 4102444800, "iat": 0},
            "unit-test-secret",
            algorithm="HS256",
        )
        assert self.manager.verify_access_token(token) is None

    def test_non_uuid_subject_has_no_user_id(self):
        token = jwt.encode(
            {"sub": "robot", "role": "administrator", "type": "access", "exp": 4102444800, "iat": 0},
            "unit-test-secret",
            algorithm="HS256",
        )
        payload = self.manager.verify_access_token(token)
        assert payload is not None
        assert payload.user_id is None
