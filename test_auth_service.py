"""
FitTrack — Auth Service Unit Tests
Password hashing, token issuance and token validation.
Run with: pytest test_auth_service.py -v
"""

import pytest
from datetime import datetime, timezone

from config import settings


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)


class TestPasswordHashing:

    def setup_method(self):
        from auth_service import hash_password, verify_password
        self.hash = hash_password
        self.verify = verify_password

    def test_round_trip(self):
        hashed = self.hash("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert self.verify("s3cret-pass", hashed)

    def test_wrong_password(self):
        assert not self.verify("wrong", self.hash("s3cret-pass"))

    def test_salted(self):
        assert self.hash("same") != self.hash("same")


class TestTokens:

    def setup_method(self):
        import auth_service
        self.auth = auth_service

    def test_access_token_claims(self):
        token = self.auth.create_access_token(42, "ada@example.com", "Ada")
        payload = self.auth.decode_token(token, "access")
        assert payload["sub"] == "42"
        assert payload["email"] == "ada@example.com"
        assert payload["name"] == "Ada"
        assert payload["iss"] == settings.JWT_ISSUER
        assert payload["aud"] == settings.JWT_AUDIENCE
        assert payload["exp"] > datetime.now(timezone.utc).timestamp()

    def test_name_claim_optional(self):
        payload = self.auth.decode_token(self.auth.create_access_token(1, "a@b.co"))
        assert "name" not in payload

    def test_unique_token_ids(self):
        first = self.auth.decode_token(self.auth.create_refresh_token(3))
        second = self.auth.decode_token(self.auth.create_refresh_token(3))
        assert first["jti"] != second["jti"]

    def test_refresh_token_claims(self):
        payload = self.auth.decode_token(self.auth.create_refresh_token(7), "refresh")
        assert payload["sub"] == "7"
        assert "email" not in payload

    def test_token_user_id(self):
        assert self.auth.token_user_id(self.auth.create_access_token(9, "a@b.co")) == 9

    def test_refresh_token_cannot_authenticate(self):
        with pytest.raises(ValueError, match="access"):
            self.auth.token_user_id(self.auth.create_refresh_token(9))

    def test_access_token_cannot_refresh(self):
        with pytest.raises(ValueError, match="refresh"):
            self.auth.token_user_id(self.auth.create_access_token(9, "a@b.co"), "refresh")

    def test_forged_signature_rejected(self):
        header, payload, signature = self.auth.create_access_token(1, "a@b.co").split(".")
        forged = ("A" if signature[0] != "A" else "B") + signature[1:]
        with pytest.raises(ValueError, match="Invalid token"):
            self.auth.decode_token(f"{header}.{payload}.{forged}")

    def test_foreign_audience_rejected(self, monkeypatch):
        token = self.auth.create_access_token(1, "a@b.co")
        monkeypatch.setattr(settings, "JWT_AUDIENCE", "SomeOtherApp")
        with pytest.raises(ValueError, match="Invalid token"):
            self.auth.decode_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            self.auth.decode_token("not-a-jwt")

    def test_issue_tokens(self):
        from models import User
        user = User(
            id=5, email="ada@example.com", name="Ada", hashed_password="x",
            is_active=True, created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        response = self.auth.issue_tokens(user)
        assert response.token_type == "bearer"
        assert response.expires_in == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        assert response.user.email == "ada@example.com"
        assert self.auth.token_user_id(response.access_token) == 5
        assert self.auth.token_user_id(response.refresh_token, "refresh") == 5
