"""Unit tests for app.core.security: bearer credential creation and verification."""

import unittest
from datetime import timedelta
from types import SimpleNamespace

import jwt

from app.core.config import settings
from app.core.security import create_access_token, decode_access_token


def _user(**kwargs: object) -> SimpleNamespace:
    defaults = {"id": 7, "email": "ada@example.com", "name": "Ada", "role": "user"}
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


class TestCreateAndDecode(unittest.TestCase):
    """A freshly issued token decodes to the user's id, email, name and role."""

    def test_claims_round_trip(self) -> None:
        token = create_access_token(_user(role="admin"))
        payload = decode_access_token(token)
        self.assertEqual(payload["sub"], "7")
        self.assertEqual(payload["email"], "ada@example.com")
        self.assertEqual(payload["name"], "Ada")
        self.assertEqual(payload["role"], "admin")
        self.assertIn("exp", payload)
        self.assertIn("iat", payload)

    def test_default_expiry_is_seven_days(self) -> None:
        payload = decode_access_token(create_access_token(_user()))
        self.assertEqual(payload["exp"] - payload["iat"], settings.JWT_EXPIRE_MINUTES * 60)
        self.assertEqual(settings.JWT_EXPIRE_MINUTES, 7 * 24 * 60)

    def test_missing_name_is_encoded_as_empty_string(self) -> None:
        payload = decode_access_token(create_access_token(_user(name=None)))
        self.assertEqual(payload["name"], "")


class TestRejectedTokens(unittest.TestCase):
    """Expired, tampered or incomplete tokens raise jwt.PyJWTError."""

    def test_expired_token(self) -> None:
        token = create_access_token(_user(), expires_delta=timedelta(seconds=-1))
        with self.assertRaises(jwt.ExpiredSignatureError):
            decode_access_token(token)

    def test_wrong_secret(self) -> None:
        token = jwt.encode(
            {"sub": "1", "email": "a@b.c", "name": "", "role": "admin", "exp": 9999999999},
            "not-the-secret",
            algorithm="HS256",
        )
        with self.assertRaises(jwt.PyJWTError):
            decode_access_token(token)

    def test_garbage(self) -> None:
        with self.assertRaises(jwt.PyJWTError):
            decode_access_token("not-a-jwt")

    def test_missing_role_claim(self) -> None:
        token = jwt.encode(
            {"sub": "1", "email": "a@b.c", "name": "", "exp": 9999999999},
            settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
        )
        with self.assertRaises(jwt.MissingRequiredClaimError):
            decode_access_token(token)


if __name__ == "__main__":
    unittest.main()
