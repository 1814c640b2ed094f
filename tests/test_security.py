"""Unit tests for app.core.security: password hashing, refresh tokens, and the access-token signer."""

import unittest
from datetime import UTC, datetime, timedelta

import jwt

from app.core.errors import InvalidTokenError, UnauthenticatedError
from app.core.security import (
    REFRESH_TOKEN_BYTES,
    TokenSigner,
    generate_refresh_token,
    hash_password,
    verify_password,
    verify_password_or_dummy,
)
from app.schemas.auth import TokenSubject
from tests.support import TEST_SECRET


def _subject(**kwargs: object) -> TokenSubject:
    defaults = {"subject_id": 42, "email": "alice@example.com", "role": "VIEWER"}
    defaults.update(kwargs)
    return TokenSubject(**defaults)


class TestPasswordHashing(unittest.TestCase):
    def test_hash_verifies_and_is_salted(self) -> None:
        h1 = hash_password("s3cret-password", rounds=4)
        h2 = hash_password("s3cret-password", rounds=4)
        self.assertNotEqual(h1, h2)
        self.assertTrue(verify_password("s3cret-password", h1))
        self.assertTrue(verify_password("s3cret-password", h2))

    def test_wrong_password_rejected(self) -> None:
        h = hash_password("s3cret-password", rounds=4)
        self.assertFalse(verify_password("other-password", h))

    def test_garbage_hash_returns_false(self) -> None:
        self.assertFalse(verify_password("anything", "not-a-bcrypt-hash"))

    def test_dummy_path_always_false(self) -> None:
        self.assertFalse(verify_password_or_dummy("s3cret-password", None))

    def test_dummy_path_checks_real_hash_when_present(self) -> None:
        h = hash_password("s3cret-password", rounds=4)
        self.assertTrue(verify_password_or_dummy("s3cret-password", h))
        self.assertFalse(verify_password_or_dummy("wrong", h))


class TestRefreshTokenGeneration(unittest.TestCase):
    def test_hex_with_expected_length(self) -> None:
        token = generate_refresh_token()
        self.assertEqual(len(token), REFRESH_TOKEN_BYTES * 2)
        int(token, 16)  # hex only

    def test_at_least_128_bits(self) -> None:
        self.assertGreaterEqual(REFRESH_TOKEN_BYTES * 8, 128)

    def test_unique(self) -> None:
        tokens = {generate_refresh_token() for _ in range(200)}
        self.assertEqual(len(tokens), 200)


class TestTokenSignerRoundTrip(unittest.TestCase):
    def setUp(self) -> None:
        self.signer = TokenSigner(TEST_SECRET)

    def test_sign_then_verify_returns_claims(self) -> None:
        token = self.signer.sign(_subject(), timedelta(minutes=15))
        claims = self.signer.verify(token)
        self.assertEqual(claims.subject_id, 42)
        self.assertEqual(claims.email, "alice@example.com")
        self.assertEqual(claims.role, "VIEWER")

    def test_expiry_is_issue_time_plus_ttl(self) -> None:
        now = datetime.now(UTC)
        token = self.signer.sign(_subject(), timedelta(minutes=15), issued_at=now)
        claims = self.signer.verify(token)
        self.assertEqual(claims.expires_at - claims.issued_at, timedelta(minutes=15))
        self.assertEqual(claims.issued_at, now.replace(microsecond=0))

    def test_claims_are_immutable(self) -> None:
        claims = self.signer.verify(self.signer.sign(_subject(), timedelta(minutes=15)))
        with self.assertRaises(Exception):
            claims.role = "ADMIN"  # type: ignore[misc]


class TestTokenSignerRejects(unittest.TestCase):
    def setUp(self) -> None:
        self.signer = TokenSigner(TEST_SECRET)

    def test_expired_token(self) -> None:
        issued = datetime.now(UTC) - timedelta(minutes=16)
        token = self.signer.sign(_subject(), timedelta(minutes=15), issued_at=issued)
        with self.assertRaises(InvalidTokenError):
            self.signer.verify(token)

    def test_wrong_secret(self) -> None:
        other = TokenSigner("another-secret-0123456789abcdef0123456789")
        token = other.sign(_subject(), timedelta(minutes=15))
        with self.assertRaises(InvalidTokenError):
            self.signer.verify(token)

    def test_tampered_payload(self) -> None:
        token = self.signer.sign(_subject(role="VIEWER"), timedelta(minutes=15))
        header, payload, signature = token.split(".")
        forged_payload = jwt.encode(
            {
                "sub": "42",
                "email": "alice@example.com",
                "role": "ADMIN",
                "iat": datetime.now(UTC),
                "exp": datetime.now(UTC) + timedelta(minutes=15),
            },
            "attacker-key-0123456789abcdef0123456789",
        ).split(".")[1]
        with self.assertRaises(InvalidTokenError):
            self.signer.verify(".".join([header, forged_payload, signature]))

    def test_malformed(self) -> None:
        for token in ("", "abc", "a.b.c", "not.a.jwt.at.all"):
            with self.subTest(token=token):
                with self.assertRaises(InvalidTokenError):
                    self.signer.verify(token)

    def test_missing_role_claim(self) -> None:
        now = datetime.now(UTC)
        token = jwt.encode(
            {"sub": "42", "email": "alice@example.com", "iat": now, "exp": now + timedelta(minutes=5)},
            TEST_SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError):
            self.signer.verify(token)

    def test_non_numeric_subject(self) -> None:
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "sub": "alice",
                "email": "alice@example.com",
                "role": "VIEWER",
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            TEST_SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError):
            self.signer.verify(token)

    def test_unsigned_token(self) -> None:
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "sub": "42",
                "email": "alice@example.com",
                "role": "ADMIN",
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            None,
            algorithm="none",
        )
        with self.assertRaises(InvalidTokenError):
            self.signer.verify(token)

    def test_invalid_token_is_an_authentication_failure(self) -> None:
        self.assertTrue(issubclass(InvalidTokenError, UnauthenticatedError))

    def test_empty_secret_refused(self) -> None:
        with self.assertRaises(ValueError):
            TokenSigner("")


if __name__ == "__main__":
    unittest.main()
