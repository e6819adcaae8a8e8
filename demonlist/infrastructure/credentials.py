"""
Password hashing and access tokens.

Tokens have the shape ``<claims>.<signature>`` where ``claims`` is url-safe base64
JSON (``{"id": <user id>}``) and ``signature`` an HMAC-SHA256 over the claims. The
signing key mixes the application secret with the user's current password hash;
since every password change draws a fresh salt, changing the password invalidates
all tokens issued before.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass

from demonlist.domain.models import User
from demonlist.errors import Unauthorized

_ALGORITHM = "pbkdf2_sha256"


class MalformedToken(ValueError):
    """Raised when a token cannot even be decoded."""


@dataclass(frozen=True)
class TokenClaims:
    id: int


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


class CredentialService:
    def __init__(self, secret: str, iterations: int = 100_000) -> None:
        self._secret = secret.encode("utf-8")
        self._iterations = iterations

    def hash_password(self, password: str) -> str:
        salt = secrets.token_hex(16)
        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), salt.encode("ascii"), self._iterations
        )
        return f"{_ALGORITHM}${self._iterations}${salt}${digest.hex()}"

    def verify_password(self, user: User, candidate: str) -> User:
        # A corrupt stored hash fails authentication like a wrong password
        try:
            algorithm, iterations, salt, expected = user.password_hash.split("$")
            if algorithm != _ALGORITHM:
                raise Unauthorized()
            digest = hashlib.pbkdf2_hmac(
                "sha256", candidate.encode("utf-8"), salt.encode("ascii"), int(iterations)
            )
            matches = hmac.compare_digest(digest.hex().encode("ascii"), expected.encode("utf-8"))
        except ValueError:
            raise Unauthorized() from None
        if not matches:
            raise Unauthorized()
        return user

    def _signing_key(self, user: User) -> bytes:
        return self._secret + b":" + user.password_hash.encode("utf-8")

    def _sign(self, user: User, claims: str) -> str:
        mac = hmac.new(self._signing_key(user), claims.encode("ascii"), hashlib.sha256)
        return _b64encode(mac.digest())

    def issue_token(self, user: User) -> str:
        claims = _b64encode(json.dumps({"id": user.id}, separators=(",", ":")).encode("utf-8"))
        return f"{claims}.{self._sign(user, claims)}"

    def decode_unverified_claim(self, token: str) -> TokenClaims:
        """
        Extract the subject of ``token`` without checking its signature.

        The caller must look the user up and call :meth:`validate_token` before
        trusting anything else about the request.
        """
        claims, _, signature = token.partition(".")
        if not claims or not signature:
            raise MalformedToken("token is not of the form <claims>.<signature>")
        try:
            payload = json.loads(_b64decode(claims))
        except ValueError as exc:  # binascii, unicode and JSON decode errors
            raise MalformedToken("token claims are not valid base64 JSON") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("id"), int):
            raise MalformedToken("token claims carry no user id")
        return TokenClaims(id=payload["id"])

    def validate_token(self, user: User, token: str) -> User:
        claims, _, signature = token.partition(".")
        expected = self._sign(user, claims).encode("ascii")
        if not hmac.compare_digest(expected, signature.encode("utf-8")):
            raise Unauthorized()
        return user


__all__ = ["CredentialService", "MalformedToken", "TokenClaims"]
