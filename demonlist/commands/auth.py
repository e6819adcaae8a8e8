"""
Account registration and authentication commands.

Authentication never reveals why it failed: unknown users, wrong passwords,
malformed and stale tokens all surface as :class:`~demonlist.errors.Unauthorized`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from psycopg.errors import UniqueViolation

from demonlist.commands.abstract import Command
from demonlist.commands.lookup import UserById, UserByName
from demonlist.commands.patch import PatchCurrentUser
from demonlist.domain.models import Registration, User
from demonlist.errors import InvalidPassword, InvalidUsername, ModelNotFound, NameTaken, Unauthorized
from demonlist.infrastructure.credentials import MalformedToken
from demonlist.patches.user import MIN_PASSWORD_LENGTH, PatchMe
from demonlist.utils.logging import get_logger

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession

log = get_logger(__name__)

MIN_USERNAME_LENGTH = 3


@dataclass(frozen=True)
class BasicCredentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"BasicCredentials(username={self.username!r})"


@dataclass(frozen=True)
class TokenCredentials:
    token: str

    def __repr__(self) -> str:
        return "TokenCredentials(token=***)"


Authorization = Union[BasicCredentials, TokenCredentials]


@dataclass(frozen=True)
class Register(Command[User]):
    registration: Registration

    def handle(self, session: "WorkerSession") -> User:
        name = self.registration.name
        password = self.registration.password

        if len(name) < MIN_USERNAME_LENGTH or name != name.strip():
            raise InvalidUsername()
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidPassword()

        users = session.stores.users
        if users.find_by_name(name) is not None:
            raise NameTaken()

        try:
            user = users.insert(name, session.credentials.hash_password(password))
        except UniqueViolation:
            # A concurrent registration claimed the name after our lookup
            raise NameTaken() from None
        log.info(f"Registered new user '{user.name}'", extra={"user": user.id})
        return user


@dataclass(frozen=True)
class BasicAuth(Command[User]):
    credentials: BasicCredentials

    def handle(self, session: "WorkerSession") -> User:
        log.debug(f"Attempting basic authentication for '{self.credentials.username}'")
        try:
            user = session.dispatch(UserByName(self.credentials.username))
        except ModelNotFound:
            raise Unauthorized() from None
        return session.credentials.verify_password(user, self.credentials.password)


@dataclass(frozen=True)
class TokenAuth(Command[User]):
    credentials: TokenCredentials

    def handle(self, session: "WorkerSession") -> User:
        token = self.credentials.token
        try:
            claims = session.credentials.decode_unverified_claim(token)
        except MalformedToken:
            log.debug("Rejected malformed access token")
            raise Unauthorized() from None

        try:
            user = session.dispatch(UserById(claims.id))
        except ModelNotFound:
            raise Unauthorized() from None
        return session.credentials.validate_token(user, token)


@dataclass(frozen=True)
class IssueToken(Command[str]):
    """A fresh access token for an already authenticated user."""

    user: User

    def handle(self, session: "WorkerSession") -> str:
        log.info(f"Issuing access token for '{self.user.name}'", extra={"user": self.user.id})
        return session.credentials.issue_token(self.user)


@dataclass(frozen=True)
class Invalidate(Command[None]):
    """
    Invalidate every token issued to a user.

    Requires password authentication; the password is then re-hashed with a fresh
    salt, which changes the signing key of the user's tokens.
    """

    credentials: Authorization

    def handle(self, session: "WorkerSession") -> None:
        if not isinstance(self.credentials, BasicCredentials):
            raise Unauthorized()

        user = session.dispatch(BasicAuth(self.credentials))
        patch = PatchMe(password=self.credentials.password)
        session.dispatch(PatchCurrentUser(user, patch))
        log.info(f"Invalidated all tokens of '{user.name}'", extra={"user": user.id})


__all__ = [
    "BasicCredentials",
    "TokenCredentials",
    "Authorization",
    "Register",
    "BasicAuth",
    "TokenAuth",
    "IssueToken",
    "Invalidate",
]
