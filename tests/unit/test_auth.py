from __future__ import annotations

import pytest
from psycopg.errors import UniqueViolation

from demonlist.commands import (
    BasicAuth,
    BasicCredentials,
    DeleteRecordById,
    DeleteUserById,
    Invalidate,
    IssueToken,
    Register,
    TokenAuth,
    TokenCredentials,
    UserById,
)
from demonlist.context import ExternalRequest
from demonlist.domain.models import Registration, User
from demonlist.errors import (
    InvalidPassword,
    InvalidUsername,
    MissingPermissions,
    ModelNotFound,
    NameTaken,
    Unauthorized,
)
from demonlist.infrastructure.credentials import CredentialService, MalformedToken
from demonlist.permissions import Permission

PASSWORD = "correct horse battery"
NEW_PASSWORD = "staple battery horse"
CALLER_IP = "198.51.100.20"


def _register(session, name="Someone", password=PASSWORD):
    return session.dispatch(Register(Registration(name=name, password=password)))


def test_register_stores_a_password_hash(session, stores, services) -> None:
    user = _register(session)

    assert user.permissions == 0
    assert user.password_hash != PASSWORD
    assert user.password_hash.startswith("pbkdf2_sha256$")
    assert stores.users.find_by_name("Someone") == user
    services.credentials.verify_password(user, PASSWORD)


@pytest.mark.parametrize("name", ["ab", " padded", "padded ", ""])
def test_register_rejects_bad_usernames(session, name: str) -> None:
    with pytest.raises(InvalidUsername):
        _register(session, name=name)


def test_register_rejects_short_passwords(session) -> None:
    with pytest.raises(InvalidPassword):
        _register(session, password="123456789")


def test_register_rejects_taken_names(session) -> None:
    _register(session)

    with pytest.raises(NameTaken):
        _register(session)


def test_concurrently_taken_name(session, stores, monkeypatch) -> None:
    def insert(name, password_hash):
        raise UniqueViolation("duplicate key value violates unique constraint \"users_name_key\"")

    monkeypatch.setattr(stores.users, "insert", insert)

    with pytest.raises(NameTaken):
        _register(session)


@pytest.mark.parametrize(
    "password_hash",
    [
        "pbkdf2_sha256$abc$salt$00",
        "pbkdf2_sha256$0$salt$00",
        "pbkdf2_sha256$1000$sält$00",
        "pbkdf2_sha256$1000$salt$ÿÿ",
        "nodollars",
        "md5$1$s$x",
    ],
)
def test_corrupt_password_hash_is_unauthorized(services, password_hash: str) -> None:
    user = User(id=1, name="Someone", password_hash=password_hash)

    with pytest.raises(Unauthorized):
        services.credentials.verify_password(user, PASSWORD)


def test_basic_auth(session) -> None:
    user = _register(session)

    assert session.dispatch(BasicAuth(BasicCredentials("Someone", PASSWORD))) == user


@pytest.mark.parametrize(
    "username, password",
    [("Someone", "wrong password"), ("Nobody", PASSWORD)],
)
def test_basic_auth_failures_are_unauthorized(session, username: str, password: str) -> None:
    _register(session)

    with pytest.raises(Unauthorized):
        session.dispatch(BasicAuth(BasicCredentials(username, password)))


def test_token_round_trip(session) -> None:
    user = _register(session)
    token = session.dispatch(IssueToken(user))

    assert session.dispatch(TokenAuth(TokenCredentials(token))) == user


@pytest.mark.parametrize("token", ["", "no-dot", "!!!.sig", "e30.sig", "eyJpZCI6ICJ4In0.sig", "ü.ü"])
def test_malformed_tokens_are_unauthorized(session, token: str) -> None:
    _register(session)

    with pytest.raises(Unauthorized):
        session.dispatch(TokenAuth(TokenCredentials(token)))


def test_tampered_token_is_unauthorized(session) -> None:
    user = _register(session)
    token = session.dispatch(IssueToken(user))
    claims, _, signature = token.partition(".")
    forged = f"{claims}.{signature[:-2]}AA" if not signature.endswith("AA") else f"{claims}.{signature[:-2]}BB"

    with pytest.raises(Unauthorized):
        session.dispatch(TokenAuth(TokenCredentials(forged)))


def test_token_of_a_deleted_user_is_unauthorized(session, stores) -> None:
    user = _register(session)
    token = session.dispatch(IssueToken(user))
    stores.users.delete_by_key(user.id)

    with pytest.raises(Unauthorized):
        session.dispatch(TokenAuth(TokenCredentials(token)))


def test_tokens_from_another_secret_are_rejected(session) -> None:
    user = _register(session)
    foreign = CredentialService("some other secret", iterations=1_000).issue_token(user)

    with pytest.raises(Unauthorized):
        session.dispatch(TokenAuth(TokenCredentials(foreign)))


def test_invalidate_revokes_issued_tokens(session, stores) -> None:
    user = _register(session)
    token = session.dispatch(IssueToken(user))

    session.dispatch(Invalidate(BasicCredentials("Someone", PASSWORD)))

    with pytest.raises(Unauthorized):
        session.dispatch(TokenAuth(TokenCredentials(token)))
    # Same password, fresh salt
    refreshed = session.dispatch(BasicAuth(BasicCredentials("Someone", PASSWORD)))
    assert refreshed.password_hash != user.password_hash
    assert session.dispatch(TokenAuth(TokenCredentials(session.dispatch(IssueToken(refreshed))))) == refreshed


def test_invalidate_requires_password_credentials(session) -> None:
    user = _register(session)
    token = session.dispatch(IssueToken(user))

    with pytest.raises(Unauthorized):
        session.dispatch(Invalidate(TokenCredentials(token)))


def test_invalidate_with_a_wrong_password(session) -> None:
    _register(session)

    with pytest.raises(Unauthorized):
        session.dispatch(Invalidate(BasicCredentials("Someone", NEW_PASSWORD)))


def test_decode_unverified_claim() -> None:
    credentials = CredentialService("secret", iterations=1_000)
    token = CredentialService("another secret").issue_token(
        User(id=42, name="someone", password_hash="hash")
    )

    # The signature is not looked at, only the subject is extracted
    assert credentials.decode_unverified_claim(token).id == 42
    with pytest.raises(MalformedToken):
        credentials.decode_unverified_claim("garbage")


def test_user_lookup_and_deletion(session, make_user) -> None:
    admin = make_user("admin", Permission.ADMINISTRATOR)
    moderator = make_user("moderator", Permission.MODERATOR)
    target = make_user("target")

    with pytest.raises(MissingPermissions):
        session.dispatch(DeleteUserById(ExternalRequest(ip=CALLER_IP, user=moderator), target.id))

    session.dispatch(DeleteUserById(ExternalRequest(ip=CALLER_IP, user=admin), target.id))

    with pytest.raises(ModelNotFound):
        session.dispatch(UserById(target.id))
    with pytest.raises(ModelNotFound):
        session.dispatch(DeleteUserById(ExternalRequest(ip=CALLER_IP, user=admin), target.id))


def test_record_deletion_needs_list_moderation(session, stores, make_user, list_demons) -> None:
    helper = make_user("helper", Permission.LIST_HELPER)
    moderator = make_user("moderator", Permission.LIST_MODERATOR)
    player = stores.players.insert("Zoink")
    record = stores.records.insert(90, None, player, 1, list_demons[0].embedded())

    with pytest.raises(MissingPermissions):
        session.dispatch(DeleteRecordById(ExternalRequest(ip=CALLER_IP, user=helper), record.id))

    session.dispatch(DeleteRecordById(ExternalRequest(ip=CALLER_IP, user=moderator), record.id))
    assert stores.records.find_by_key(record.id) is None
