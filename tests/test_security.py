# tests/test_security.py
import base64
import json

import pydantic
import pytest
from jose import jwt

from sweetshop.config.settings import Settings
from sweetshop.errors import (
    DuplicateEmailError,
    ExpiredTokenError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidTokenError,
    UnauthenticatedError,
)
from sweetshop.models.account import Identity, Role
from sweetshop.security.auth import authenticate, require_admin
from sweetshop.security.tokens import SessionIssuer
from sweetshop.services.accounts import AccountService


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


# --- Password hashing ---

def test_verify_accepts_the_hashed_password(hasher):
    hashed = hasher.hash("s3cret!")
    assert hashed != "s3cret!"
    assert hasher.verify("s3cret!", hashed)


def test_verify_rejects_a_wrong_password(hasher):
    hashed = hasher.hash("s3cret!")
    assert not hasher.verify("s3cret?", hashed)
    assert not hasher.verify("", hashed)


def test_hash_is_salted(hasher):
    """Hashing the same password twice gives different hashes that both verify."""
    first, second = hasher.hash("same"), hasher.hash("same")
    assert first != second
    assert hasher.verify("same", first) and hasher.verify("same", second)


def test_verify_returns_false_for_garbage_hash(hasher):
    assert hasher.verify("anything", "not-a-bcrypt-hash") is False


# --- Credential store ---

def test_find_by_email_after_create(accounts):
    created = accounts.create("bob@example.com", "pw")
    found = accounts.find_by_email("bob@example.com")
    assert found is not None
    assert found.id == created.id
    assert found.role == Role.user
    assert found.hashed_password != "pw"


def test_create_duplicate_email_fails(accounts):
    accounts.create("bob@example.com", "pw")
    with pytest.raises(DuplicateEmailError):
        accounts.create("bob@example.com", "other")


def test_find_by_email_unknown_is_none(accounts):
    assert accounts.find_by_email("nobody@example.com") is None


def test_find_by_email_matches_the_address_as_registered(accounts):
    created = accounts.create("Dana@Example.COM", "pw")
    assert created.email == "Dana@example.com"
    assert accounts.find_by_email("Dana@Example.COM").id == created.id
    assert accounts.find_by_email("dana@example.com") is None


# --- Session issuer ---

def test_issue_then_verify_round_trips(settings):
    clock = FakeClock()
    issuer = SessionIssuer(settings, clock=clock)
    token = issuer.issue("account-1")
    clock.now += 60
    assert issuer.verify(token) == "account-1"


def test_token_expires_after_lifetime(settings):
    clock = FakeClock()
    issuer = SessionIssuer(settings, clock=clock)
    token = issuer.issue("account-1")

    # Still valid exactly at the expiry instant
    clock.now += settings.ACCESS_TOKEN_EXPIRE_SECONDS
    assert issuer.verify(token) == "account-1"

    clock.now += 1
    with pytest.raises(ExpiredTokenError):
        issuer.verify(token)


def test_default_lifetime_is_seven_days():
    assert Settings(_env_file=None).ACCESS_TOKEN_EXPIRE_SECONDS == 7 * 24 * 60 * 60


def test_token_signed_with_other_secret_is_invalid(settings):
    forger = SessionIssuer(settings.model_copy(update={"SECRET_KEY": "someone-else"}))
    token = forger.issue("account-1")
    with pytest.raises(InvalidTokenError):
        SessionIssuer(settings).verify(token)


def test_tampered_token_is_invalid(issuer):
    """Swapping the claims while keeping the old signature is detected."""
    header, _, signature = issuer.issue("account-1").split(".")
    forged_claims = json.dumps({"sub": "account-2", "iat": 0, "exp": 9_999_999_999}).encode()
    payload = base64.urlsafe_b64encode(forged_claims).rstrip(b"=").decode()
    with pytest.raises(InvalidTokenError):
        issuer.verify(".".join([header, payload, signature]))


def test_garbage_token_is_invalid(issuer):
    with pytest.raises(InvalidTokenError):
        issuer.verify("not.a.token")


def test_token_without_subject_is_invalid(settings, issuer):
    token = jwt.encode({"exp": 9_999_999_999}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    with pytest.raises(InvalidTokenError):
        issuer.verify(token)


# --- Authentication gate ---

def test_authenticate_resolves_identity(accounts, issuer, user_identity):
    identity = authenticate(issuer.issue(user_identity.id), accounts, issuer)
    assert identity == user_identity
    assert identity.role == Role.user


@pytest.mark.parametrize("token", [None, ""])
def test_authenticate_without_token_fails(accounts, issuer, token):
    with pytest.raises(UnauthenticatedError):
        authenticate(token, accounts, issuer)


def test_authenticate_with_invalid_token_fails(accounts, issuer):
    with pytest.raises(UnauthenticatedError):
        authenticate("garbage", accounts, issuer)


def test_authenticate_with_expired_token_fails(settings, accounts, user_identity):
    clock = FakeClock()
    issuer = SessionIssuer(settings, clock=clock)
    token = issuer.issue(user_identity.id)
    clock.now += settings.ACCESS_TOKEN_EXPIRE_SECONDS + 1
    with pytest.raises(UnauthenticatedError):
        authenticate(token, accounts, issuer)


def test_authenticate_for_deleted_account_fails(db_session, accounts, issuer):
    account = accounts.create("gone@example.com", "pw")
    token = issuer.issue(account.id)
    db_session.delete(account)
    db_session.commit()
    with pytest.raises(UnauthenticatedError):
        authenticate(token, accounts, issuer)


def test_identity_is_immutable(user_identity):
    with pytest.raises(pydantic.ValidationError):
        user_identity.role = Role.admin


# --- Authorization gate ---

def test_require_admin_passes_admins(admin_identity):
    assert require_admin(admin_identity) is admin_identity


def test_require_admin_rejects_users(user_identity):
    with pytest.raises(ForbiddenError):
        require_admin(user_identity)


def test_require_admin_only_looks_at_role():
    identity = Identity(id="x", email="x@example.com", role=Role.admin)
    assert require_admin(identity).is_admin


# --- Account service ---

def test_register_then_login(accounts, issuer):
    service = AccountService(accounts, issuer)
    account, token = service.register("carol@example.com", "pw123")
    assert account.role == Role.user
    assert issuer.verify(token) == account.id

    logged_in, login_token = service.login("carol@example.com", "pw123")
    assert logged_in.id == account.id
    assert issuer.verify(login_token) == account.id


def test_register_duplicate_email(accounts, issuer):
    service = AccountService(accounts, issuer)
    service.register("carol@example.com", "pw123")
    with pytest.raises(DuplicateEmailError):
        service.register("carol@example.com", "different")


def test_login_failures_are_indistinguishable(accounts, issuer):
    service = AccountService(accounts, issuer)
    service.register("carol@example.com", "pw123")

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        service.login("carol@example.com", "nope")
    with pytest.raises(InvalidCredentialsError) as unknown_email:
        service.login("nobody@example.com", "pw123")
    assert wrong_password.value.message == unknown_email.value.message


def test_bootstrap_admin_is_idempotent(accounts, issuer):
    service = AccountService(accounts, issuer)
    first = service.bootstrap_admin("root@example.com", "rootpw")
    second = service.bootstrap_admin("root@example.com", "rootpw")
    assert first.id == second.id
    assert first.role == Role.admin
