import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..config.settings import Settings
from ..db.crud import AccountStore
from ..db.database import get_db
from ..errors import (
    ExpiredTokenError,
    ForbiddenError,
    InvalidTokenError,
    UnauthenticatedError,
)
from ..models.account import Identity, Role
from .hashing import PasswordHasher
from .tokens import SessionIssuer

logger = logging.getLogger(__name__)

# --- Gates ---

def authenticate(token: Optional[str], accounts: AccountStore, issuer: SessionIssuer) -> Identity:
    """
    Resolves a raw session token into the identity of an existing account.

    Every failure (no token, bad signature, expired, account gone) is
    reported as UnauthenticatedError.
    """
    if not token:
        raise UnauthenticatedError("Not authenticated")
    try:
        account_id = issuer.verify(token)
    except ExpiredTokenError as exc:
        raise UnauthenticatedError("Session expired") from exc
    except InvalidTokenError as exc:
        raise UnauthenticatedError("Session invalid") from exc

    account = accounts.get(account_id)
    if account is None:
        # Token outlived its account
        raise UnauthenticatedError("Account no longer exists")
    return Identity.model_validate(account)


def require_admin(identity: Identity) -> Identity:
    """Passes the identity through if it holds the admin role."""
    if identity.role != Role.admin:
        raise ForbiddenError("Access denied. Admins only.")
    return identity


# --- FastAPI dependencies ---

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_issuer(request: Request) -> SessionIssuer:
    return request.app.state.issuer


def get_account_store(
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
) -> AccountStore:
    return AccountStore(db, hasher)


def extract_token(request: Request, cookie_name: str) -> Optional[str]:
    """Session cookie first, then an Authorization: Bearer header (for API clients)."""
    token = request.cookies.get(cookie_name)
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):].strip() or None
    return None


def get_current_identity(
    request: Request,
    settings: Settings = Depends(get_settings),
    accounts: AccountStore = Depends(get_account_store),
    issuer: SessionIssuer = Depends(get_issuer),
) -> Identity:
    token = extract_token(request, settings.COOKIE_NAME)
    return authenticate(token, accounts, issuer)


# Dependency for admin-only routes
def get_admin_identity(identity: Identity = Depends(get_current_identity)) -> Identity:
    return require_admin(identity)
