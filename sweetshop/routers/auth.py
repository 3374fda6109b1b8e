from fastapi import APIRouter, Depends, Response, status

from ..config.settings import Settings
from ..db.crud import AccountStore
from ..models.account import AccountLogin, AccountOut, AccountRegister, Identity
from ..security.auth import get_account_store, get_current_identity, get_issuer, get_settings
from ..security.tokens import SessionIssuer
from ..services.accounts import AccountService

router = APIRouter(
    prefix="/api/auth",
    tags=["Authentication"],
)


def get_account_service(
    accounts: AccountStore = Depends(get_account_store),
    issuer: SessionIssuer = Depends(get_issuer),
) -> AccountService:
    return AccountService(accounts, issuer)


# --- Helper functions for the session cookie ---

def set_auth_cookie(response: Response, token: str, settings: Settings):
    """Sets the session token in an HTTPOnly cookie."""
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_SECONDS,
        samesite="strict",
        secure=settings.COOKIE_SECURE,
        path="/",
    )


def unset_auth_cookie(response: Response, settings: Settings):
    response.delete_cookie(key=settings.COOKIE_NAME, path="/")


# --- API endpoints ---

@router.post("/register", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def register(
    payload: AccountRegister,
    response: Response,
    service: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
):
    """Registers a regular user and logs them in."""
    account, token = service.register(payload.email, payload.password)
    set_auth_cookie(response, token, settings)
    return AccountOut.from_account(account)


@router.post("/login", response_model=AccountOut)
def login(
    payload: AccountLogin,
    response: Response,
    service: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
):
    account, token = service.login(payload.email, payload.password)
    set_auth_cookie(response, token, settings)
    return AccountOut.from_account(account)


@router.post("/logout")
def logout(response: Response, settings: Settings = Depends(get_settings)):
    """Drops the cookie. The token itself stays valid until it expires."""
    unset_auth_cookie(response, settings)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=AccountOut)
def read_me(identity: Identity = Depends(get_current_identity)):
    return AccountOut(account_id=identity.id, email=identity.email, role=identity.role)
