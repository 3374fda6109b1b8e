import logging
from typing import Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..db.crud import AccountStore
from ..errors import InternalError, InvalidCredentialsError
from ..models.account import Account, Role
from ..security.tokens import SessionIssuer

logger = logging.getLogger(__name__)


class AccountService:
    """Registration and login; both hand back a freshly issued session token."""

    def __init__(self, accounts: AccountStore, issuer: SessionIssuer):
        self.accounts = accounts
        self.issuer = issuer

    def register(self, email: str, password: str) -> Tuple[Account, str]:
        try:
            account = self.accounts.create(email, password, role=Role.user)
        except SQLAlchemyError as exc:
            self.accounts.db.rollback()
            logger.exception("Failed to create account")
            raise InternalError() from exc
        logger.info("Registered account %s", account.id)
        return account, self.issuer.issue(account.id)

    def login(self, email: str, password: str) -> Tuple[Account, str]:
        try:
            account = self.accounts.find_by_email(email)
        except SQLAlchemyError as exc:
            logger.exception("Failed to look up account")
            raise InternalError() from exc

        if account is None:
            # Burn one verification so unknown emails take as long as wrong passwords
            self.accounts.hasher.dummy_verify(password)
            logger.warning("Failed login attempt")
            raise InvalidCredentialsError()
        if not self.accounts.hasher.verify(password, account.hashed_password):
            logger.warning("Failed login attempt for account %s", account.id)
            raise InvalidCredentialsError()

        logger.info("Account %s logged in", account.id)
        return account, self.issuer.issue(account.id)

    def bootstrap_admin(self, email: str, password: str) -> Account:
        """Creates the configured admin account unless the email is taken."""
        existing = self.accounts.find_by_email(email)
        if existing is not None:
            if existing.role != Role.admin:
                logger.warning("Bootstrap admin email %s belongs to a non-admin account", email)
            return existing
        account = self.accounts.create(email, password, role=Role.admin)
        logger.info("Created admin account %s", account.id)
        return account

