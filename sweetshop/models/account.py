import enum
import uuid
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy import Column, DateTime, Enum as SQLAlchemyEnum, String

from ..db.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """Canonical login key, the same form EmailStr produces on registration."""
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        # Cannot match any stored account
        return email


# Enum for account roles
class Role(str, enum.Enum):
    user = "user"
    admin = "admin"


# SQLAlchemy model for the accounts table
class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLAlchemyEnum(Role), default=Role.user, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


# The authenticated caller, passed explicitly to the services
class Identity(BaseModel):
    id: str
    email: str
    role: Role

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


# Request bodies
class AccountRegister(BaseModel):
    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    password: str = Field(..., min_length=1, max_length=72)


class AccountLogin(BaseModel):
    email: str
    password: str


# Response body (no password hash)
class AccountOut(BaseModel):
    account_id: str
    email: str
    role: Role

    @classmethod
    def from_account(cls, account) -> "AccountOut":
        return cls(account_id=account.id, email=account.email, role=account.role)
