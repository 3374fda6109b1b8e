from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Database (any SQLAlchemy URL)
    DATABASE_URL: str = "sqlite:///./sweetshop.db"

    # JWT session tokens
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    # One lifetime for both the token expiry and the cookie max-age
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 7 * 24 * 60

    # Password hashing work factor
    BCRYPT_ROUNDS: int = 12

    # Session cookie
    COOKIE_NAME: str = "access_token"
    COOKIE_SECURE: bool = False

    LOG_LEVEL: str = "INFO"

    # Optional admin account created at startup
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None

    @property
    def ACCESS_TOKEN_EXPIRE_SECONDS(self) -> int:
        return self.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
