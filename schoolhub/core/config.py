from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")
    auto_create_tables: bool = Field(False, alias="AUTO_CREATE_TABLES")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    refresh_token_expire_days: int = Field(7, alias="REFRESH_TOKEN_EXPIRE_DAYS")
    # Browsers navigating between role pages carry the access token in this cookie
    session_cookie_name: str = Field("schoolhub_session", alias="SESSION_COOKIE_NAME")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    default_admin_email: Optional[str] = Field(None, alias="DEFAULT_ADMIN_EMAIL")
    default_admin_password: Optional[str] = Field(None, alias="DEFAULT_ADMIN_PASSWORD")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
