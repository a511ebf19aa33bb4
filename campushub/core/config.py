from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    admin_email: Optional[str] = Field(None, alias="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(None, alias="ADMIN_PASSWORD")

    # Referral codes
    referral_code_length: int = Field(6, alias="REFERRAL_CODE_LENGTH")
    referral_code_min_length: int = Field(4, alias="REFERRAL_CODE_MIN_LENGTH")
    referral_code_max_attempts: int = Field(10, alias="REFERRAL_CODE_MAX_ATTEMPTS")
    referral_code_case_insensitive: bool = Field(True, alias="REFERRAL_CODE_CASE_INSENSITIVE")
    # record: keep an unmatched code on the new user for audit; reject: fail the signup
    referral_unmatched_policy: Literal["record", "reject"] = Field("record", alias="REFERRAL_UNMATCHED_POLICY")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: Literal["console", "json"] = Field("console", alias="LOG_FORMAT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


settings = Settings()
