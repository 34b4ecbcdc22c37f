from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./clinic.db")

    # Session tokens
    jwt_secret_key: str = Field(default="change-me")
    token_expire_seconds: int = Field(default=86400)

    # Passwords
    bcrypt_rounds: int = Field(default=12)
    min_password_length: int = Field(default=8)
    # New students sign in with this until they change it
    default_student_password: str = Field(default="Ump@2025")
    student_email_domain: str = Field(default="ump.ac.za")

    # Seeded staff account
    admin_email: str = Field(default="admin@ump.ac.za")
    admin_password: str = Field(default="admin123")
    admin_name: str = Field(default="Clinic")
    admin_surname: str = Field(default="Admin")

    # Clinic calendar
    clinic_timezone: str = Field(default="Africa/Johannesburg")
    opening_time: str = Field(default="08:00")
    closing_time: str = Field(default="17:00")

    log_level: str = Field(default="INFO")

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
