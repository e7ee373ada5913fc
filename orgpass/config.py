"""Configuration settings for orgpass"""

from pydantic_settings import BaseSettings
import os


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    APP_NAME: str = "orgpass"

    # Database
    # Runtime may provide DATABASE_URL
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./orgpass.db")
    DATABASE_ECHO: bool = False

    # Roles
    # Roles at this hierarchy level or above are admin tier for invitations.
    # ADMIN_TIER_TOP_DOWN flips the tier to levels 0 through ADMIN_TIER_LEVEL.
    ADMIN_TIER_LEVEL: int = 2
    ADMIN_TIER_TOP_DOWN: bool = False
    MIN_HIERARCHY_LEVEL: int = 0
    MAX_HIERARCHY_LEVEL: int = 10

    # Invitations
    INVITATION_EXPIRY_DAYS: int = 7
    INVITATION_TOKEN_BYTES: int = 32  # secrets.token_urlsafe entropy, 256 bits
    FRONTEND_URL: str = "http://localhost:3000"  # Dashboard URL for invitation links
    INVITATIONS_PATH: str = "/invitations"

    # Email
    EMAIL_BACKEND: str = "resend"  # "resend" or "smtp"
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "noreply@orgpass.dev")
    RESEND_API_KEY: str = ""
    RESEND_API_URL: str = "https://api.resend.com/emails"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 1025
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = False

    # Billing
    STRIPE_API_KEY: str = ""
    STRIPE_API_VERSION: str = "2024-06-20"

    @property
    def invitations_url(self) -> str:
        """Absolute URL of the page where invitations are accepted"""
        return f"{self.FRONTEND_URL.rstrip('/')}{self.INVITATIONS_PATH}"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
