# File: app/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import os


class Settings(BaseSettings):
    # ---------------------------
    # Meta / Pydantic settings
    # ---------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # Ignore unexpected env vars instead of erroring
    )

    # ---------------------------
    # Database (local SQLite fallback for development)
    # ---------------------------
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./expo_registration.db",
    )
    DATABASE_ECHO: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"

    # ---------------------------
    # API / Project
    # ---------------------------
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Expo Registration API")
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8000")

    # ---------------------------
    # Environment / Logging
    # ---------------------------
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")  # development | staging | production
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # ---------------------------
    # Email (SMTP)
    # ---------------------------
    SMTP_SERVER: str = os.getenv("SMTP_SERVER", "localhost")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME: Optional[str] = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD: Optional[str] = os.getenv("SMTP_PASSWORD")
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    FROM_EMAIL: str = os.getenv("FROM_EMAIL", "no-reply@example.com")
    FROM_NAME: str = os.getenv("FROM_NAME", "Expo Team")
    SEND_EMAILS: bool = os.getenv("SEND_EMAILS", "true").lower() == "true"
    EMAIL_TIMEOUT: int = int(os.getenv("EMAIL_TIMEOUT", "10"))
    AUTO_SEND_TICKET_EMAILS: bool = os.getenv("AUTO_SEND_TICKET_EMAILS", "false").lower() == "true"
    ADMIN_EMAILS: str = os.getenv("ADMIN_EMAILS", "")  # comma-separated, copied on status changes

    # ---------------------------
    # Payment orders
    # ---------------------------
    PAYMENT_API_URL: str = os.getenv("PAYMENT_API_URL", "http://localhost:8000/api/payment/create-order")
    PAYMENT_CURRENCY: str = os.getenv("PAYMENT_CURRENCY", "INR")
    PAYMENT_TIMEOUT: int = int(os.getenv("PAYMENT_TIMEOUT", "15"))

    # ---------------------------
    # Tickets
    # ---------------------------
    TICKET_CODE_MAX_ATTEMPTS: int = int(os.getenv("TICKET_CODE_MAX_ATTEMPTS", "6"))
    TICKET_CODE_PREFIX: str = os.getenv("TICKET_CODE_PREFIX", "TICK-")
    TICKET_CODE_LENGTH: int = int(os.getenv("TICKET_CODE_LENGTH", "6"))
    RESOLVER_MAX_SCAN: int = int(os.getenv("RESOLVER_MAX_SCAN", "500"))
    RESOLVER_MAX_DEPTH: int = int(os.getenv("RESOLVER_MAX_DEPTH", "8"))

    # ---------------------------
    # OTP verification
    # ---------------------------
    OTP_TTL_SECONDS: int = int(os.getenv("OTP_TTL_SECONDS", "300"))
    OTP_RESEND_COOLDOWN_SECONDS: int = int(os.getenv("OTP_RESEND_COOLDOWN_SECONDS", "60"))
    OTP_MAX_VERIFY_ATTEMPTS: int = int(os.getenv("OTP_MAX_VERIFY_ATTEMPTS", "5"))
    OTP_VERIFIED_TTL_SECONDS: int = int(os.getenv("OTP_VERIFIED_TTL_SECONDS", "900"))
    OTP_SWEEP_INTERVAL_SECONDS: int = int(os.getenv("OTP_SWEEP_INTERVAL_SECONDS", "600"))
    REQUIRE_OTP_FOR_REGISTRATION: bool = (
        os.getenv("REQUIRE_OTP_FOR_REGISTRATION", "false").lower() == "true"
    )

    # ---------------------------
    # Frontend / Branding
    # ---------------------------
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
    EVENT_NAME: str = os.getenv("EVENT_NAME", "RailTrans Expo 2026")
    EVENT_TAGLINE: str = os.getenv("EVENT_TAGLINE", "Non-transferable. Valid only for the event days.")

    # ---------------------------
    # Derived / Convenience
    # ---------------------------
    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def frontend_url(self) -> str:
        """Effective frontend URL without a trailing slash."""
        return self.FRONTEND_URL.rstrip("/")

    @property
    def admin_emails(self) -> list:
        return [addr.strip() for addr in self.ADMIN_EMAILS.split(",") if addr.strip()]


settings = Settings()
