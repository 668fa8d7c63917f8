# medibook/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ===== App =====
    APP_NAME: str = "medibook"
    ENV: str = "dev"
    # Civil time of the clinic. Slots are always built on the fixed offset.
    TIMEZONE: str = "Asia/Kolkata"
    UTC_OFFSET: str = "+05:30"

    # ===== DB =====
    DATABASE_URL: str = "sqlite:///./medibook.db"

    DB_POOL_SIZE: int = 2
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 min

    # ===== Shared secrets =====
    # Empty API_KEY = mutating endpoints are open
    API_KEY: Optional[str] = None
    ADMIN_TOKEN: Optional[str] = None

    # ===== Google Calendar =====
    # OAuth2 (refresh token) takes priority over the service account
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_REDIRECT_URI: Optional[str] = None
    GOOGLE_REFRESH_TOKEN: Optional[str] = None
    GOOGLE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"
    # JSON (single line) or path to a .json file
    GCAL_SA_JSON: Optional[str] = None
    GCAL_IMPERSONATE_EMAIL: Optional[str] = None
    GOOGLE_CREDENTIALS_FILE: Optional[str] = None
    GCAL_TIMEOUT_SECONDS: int = 10

    # ===== SMTP =====
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    FROM_EMAIL: Optional[str] = None
    SMTP_TIMEOUT_SECONDS: int = 30

    # ===== Twilio (SMS for phone-only patients) =====
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_SMS_FROM: Optional[str] = None

    # True = log outbound SMS instead of sending
    DRY_RUN: bool = False

    # ===== Slots =====
    SLOT_MINUTES: int = 30

    # ===== One-time passcodes =====
    OTP_TTL_SECONDS: int = 300
    OTP_MAX_ATTEMPTS: int = 5
    REQUIRE_OTP_ON_REGISTER: bool = False

    # ===== Jobs =====
    SCHEDULER_ENABLED: bool = True
    REMINDER_HOURS_AHEAD: int = 24

    # ===== Branding for outbound messages =====
    CLINIC_NAME: str = "Healthcare Plus"
    BOOKING_CHANNEL: str = "Medicare AI Bot"
    SUPPORT_EMAIL: str = "support@hospital.com"
    APPOINTMENT_ATTACHMENT_URL: Optional[str] = None

    def model_post_init(self, __context) -> None:
        """
        Backfill of:
          - FROM_EMAIL ← SMTP_USER
          - GOOGLE_CREDENTIALS_FILE → GCAL_SA_JSON
          - whitespace around SMTP values copied from dashboards
        """
        if self.SMTP_HOST:
            self.SMTP_HOST = self.SMTP_HOST.strip()
        if self.SMTP_USER:
            self.SMTP_USER = self.SMTP_USER.strip()
        if self.SMTP_PASS:
            self.SMTP_PASS = self.SMTP_PASS.strip()

        if not self.FROM_EMAIL and self.SMTP_USER:
            self.FROM_EMAIL = self.SMTP_USER

        if not self.GCAL_SA_JSON and self.GOOGLE_CREDENTIALS_FILE:
            self.GCAL_SA_JSON = str(Path(self.GOOGLE_CREDENTIALS_FILE))

    @property
    def utc_offset_minutes(self) -> int:
        """'+05:30' → 330"""
        raw = (self.UTC_OFFSET or "+00:00").strip()
        sign = -1 if raw.startswith("-") else 1
        hh, mm = raw.lstrip("+-").split(":")
        return sign * (int(hh) * 60 + int(mm))


settings = Settings()
