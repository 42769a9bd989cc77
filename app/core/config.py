from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRET_KEY = "change-this-secret-key-in-production"


class Settings(BaseSettings):
    PROJECT_NAME: str = "Dinar Exchange Auth"
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # MongoDB Config
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "dinar_exchange"

    # Links / cookies
    BASE_URL: str = "http://localhost:3000"
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    SESSION_COOKIE_NAME: str = "auth-token"
    COOKIE_SECURE: Optional[bool] = None
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Email (Resend)
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "noreply@dinarexchange.co.nz"
    EMAIL_SEND_TIMEOUT_SECONDS: float = 10.0

    GEOLOCATION_ENABLED: bool = False

    # Bootstrap admin (only seeded when both are set)
    DEFAULT_ADMIN_EMAIL: str = ""
    DEFAULT_ADMIN_PASSWORD: str = ""

    # Trusted-IP policy
    MAX_TRUSTED_IPS: int = 10
    SUBNET_OCTET_TOLERANCE: int = 20

    # Magic-link flow governor
    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_ATTEMPT_WINDOW_MINUTES: int = 5
    LOGIN_LOCKOUT_MINUTES: int = 15
    MAGIC_LINK_EXPIRY_MINUTES: int = 15
    MAGIC_LINK_REQUEST_COUNTS_AS_ATTEMPT: bool = False
    ACCOUNT_SAVE_RETRIES: int = 3

    # Admin password governor
    ADMIN_MAX_LOGIN_ATTEMPTS: int = 5
    ADMIN_LOCKOUT_HOURS: int = 2
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 8 * 60

    # Audit off-hours (22:00 - 06:00) are judged in this zone
    AUDIT_TIMEZONE: str = "UTC"

    # Sessions
    SESSION_MAX_AGE_DAYS: int = 30

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        """CORS_ORIGINS is a comma-separated list."""
        return [part.strip() for part in self.CORS_ORIGINS.split(",") if part.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def cookie_secure(self) -> bool:
        if self.COOKIE_SECURE is not None:
            return self.COOKIE_SECURE
        return self.is_production


def _validate_security(current: Settings) -> None:
    """Refuse to run production with the development secret."""
    if not current.is_production:
        return
    if not current.SECRET_KEY or current.SECRET_KEY == DEFAULT_SECRET_KEY or len(current.SECRET_KEY) < 32:
        raise ValueError("SECRET_KEY must be set to a strong value in production.")


settings = Settings()

_validate_security(settings)
