import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = "sqlite:///./promptlib.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Identity (HS256 session tokens issued by the identity provider)
    AUTH_JWT_SECRET: Optional[str] = None
    AUTH_JWT_ALGORITHMS: str = "HS256"
    ALLOW_HEADER_AUTH: bool = True  # X-User-Id fallback for dev/tests

    # Admin access
    ADMIN_KEY: Optional[str] = None  # Legacy shared key (X-Admin-Key)
    ADMIN_USER_IDS: str = ""  # comma-separated user ids treated as admin on every request

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_PRICE_STANDARD: Optional[str] = None
    STRIPE_PRICE_PREMIUM: Optional[str] = None

    # App URLs
    APP_BASE_URL: str = "http://localhost:5173"
    CORS_ORIGINS: str = "http://localhost:5173"

    # Day boundaries for usage statistics ("local" midnight)
    LOCAL_TIMEZONE: str = "UTC"

    # Collation for name sort; "" takes it from LANG / LC_ALL
    SORT_LOCALE: str = ""

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def admin_user_ids(self) -> List[str]:
        return [uid.strip() for uid in self.ADMIN_USER_IDS.split(",") if uid.strip()]

    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    def jwt_algorithms(self) -> List[str]:
        return [a.strip() for a in self.AUTH_JWT_ALGORITHMS.split(",") if a.strip()]


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("promptlib")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "AUTH_JWT_SECRET",
        "STRIPE_SECRET_KEY",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
