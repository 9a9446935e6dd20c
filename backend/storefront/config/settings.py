"""Runtime settings loaded from environment variables (and `.env`).

Every value has a development default so the API and the test-suite start
without any configuration. Production deployments override via environment.
"""
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


@dataclass
class Settings:
    app_name: str = "Storefront API"
    version: str = "1.0.0"
    environment: str = "development"
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql://localhost/storefront_db"
    dev_database_url: str = "sqlite:///./dev.db"
    auto_create_tables: bool = True
    force_sqlite_fallback: bool = False
    db_pool_size: int = 20

    # HTTP
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])
    trust_proxy: bool = False

    # Auth
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expires_hours: int = 168
    password_hash_iterations: int = 100000

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_window_seconds: int = 900
    rate_limit_max_requests: int = 100
    rate_limit_login_max: int = 5
    rate_limit_register_max: int = 3

    # Catalog cache
    cache_ttl_seconds: int = 300
    cache_max_entries: int = 100

    # Orders
    tax_rate: float = 0.18
    currency: str = "INR"

    # Payment gateway (Razorpay)
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""
    razorpay_api_url: str = "https://api.razorpay.com/v1"
    payment_timeout_seconds: float = 10.0

    # Email
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = "orders@storefront.local"
    email_from_name: str = "Storefront"
    frontend_url: str = "http://localhost:5173"

    @property
    def payments_configured(self) -> bool:
        return bool(self.razorpay_key_id and self.razorpay_key_secret)

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_host)

    @classmethod
    def from_env(cls) -> "Settings":
        frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5173")
        return cls(
            environment=os.getenv("ENVIRONMENT", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            database_url=os.getenv("DATABASE_URL", "postgresql://localhost/storefront_db"),
            dev_database_url=os.getenv("DEV_DATABASE_URL", "sqlite:///./dev.db"),
            auto_create_tables=_env_bool("AUTO_CREATE_TABLES", "1"),
            force_sqlite_fallback=_env_bool("FORCE_SQLITE_FALLBACK", "0"),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", "20")),
            cors_origins=_env_list("CORS_ORIGINS", frontend_url),
            trust_proxy=_env_bool("TRUST_PROXY", "0"),
            jwt_secret=os.getenv("JWT_SECRET", "change-me-in-production"),
            jwt_expires_hours=int(os.getenv("JWT_EXPIRES_HOURS", "168")),
            password_hash_iterations=int(os.getenv("PASSWORD_HASH_ITERATIONS", "100000")),
            rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", "1"),
            rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900")),
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100")),
            rate_limit_login_max=int(os.getenv("RATE_LIMIT_LOGIN_MAX", "5")),
            rate_limit_register_max=int(os.getenv("RATE_LIMIT_REGISTER_MAX", "3")),
            cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "300")),
            cache_max_entries=int(os.getenv("CACHE_MAX_ENTRIES", "100")),
            tax_rate=float(os.getenv("TAX_RATE", "0.18")),
            currency=os.getenv("CURRENCY", "INR"),
            razorpay_key_id=os.getenv("RAZORPAY_KEY_ID", ""),
            razorpay_key_secret=os.getenv("RAZORPAY_KEY_SECRET", ""),
            razorpay_webhook_secret=os.getenv("RAZORPAY_WEBHOOK_SECRET", ""),
            razorpay_api_url=os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1"),
            payment_timeout_seconds=float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "10")),
            smtp_host=os.getenv("SMTP_HOST", ""),
            smtp_port=int(os.getenv("SMTP_PORT", "587")),
            smtp_user=os.getenv("SMTP_USER", ""),
            smtp_password=os.getenv("SMTP_PASSWORD", ""),
            smtp_use_tls=_env_bool("SMTP_USE_TLS", "1"),
            email_from=os.getenv("EMAIL_FROM", "orders@storefront.local"),
            email_from_name=os.getenv("EMAIL_FROM_NAME", "Storefront"),
            frontend_url=frontend_url,
        )


settings = Settings.from_env()
