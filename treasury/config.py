# treasury/config.py
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import EmailStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # --- Database ---
    database_url: str = "sqlite:///./treasury_dev.db"

    # --- Identity provider tokens ---
    jwt_secret: str = "dev-secret-please-change"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 24 hours

    # --- CORS ---
    cors_origins: List[str] = ["http://localhost:3000"]

    # --- Logging ---
    log_level: Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"] = "INFO"
    log_format: Literal["json", "plain"] = "json"

    # --- Dues ---
    default_dues_amount: int = 50000
    default_currency: str = "IDR"

    # --- Email ---
    email_backend: str = "local"
    sendgrid_api_key: Optional[str] = None
    email_from_address: Optional[EmailStr] = None
    email_from_name: str = "Kas App"
    email_reply_to: Optional[EmailStr] = None
    email_host: Optional[str] = None
    email_port: Optional[int] = None
    email_host_user: Optional[str] = None
    email_host_password: Optional[str] = None
    email_use_tls: bool = True
    email_output_dir: str = "uploads/emails"

    # --- WhatsApp ---
    whatsapp_token: Optional[str] = None
    whatsapp_phone_number_id: Optional[str] = None
    whatsapp_api_base: str = "https://graph.facebook.com/v20.0"
    whatsapp_timeout_seconds: float = 15.0

    @property
    def cors_allow_origins(self) -> List[str]:
        origins: List[str] = []
        for origin in self.cors_origins:
            cleaned = origin.strip().rstrip("/")
            if cleaned and cleaned not in origins:
                origins.append(cleaned)
        return origins

    @property
    def whatsapp_is_configured(self) -> bool:
        return bool(self.whatsapp_token and self.whatsapp_phone_number_id)


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

# --- SQLAlchemy setup ---
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False}
    if settings.database_url.startswith("sqlite")
    else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
