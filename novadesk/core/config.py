from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "NovaDesk Bot"

    # Server
    PORT: int = 3000
    ENVIRONMENT: str = "development"

    # Telegram
    BOT_TOKEN: str = ""
    WEBHOOK_DOMAIN: str = ""
    WEBHOOK_PATH: str = "/telegram/webhook-123"
    TELEGRAM_ADMIN_IDS: List[int] = []

    # Storage ("sqlite" or "memory")
    STORAGE_BACKEND: str = "sqlite"
    DATABASE_PATH: str = "data/novadesk.sqlite"

    # Static hotel texts
    HOTEL_CONFIG_PATH: str = ""

    # Admin surface
    ADMIN_USER: str = ""
    ADMIN_PASS: str = ""
    RATE_LIMIT_WINDOW_MINUTES: int = 15
    RATE_LIMIT_MAX: int = 100
    LIST_DEFAULT_SIZE: int = 20
    CSV_DEFAULT_SIZE: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"

    @property
    def webhook_url(self) -> str:
        return f"{self.WEBHOOK_DOMAIN.strip().rstrip('/')}{self.WEBHOOK_PATH.strip()}"

settings = Settings()
