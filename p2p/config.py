from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "P2P Approvals"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PORT: int = 8000

    DATABASE_URL: str = "sqlite+aiosqlite:///./p2p.db"
    DATABASE_SYNC_URL: str = "sqlite:///./p2p.db"
    DATABASE_SSL: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_RECYCLE: int = 300

    # Base URLs of the stores the orchestrator and draft generator call.
    # All default to this app; point them elsewhere to split the services.
    INVOICE_API_URL: str = "http://localhost:8000/api/v1"
    PURCHASE_ORDER_API_URL: str = "http://localhost:8000/api/v1"
    GOODS_RECEIVED_API_URL: str = "http://localhost:8000/api/v1"
    SAFE_LIMIT_API_URL: str = "http://localhost:8000/api/v1"
    SERVICE_TIMEOUT_SECONDS: float = 10.0
    HTTP_MAX_CONNECTIONS: int = 20

    INVOICE_DUE_DAYS: int = 30
    DEFAULT_CURRENCY: str = "USD"

    APPROVER_TIER_JUNIOR_MAX: Decimal = Decimal("10000")
    APPROVER_TIER_SENIOR_MAX: Decimal = Decimal("50000")
    APPROVER_JUNIOR: str = "Junior Approver"
    APPROVER_SENIOR: str = "Senior Approver"
    APPROVER_EXECUTIVE: str = "Executive Approver"

    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
