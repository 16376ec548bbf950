from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "GroupSettle API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Shared expense ledger and debt settlement API"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "groupsettle"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # JWT (tokens are issued by the auth service, we only verify them)
    JWT_SECRET: str = "change-this-in-production"
    JWT_ALGORITHM: str = "HS256"

    # Currencies
    # {"EUR": {"USD": 1.087}, "USD": {"EUR": 0.92}} - refreshed outside this service
    EXCHANGE_RATES: Dict[str, Dict[str, float]] = {}
    # Allowed |sum| of a reconciled balance set, as a fraction of converted volume
    RECONCILIATION_DRIFT_TOLERANCE: float = 0.01

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
