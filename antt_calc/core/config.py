from pydantic_settings import BaseSettings
from pathlib import Path

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    REDIS_URL: str = "redis://localhost:6379/0"

    # Every *.json file in the directory is one (resolution, transport category) table
    RATE_TABLE_DIR: str = str(DATA_DIR)
    DEFAULT_RESOLUTION: str = "6067_2025"
    DEFAULT_TRANSPORT_CATEGORY: str = "CARGA_LOTACAO"

    ORS_BASE_URL: str = "https://api.openrouteservice.org"
    ORS_API_KEY: str = ""
    ROUTE_TIMEOUT: float = 10.0
    ROUTE_RETRIES: int = 2
    ROUTE_CACHE_TTL: int = 86400  # 24 hours

    PRICE_CACHE_TTL: int = 60   # 60 seconds

    RATE_LIMIT: int = 100
    RATE_LIMIT_WINDOW: int = 600  # 10 minutes

    API_TITLE: str = "Quero Fretes ANTT Calculator"
    API_DESCRIPTION: str = "Minimum freight price (ANTT) and toll estimates for road transport"
    API_VERSION: str = "1.0.0"

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
