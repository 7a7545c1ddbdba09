import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

@dataclass(frozen=True)
class Settings:
    SITES_PATH: str = os.getenv("MP_SITES_PATH", "res/sites.yaml")
    POLL_INTERVAL_S: float = float(os.getenv("MP_POLL_INTERVAL_S", "10"))
    PAGE_TITLE: str = os.getenv("MP_PAGE_TITLE", "Apps status")
    LOG_LEVEL: str = os.getenv("MP_LOG_LEVEL", "INFO")
    HOST: str = os.getenv("MP_HOST", "127.0.0.1")
    PORT: int = int(os.getenv("MP_PORT", "8000"))
    MAX_CONNECTIONS: int = int(os.getenv("MP_MAX_CONNECTIONS", "20"))

settings = Settings()
