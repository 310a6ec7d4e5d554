from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    port: int = 3000
    host: str = "0.0.0.0"
    # Downstream queue-ingestion endpoint
    queue_url: str = "http://localhost:8080/api/queue/submit"
    queue_timeout: float = 10.0
    log_level: str = "INFO"
    log_requests: bool = True
    cors_origins: List[str] = ["*"]

    class Config:
        env_prefix = ""
        env_file = ".env"


settings = Settings()
