from pydantic_settings import BaseSettings
from typing import Dict, List


class Settings(BaseSettings):
    app_name: str = "Theme League API"
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Store
    database_url: str
    sql_echo: bool = False
    retry_after_seconds: int = 1  # sent with 503 when the store is down

    # Tokens
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Image submissions, keyed by accepted content type
    upload_dir: str = "./uploads"
    max_file_size: int = 5 * 1024 * 1024
    image_extensions: Dict[str, str] = {
        "image/jpeg": ".jpg",
        "image/png": ".png",
        "image/gif": ".gif",
        "image/webp": ".webp",
    }

    class Config:
        env_file = ".env"


settings = Settings()
