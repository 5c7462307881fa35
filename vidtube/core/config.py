# vidtube/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
import os
from typing import Optional

load_dotenv()

class Settings(BaseSettings):
    # --- Application Settings ---
    app_name: str = "VidTube API"
    api_prefix: str = "/api/v1"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origin: str = os.getenv("CORS_ORIGIN", "*")

    # --- Database ---
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./vidtube.db")
    db_echo: bool = False
    db_timeout_seconds: float = 10.0

    # --- Security & Auth ---
    access_token_secret: str = os.getenv("ACCESS_TOKEN_SECRET", "default_access_secret_change_me")
    access_token_expire_minutes: int = 60 * 24
    refresh_token_secret: str = os.getenv("REFRESH_TOKEN_SECRET", "default_refresh_secret_change_me")
    refresh_token_expire_days: int = 10
    algorithm: str = os.getenv("ALGORITHM", "HS256")
    secure_cookies: bool = True

    # --- Media host (Cloudinary compatible) ---
    cloudinary_cloud_name: Optional[str] = os.getenv("CLOUDINARY_CLOUD_NAME")
    cloudinary_api_key: Optional[str] = os.getenv("CLOUDINARY_API_KEY")
    cloudinary_api_secret: Optional[str] = os.getenv("CLOUDINARY_API_SECRET")
    media_timeout_seconds: float = 120.0
    upload_tmp_dir: str = "./public/temp"

    # --- Redis & Rate Limiting ---
    redis_url: Optional[str] = os.getenv("REDIS_URL")
    redis_timeout_seconds: float = 5.0
    upload_rate_limit_count: int = 20
    upload_rate_limit_window_seconds: int = 60 * 60  # 1 hour

    # --- Feeds ---
    default_page_size: int = 10
    max_page_size: int = 100
    playlist_preview_size: int = 20

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
