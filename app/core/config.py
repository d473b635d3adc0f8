# app/core/config.py
import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

class Settings:
    APP_NAME: str = os.getenv("APP_NAME", "Festival Media API")

    FIREBASE_PROJECT_ID: str = os.getenv("FIREBASE_PROJECT_ID", "festival-media")
    # Same default bucket format the web client's firebase config uses
    FIREBASE_STORAGE_BUCKET: str = os.getenv("FIREBASE_STORAGE_BUCKET", "festival-media.firebasestorage.app")
    FIREBASE_SERVICE_ACCOUNT_PATH: str = os.getenv(
        "FIREBASE_SERVICE_ACCOUNT_PATH",
        "firebase-service-account.json",
    )

    # Comma separated; "*" allows every origin
    CORS_ORIGINS: list = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    # Upload limits (per file)
    MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "30"))
    MAX_VIDEO_SIZE_MB: int = int(os.getenv("MAX_VIDEO_SIZE_MB", "300"))

    DEFAULT_FEED_LIMIT: int = int(os.getenv("DEFAULT_FEED_LIMIT", "100"))

    # Built single-page client (index.html + assets). Unset = API only.
    SPA_DIST_DIR: Optional[str] = os.getenv("SPA_DIST_DIR")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def max_image_size(self) -> int:
        return self.MAX_IMAGE_SIZE_MB * 1024 * 1024

    @property
    def max_video_size(self) -> int:
        return self.MAX_VIDEO_SIZE_MB * 1024 * 1024


settings = Settings()
