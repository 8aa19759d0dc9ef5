from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./exam_portal.db"
    media_dir: str = "./media"
    public_base_url: str = "http://localhost:8000"
    geolookup_provider: str = "none"  # ipapi | ip-api | none

    max_video_chunk_bytes: int = 10 * 1024 * 1024
    max_photo_bytes: int = 5 * 1024 * 1024

    allow_resubmission: bool = True
    session_grace_minutes: int = 5
    require_open_session: bool = False

    admin_api_key: str | None = None
    cors_origins_str: str = "*"
    log_level: str = "INFO"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
