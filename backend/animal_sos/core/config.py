from typing import List, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Animal SOS"
    ENVIRONMENT: str = "development"
    API_V1_STR: str = "/api/v1"

    # Security
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    CORS_ORIGINS: List[str] = ["http://localhost:8081", "http://127.0.0.1:8081"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str):
            v = v.strip("[").strip("]").strip('"').strip("'")
            if not v:
                return []
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    # Users
    MIN_NICKNAME_LENGTH: int = 3
    DEFAULT_AVATAR_URL: str = "https://cdn-icons-png.flaticon.com/512/1946/1946429.png"

    # Database - postgresql+asyncpg in deployments, aiosqlite locally
    DATABASE_URL: str = "sqlite+aiosqlite:///./animal_sos.db"
    AUTO_CREATE_TABLES: bool = True

    # Reports
    REPORT_EDIT_WINDOW_MINUTES: int = 60
    POPULAR_REPORTS_LIMIT: int = 10

    # Media storage
    UPLOAD_DIR: str = "uploads"
    MEDIA_BASE_URL: str = "http://localhost:8000/media"
    MAX_UPLOAD_MB: int = 25

    # Password reset mail
    RESET_CODE_TTL_MINUTES: int = 10
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "Animal SOS <no-reply@animalsos.local>"
    SMTP_TLS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file="backend_config.env",
        env_file_encoding="utf-8"
    )

settings = Settings()
